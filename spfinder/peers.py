"""Peer identity and multiaddress extraction from miner info."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from multiaddr import Multiaddr

from .errors import MissingPeerIdentity
from .gateway import MinerInfo


_LOGGER = logging.getLogger("spfinder.peers")


@dataclass(frozen=True)
class PeerAddressInfo:
    identity: str
    addrs: List[str] = field(default_factory=list)


def decode_multiaddr(raw: str) -> Optional[str]:
    """Return the text form of a base64 binary multiaddr, or None if it is malformed.

    The bytes must re-encode exactly; trailing or truncated components are rejected.
    """

    try:
        data = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        _LOGGER.debug("dropping multiaddr with bad base64: %r", raw)
        return None
    if not data:
        return None
    try:
        text = str(Multiaddr(data))
        canonical = Multiaddr(text).to_bytes()
    except Exception as exc:
        _LOGGER.debug("dropping malformed multiaddr %r: %s", raw, exc)
        return None
    if canonical != data:
        _LOGGER.debug("dropping non-canonical multiaddr %r", raw)
        return None
    return text


def decode_multiaddrs(raw_addrs: Optional[Iterable[str]]) -> List[str]:
    decoded = []
    for raw in raw_addrs or []:
        addr = decode_multiaddr(raw)
        if addr is not None:
            decoded.append(addr)
    return decoded


def miner_info_to_addr_info(info: MinerInfo, address: str = "") -> PeerAddressInfo:
    if not info.peer_id:
        raise MissingPeerIdentity(address)
    return PeerAddressInfo(identity=info.peer_id, addrs=decode_multiaddrs(info.multiaddrs))


def format_addr_info(info: PeerAddressInfo) -> List[str]:
    lines = [f"PeerID: {info.identity}"]
    if info.addrs:
        lines.append("Addrs:")
        lines.extend(f"   {addr}" for addr in info.addrs)
    return lines
