"""Filecoin address parsing and validation."""

from __future__ import annotations

import base64
import hashlib
import re
from dataclasses import dataclass
from typing import Optional

from .errors import AddressFormatError


ID = 0
SECP256K1 = 1
ACTOR = 2
BLS = 3
DELEGATED = 4

NETWORKS = ("f", "t")
CHECKSUM_LEN = 4
MAX_SUBADDRESS_LEN = 54
MAX_ADDRESS_STRING_LEN = 2 + 84
_PAYLOAD_LEN = {SECP256K1: 20, ACTOR: 20, BLS: 48}
_BASE32_RE = re.compile(r"[a-z2-7]+")
_DIGITS_RE = re.compile(r"[0-9]+")
_UINT64_MAX = (1 << 64) - 1


@dataclass(frozen=True)
class ProviderAddress:
    network: str
    protocol: int
    payload: bytes
    namespace: Optional[int] = None

    @property
    def actor_id(self) -> Optional[int]:
        if self.protocol != ID:
            return None
        value, _ = _uvarint_decode(self.payload)
        return value

    def __str__(self) -> str:
        prefix = f"{self.network}{self.protocol}"
        if self.protocol == ID:
            return f"{prefix}{self.actor_id}"
        body = _b32encode(self.payload + checksum(self._checksum_input()))
        if self.protocol == DELEGATED:
            return f"{prefix}{self.namespace}f{body}"
        return prefix + body

    def _checksum_input(self) -> bytes:
        if self.protocol == DELEGATED:
            return bytes([DELEGATED]) + _uvarint_encode(self.namespace or 0) + self.payload
        return bytes([self.protocol]) + self.payload


def checksum(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=CHECKSUM_LEN).digest()


def _uvarint_encode(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _uvarint_decode(data: bytes) -> tuple[int, int]:
    value = 0
    for index, byte in enumerate(data):
        value |= (byte & 0x7F) << (7 * index)
        if not byte & 0x80:
            return value, index + 1
    raise ValueError("truncated varint")


def _b32encode(data: bytes) -> str:
    return base64.b32encode(data).decode("ascii").lower().rstrip("=")


def _b32decode(text: str) -> bytes:
    padded = text.upper() + "=" * (-len(text) % 8)
    return base64.b32decode(padded)


def _parse_id(address: str, network: str, body: str) -> ProviderAddress:
    if not _DIGITS_RE.fullmatch(body):
        raise AddressFormatError(address, "id payload must be decimal")
    value = int(body)
    if value > _UINT64_MAX:
        raise AddressFormatError(address, "id payload out of range")
    return ProviderAddress(network=network, protocol=ID, payload=_uvarint_encode(value))


def _decode_body(address: str, body: str) -> tuple[bytes, bytes]:
    if not _BASE32_RE.fullmatch(body):
        raise AddressFormatError(address, "invalid base32 payload")
    try:
        raw = _b32decode(body)
    except ValueError as exc:
        raise AddressFormatError(address, f"invalid base32 payload: {exc}") from exc
    if len(raw) <= CHECKSUM_LEN:
        raise AddressFormatError(address, "payload too short")
    return raw[:-CHECKSUM_LEN], raw[-CHECKSUM_LEN:]


def parse_address(address: str) -> ProviderAddress:
    """Parse a textual Filecoin address, checking payload length and checksum.

    Raises AddressFormatError for anything that would not be accepted by a
    Lotus node, so callers can fail before making a network call.
    """

    text = (address or "").strip()
    if len(text) < 3 or len(text) > MAX_ADDRESS_STRING_LEN:
        raise AddressFormatError(address, "invalid address length")
    network = text[0]
    if network not in NETWORKS:
        raise AddressFormatError(address, f"unknown network prefix {network!r}")
    if text[1] not in "01234":
        raise AddressFormatError(address, f"unknown address protocol {text[1]!r}")
    protocol = int(text[1])
    body = text[2:]

    if protocol == ID:
        return _parse_id(address, network, body)

    namespace = None
    if protocol == DELEGATED:
        ns_text, sep, body = body.partition("f")
        if not sep or not _DIGITS_RE.fullmatch(ns_text):
            raise AddressFormatError(address, "invalid delegated namespace")
        namespace = int(ns_text)
        if namespace > _UINT64_MAX:
            raise AddressFormatError(address, "delegated namespace out of range")

    payload, check = _decode_body(address, body)
    if protocol == DELEGATED:
        if len(payload) > MAX_SUBADDRESS_LEN:
            raise AddressFormatError(address, "sub-address too long")
    elif len(payload) != _PAYLOAD_LEN[protocol]:
        raise AddressFormatError(address, f"invalid payload length {len(payload)}")

    parsed = ProviderAddress(network=network, protocol=protocol, payload=payload, namespace=namespace)
    if checksum(parsed._checksum_input()) != check:
        raise AddressFormatError(address, "checksum mismatch")
    return parsed
