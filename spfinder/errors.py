"""Error types raised while talking to a Filecoin gateway."""

from __future__ import annotations

from typing import Optional


class SpFinderError(Exception):
    """Base class for every error raised by spfinder."""


class AddressFormatError(SpFinderError, ValueError):
    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"invalid provider filecoin address {address!r}: {reason}")
        self.address = address
        self.reason = reason


class GatewayError(SpFinderError):
    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method


class TransportError(GatewayError):
    pass


class DecodeError(GatewayError):
    pass


class RemoteError(GatewayError):
    def __init__(self, method: str, code: Optional[int], message: str) -> None:
        super().__init__(method, f"rpc error {code}: {message}")
        self.code = code
        self.remote_message = message


class MissingPeerIdentity(SpFinderError):
    def __init__(self, address: str) -> None:
        super().__init__(f"no peer id for service provider {address}")
        self.address = address
