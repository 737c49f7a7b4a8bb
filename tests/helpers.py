"""Test doubles for the gateway client."""

import base64
import threading

from multiaddr import Multiaddr

from spfinder.gateway import MarketBalance, MinerInfo, TipSet


def encode_multiaddr(text: str) -> str:
    return base64.b64encode(Multiaddr(text).to_bytes()).decode("ascii")


MALFORMED_MULTIADDR = base64.b64encode(b"\x04\x7f\x00").decode("ascii")


class FakeGateway:
    """Stands in for GatewayClient; responses are plain dicts keyed by provider id."""

    def __init__(self, miners=None, asks=None, miner_errors=None, ask_errors=None, participants=None):
        self.miners = miners or {}
        self.asks = asks or {}
        self.miner_errors = miner_errors or {}
        self.ask_errors = ask_errors or {}
        self.participants = participants
        self.participants_error = None
        self.miner_calls = []
        self.ask_calls = []
        self.closed = False
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def chain_head(self):
        return TipSet(Cids=[{"/": "bafy2bzaceheadcid"}], Height=100)

    def state_miner_info(self, address, tipset_key=None):
        with self._lock:
            self.miner_calls.append((address, tipset_key))
        if address in self.miner_errors:
            raise self.miner_errors[address]
        if address in self.miners:
            return self.miners[address]
        return MinerInfo(peer_id=f"12D3KooW{address}")

    def client_query_ask(self, peer_id, address):
        with self._lock:
            self.ask_calls.append((peer_id, address))
        if address in self.ask_errors:
            raise self.ask_errors[address]
        return self.asks.get(address, f"Price=500 Miner={address}")

    def state_market_participants(self, tipset_key=None):
        if self.participants_error is not None:
            raise self.participants_error
        if self.participants is not None:
            return self.participants
        return {address: MarketBalance() for address in self.miners}


UNKNOWN_PROTOCOL_MULTIADDR = base64.b64encode(b"\xff\xff\xff\x0f").decode("ascii")


def with_trailing_bytes(text: str, extra: bytes) -> str:
    return base64.b64encode(Multiaddr(text).to_bytes() + extra).decode("ascii")
