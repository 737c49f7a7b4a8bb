"""Per-provider resolution of peer ids and storage asks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Protocol

from .errors import SpFinderError
from .gateway import MinerInfo


OK = "ok"
EMPTY = "empty"
ERROR = "error"

NO_PEER_ID = "no peer id"
NO_QUERY_ASK_RESULT = "no query ask result"


class MinerClient(Protocol):
    def state_miner_info(self, address: str, tipset_key=None) -> MinerInfo: ...

    def client_query_ask(self, peer_id: str, address: str) -> str: ...


@dataclass(frozen=True)
class ResultLine:
    identifier: str
    outcome: str
    status: str = OK

    def __str__(self) -> str:
        if self.status == OK:
            return f"{self.identifier} -> {self.outcome}"
        return f"{self.identifier} {self.outcome}"

    def to_dict(self) -> dict:
        return {"id": self.identifier, "status": self.status, "result": self.outcome}


Resolver = Callable[[str, MinerClient], ResultLine]


def error_line(identifier: str, exc: BaseException) -> ResultLine:
    return ResultLine(identifier, f"error: {exc}", ERROR)


def resolve_peer_id(identifier: str, client: MinerClient) -> ResultLine:
    try:
        info = client.state_miner_info(identifier)
    except SpFinderError as exc:
        return error_line(identifier, exc)
    if not info.peer_id:
        return ResultLine(identifier, NO_PEER_ID, EMPTY)
    return ResultLine(identifier, info.peer_id)


def resolve_query_ask(identifier: str, client: MinerClient) -> ResultLine:
    """Look up the peer id, then ask the provider for its current storage price."""

    try:
        info = client.state_miner_info(identifier)
    except SpFinderError as exc:
        return error_line(identifier, exc)
    if not info.peer_id:
        return ResultLine(identifier, NO_PEER_ID, EMPTY)

    try:
        ask = client.client_query_ask(info.peer_id, identifier)
    except SpFinderError as exc:
        return error_line(identifier, exc)
    if not ask:
        return ResultLine(identifier, NO_QUERY_ASK_RESULT, EMPTY)
    return ResultLine(identifier, ask)


RESOLVERS: Dict[str, Resolver] = {
    "populate": resolve_peer_id,
    "query-asks": resolve_query_ask,
}
