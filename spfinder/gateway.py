"""JSON-RPC client for Lotus-compatible Filecoin gateways."""

from __future__ import annotations

import itertools
import json
import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from requests.adapters import HTTPAdapter

from .errors import DecodeError, RemoteError, TransportError


_LOGGER = logging.getLogger("spfinder.gateway")
_METHOD_PREFIX = "Filecoin."


class _LotusModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TipSet(_LotusModel):
    """Chain head; only the key (its CIDs) is ever passed back to the node."""

    cids: List[Dict[str, str]] = Field(default_factory=list, alias="Cids")
    height: int = Field(default=0, alias="Height")

    @property
    def key(self) -> List[Dict[str, str]]:
        return self.cids


class MinerInfo(_LotusModel):
    owner: Optional[str] = Field(default=None, alias="Owner")
    worker: Optional[str] = Field(default=None, alias="Worker")
    new_worker: Optional[str] = Field(default=None, alias="NewWorker")
    control_addresses: Optional[List[str]] = Field(default=None, alias="ControlAddresses")
    worker_change_epoch: int = Field(default=0, alias="WorkerChangeEpoch")
    peer_id: Optional[str] = Field(default=None, alias="PeerId")
    multiaddrs: Optional[List[str]] = Field(
        default=None,
        alias="Multiaddrs",
        description="Base64 encoded binary multiaddrs.",
    )
    window_post_proof_type: int = Field(default=0, alias="WindowPoStProofType")
    sector_size: int = Field(default=0, alias="SectorSize")
    window_post_partition_sectors: int = Field(default=0, alias="WindowPoStPartitionSectors")
    consensus_fault_elapsed: int = Field(default=0, alias="ConsensusFaultElapsed")


class MarketBalance(_LotusModel):
    escrow: int = Field(default=0, alias="Escrow", description="attoFIL")
    locked: int = Field(default=0, alias="Locked", description="attoFIL")

    @field_validator("escrow", "locked", mode="before")
    @classmethod
    def _parse_big_int(cls, value: Any) -> Any:
        if isinstance(value, str):
            return int(value.strip() or 0)
        return value


_PARTICIPANTS = TypeAdapter(Dict[str, MarketBalance])


def render_ask(result: Any) -> str:
    """Render a ClientQueryAsk result as text; empty string means no ask."""

    if result is None:
        return ""
    if isinstance(result, str):
        return result.strip()
    if isinstance(result, dict):
        response = result.get("Response")
        if isinstance(response, dict):
            result = response
        parts = []
        for key, value in result.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, separators=(",", ":"))
            parts.append(f"{key}={value}")
        return " ".join(parts)
    return json.dumps(result)


class GatewayClient:
    """Thread-safe JSON-RPC client; one instance is shared by every worker."""

    def __init__(self, url: str, timeout: int = 30, pool_size: int = 20) -> None:
        self.url = url
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._session = requests.Session()
        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        self._session.headers.update(
            {
                "accept": "application/json",
                "content-type": "application/json",
                "User-Agent": "spfinder/0.1",
            }
        )

    def __enter__(self) -> "GatewayClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def call(self, method: str, *params: Any) -> Any:
        if not method.startswith(_METHOD_PREFIX):
            method = _METHOD_PREFIX + method
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(params)}
        _LOGGER.debug("rpc call method=%s id=%s", method, payload["id"])
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(method, str(exc)) from exc

        try:
            body = response.json()
        except ValueError as exc:
            if response.status_code >= 400:
                raise TransportError(method, f"http {response.status_code}: {response.text[:300]}") from exc
            raise DecodeError(method, "response body is not JSON") from exc

        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            if isinstance(error, dict):
                raise RemoteError(method, error.get("code"), str(error.get("message", "")))
            raise RemoteError(method, None, str(error))
        if response.status_code >= 400:
            raise TransportError(method, f"http {response.status_code}")
        if not isinstance(body, dict) or "result" not in body:
            raise DecodeError(method, "missing result in JSON-RPC response")
        return body["result"]

    def _decode(self, method: str, model: Any, result: Any) -> Any:
        try:
            if isinstance(model, TypeAdapter):
                return model.validate_python(result)
            return model.model_validate(result)
        except ValidationError as exc:
            raise DecodeError(_METHOD_PREFIX + method, f"unexpected result: {exc.error_count()} validation errors") from exc

    def chain_head(self) -> TipSet:
        return self._decode("ChainHead", TipSet, self.call("ChainHead"))

    def state_miner_info(self, address: str, tipset_key: Optional[List[Dict[str, str]]] = None) -> MinerInfo:
        result = self.call("StateMinerInfo", address, tipset_key)
        return self._decode("StateMinerInfo", MinerInfo, result)

    def state_market_participants(
        self, tipset_key: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, MarketBalance]:
        result = self.call("StateMarketParticipants", tipset_key)
        if result is None:
            return {}
        return self._decode("StateMarketParticipants", _PARTICIPANTS, result)

    def client_query_ask(self, peer_id: str, address: str) -> str:
        return render_ask(self.call("ClientQueryAsk", peer_id, address))
