"""Runtime settings for gateway access and the worker pool."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional
from urllib.parse import urlunsplit


DEFAULT_GATEWAY = "api.node.glif.io"
DEFAULT_RPC_PATH = "/rpc/v0"
DEFAULT_SCHEME = "https"
DEFAULT_WORKERS = 20
DEFAULT_TIMEOUT = 30


def load_dotenv(path: str = ".env") -> None:
    env_file = Path(path)
    if not env_file.exists():
        return
    for line in env_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def gateway_url(host: str, scheme: str = DEFAULT_SCHEME, path: str = DEFAULT_RPC_PATH) -> str:
    """Build the JSON-RPC endpoint for a gateway host.

    A host given with its own http:// or https:// prefix keeps that scheme.
    """

    host = host.strip().rstrip("/")
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            scheme = prefix[:-3]
            host = host[len(prefix):]
            break
    return urlunsplit((scheme, host, path, "", ""))


@dataclass(frozen=True)
class Settings:
    gateway: str = DEFAULT_GATEWAY
    workers: int = DEFAULT_WORKERS
    timeout: int = DEFAULT_TIMEOUT
    rpc_path: str = DEFAULT_RPC_PATH
    scheme: str = DEFAULT_SCHEME

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.timeout < 1:
            raise ValueError(f"timeout must be at least 1 second, got {self.timeout}")

    @property
    def url(self) -> str:
        return gateway_url(self.gateway, self.scheme, self.rpc_path)

    @classmethod
    def from_env(cls, dotenv_path: str = ".env") -> "Settings":
        load_dotenv(dotenv_path)
        return cls(
            gateway=os.getenv("SPFINDER_GATEWAY") or DEFAULT_GATEWAY,
            workers=_env_int("SPFINDER_WORKERS", DEFAULT_WORKERS),
            timeout=_env_int("SPFINDER_TIMEOUT", DEFAULT_TIMEOUT),
        )

    def override(
        self,
        gateway: Optional[str] = None,
        workers: Optional[int] = None,
        timeout: Optional[int] = None,
    ) -> "Settings":
        changes = {}
        if gateway:
            changes["gateway"] = gateway
        if workers is not None:
            changes["workers"] = workers
        if timeout is not None:
            changes["timeout"] = timeout
        return replace(self, **changes)
