import pytest

from tests.helpers import FakeGateway


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch, tmp_path):
    """Keep SPFINDER_* variables and any local .env file out of every test."""
    for name in ("SPFINDER_GATEWAY", "SPFINDER_WORKERS", "SPFINDER_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
