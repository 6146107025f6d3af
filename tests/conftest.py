import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ORIGIN = "https://media.test"
API_KEY = "secret-key"
PUBLIC_BASE = "http://proxy.test"


def reload_streamgate() -> None:
    """Drop cached streamgate modules so the next import re-reads the env."""
    for name in list(sys.modules):
        if name == "streamgate" or name.startswith("streamgate."):
            del sys.modules[name]


@pytest.fixture(autouse=True)
def media_env(monkeypatch):
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    monkeypatch.setenv("MEDIA_ORIGIN_URL", ORIGIN)
    monkeypatch.setenv("MEDIA_API_KEY", API_KEY)
    monkeypatch.setenv("STREAM_PUBLIC_BASE_URL", PUBLIC_BASE)
    monkeypatch.setenv("HLS_PROBE_TIMEOUT_SECONDS", "0.3")
    for var in ("MEDIA_ENV", "WORKERS_API_KEY", "CORS_ORIGINS", "MEDIA_API_KEY_HEADER"):
        monkeypatch.delenv(var, raising=False)
    reload_streamgate()
    yield
    reload_streamgate()


@pytest.fixture
def client():
    from streamgate.main import app

    with TestClient(app) as c:
        yield c
