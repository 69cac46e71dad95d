import pytest
from fastapi.testclient import TestClient

from avatar_studio import gemini
from avatar_studio.server import app
from helpers import Upstream


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("GEMINI_MODEL", raising=False)
    monkeypatch.delenv("GEMINI_API_BASE", raising=False)
    monkeypatch.delenv("GEMINI_TIMEOUT", raising=False)
    return "test-key"


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


@pytest.fixture
def upstream_post(monkeypatch):
    fake = Upstream()
    monkeypatch.setattr(gemini.requests, "post", fake)
    return fake


@pytest.fixture
def upstream_get(monkeypatch):
    fake = Upstream()
    monkeypatch.setattr(gemini.requests, "get", fake)
    return fake


@pytest.fixture
def client():
    return TestClient(app)
