"""Pytest fixtures for chat-key-proxy tests."""

import os
from unittest.mock import patch

import httpx
import pytest
import structlog

from chat_key_proxy.config import Settings
from chat_key_proxy.crypto import Cipher
from chat_key_proxy.main import create_app
from chat_key_proxy.sessions import SessionStore
from chat_key_proxy.upstream import UpstreamClient

TEST_ENCRYPTION_KEY = "00112233445566778899aabbccddeeff" * 2
TEST_API_KEY = "abc123"
TEST_CHAT_ENDPOINT = "https://api.example.com/chat"


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """httpx.MockTransport handler that records requests.

    Set ``status``/``payload`` to shape the reply, or ``error`` to raise.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status = 200
        self.payload: object = {
            "model": "codestral-latest",
            "choices": [{"message": {"role": "assistant", "content": "hi"}}],
            "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
        }
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, json=self.payload)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Keep configure_logging() from leaking cached loggers across tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def mock_env_vars():
    """Mock environment variables for testing."""
    env_vars = {
        "ENCRYPTION_KEY": TEST_ENCRYPTION_KEY,
        "HOST": "127.0.0.1",
        "PORT": "3000",
        "FRONTEND_URL": "http://localhost:8080",
        "LOG_LEVEL": "DEBUG",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        yield env_vars


@pytest.fixture
def settings(mock_env_vars) -> Settings:
    """Create Settings instance with mocked environment."""
    return Settings()


@pytest.fixture
def cipher() -> Cipher:
    return Cipher.from_hex(TEST_ENCRYPTION_KEY)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(settings, clock) -> SessionStore:
    return SessionStore(
        max_age=settings.session_max_age,
        sweep_interval=settings.session_sweep_interval,
        clock=clock,
    )


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def upstream(fake_upstream) -> UpstreamClient:
    return UpstreamClient(
        model="codestral-latest",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_upstream)),
    )


@pytest.fixture
def app(settings, cipher, store, upstream):
    return create_app(settings, cipher=cipher, store=store, upstream=upstream)


@pytest.fixture
async def client(aiohttp_client, app):
    return await aiohttp_client(app)


@pytest.fixture
async def configured_client(client):
    """Client whose cookie jar already holds a valid session."""
    resp = await client.post("/api/setup", json={
        "apiKey": TEST_API_KEY,
        "chatEndpoint": TEST_CHAT_ENDPOINT,
    })
    assert resp.status == 200
    return client
