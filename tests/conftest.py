"""
Pytest configuration and fixtures.
"""

import asyncio
import os
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "true"
os.environ["API_TYPE"] = "placeholder"
os.environ["QUOTA_BACKEND"] = "memory"
os.environ["HUGGINGFACE_API_KEY"] = "hf_test_secret_token_123456"
os.environ.pop("VITE_HUGGINGFACE_API_KEY", None)
os.environ.pop("PROXY_URL", None)
for _name in ("REPLICATE_API_KEY", "STABILITY_API_KEY", "OPENAI_API_KEY"):
    os.environ.pop(_name, None)
    os.environ.pop(f"VITE_{_name}", None)
os.environ["REDIS_URL"] = "redis://localhost:6379/15"

TEST_API_KEY = os.environ["HUGGINGFACE_API_KEY"]

# Smallest valid PNG payload used for fake upstream responses
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


# ============ App Fixtures ============


@pytest.fixture
def app():
    """The FastAPI application, with dependency overrides cleared afterwards."""
    from api.main import app

    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """Synchronous test client."""
    return TestClient(app)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Asynchronous test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture(autouse=True)
def reset_quota_singleton():
    """Start each test with an empty in-memory quota."""
    from services.quota_service import reset_quota_service

    reset_quota_service()
    yield
    reset_quota_service()


# ============ Mock Redis ============


class MockPipeline:
    """Queues commands and applies them together on execute()."""

    def __init__(self, redis: "MockRedis"):
        self._redis = redis
        self._commands: list[tuple[str, tuple]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self._commands.clear()

    def incr(self, key: str):
        self._commands.append(("incr", (key,)))
        return self

    def expire(self, key: str, seconds: int):
        self._commands.append(("expire", (key, seconds)))
        return self

    async def execute(self) -> list:
        # Other tasks may run here, before the queued commands apply
        await asyncio.sleep(0)
        results = [self._redis._apply(name, *args) for name, args in self._commands]
        self._commands.clear()
        return results


class MockRedis:
    """Mock Redis client for testing."""

    def __init__(self):
        self._data: dict[str, Any] = {}
        self._expiry: dict[str, int] = {}

    def _apply(self, name: str, *args):
        if name == "incr":
            (key,) = args
            value = int(self._data.get(key, 0)) + 1
            self._data[key] = str(value)
            return value
        if name == "expire":
            key, seconds = args
            self._expiry[key] = seconds
            return key in self._data
        raise AssertionError(f"Unsupported command {name}")

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(0)
        return self._data.get(key)

    async def set(self, key: str, value: str, ex: int = None) -> bool:
        self._data[key] = value
        if ex:
            self._expiry[key] = ex
        return True

    async def incr(self, key: str) -> int:
        return self._apply("incr", key)

    async def expire(self, key: str, seconds: int) -> bool:
        return self._apply("expire", key, seconds)

    def pipeline(self, transaction: bool = True) -> MockPipeline:
        return MockPipeline(self)

    async def delete(self, key: str) -> int:
        if key in self._data:
            del self._data[key]
            return 1
        return 0

    async def ping(self) -> bool:
        return True

    async def aclose(self):
        pass


@pytest.fixture
def mock_redis():
    """Create a mock Redis instance."""
    return MockRedis()


# ============ Upstream Fakes ============


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


class ScriptedTransport(httpx.MockTransport):
    """
    httpx transport that replays scripted responses in order.

    Each script entry is an httpx.Response, an exception instance to raise,
    or a callable taking the request.
    """

    def __init__(self, script: list):
        self.script = list(script)
        self.requests: list[httpx.Request] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.script:
            raise AssertionError(f"Unexpected request to {request.url}")
        entry = self.script.pop(0)
        if isinstance(entry, Exception):
            raise entry
        if callable(entry):
            return entry(request)
        return entry

    @property
    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def scripted_transport():
    """Factory for ScriptedTransport instances."""
    return ScriptedTransport


# ============ Fake Providers ============


class FakeProvider:
    """Provider double returning a fixed payload or raising a fixed error."""

    name = "fake"
    display_name = "Fake Provider"
    is_available = True

    def __init__(self, payload=None, error: Exception | None = None):
        from services.providers.base import ImagePayload

        self.payload = payload or ImagePayload(data=PNG_BYTES)
        self.error = error
        self.requests = []
        self.closed = False

    async def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.payload

    async def health_check(self) -> dict:
        return {"status": "healthy"}

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_factory():
    """Factory for FakeProvider instances with a custom payload or error."""
    return FakeProvider

