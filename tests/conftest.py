"""Shared test fixtures."""

import asyncio
import json
import os
from urllib.parse import parse_qs

# Settings are read at import time; keep the module-level engine off disk
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CLIENT_ID", "test-client")
os.environ.setdefault("CLIENT_SECRET", "test-secret")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from banklink.api.payments import get_coordinator
from banklink.config import Credentials
from banklink.database import init_db
from banklink.engine.coordinator import PaymentCoordinator
from banklink.engine.token_cache import TokenCache
from banklink.errors import UpstreamError
from banklink.main import app
from banklink.providers.base import AccessToken, CreatePaymentRequest, PaymentAuthorization, UpstreamClient
from banklink.providers.truelayer import TrueLayerClient
from banklink.repository.sql import SqlPaymentRepository

AUTH_URL = "https://auth.truelayer.test"
PAY_URL = "https://pay-api.truelayer.test"
CREDENTIALS = Credentials(client_id="test-client", client_secret="test-secret")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream(UpstreamClient):
    """In-process TrueLayer stand-in that records every call."""

    def __init__(self):
        self.token_ttl = 3600
        self.token_delay = 0.0
        self.token_error: UpstreamError | None = None
        self.token_calls = 0
        self.created: list[tuple[str, CreatePaymentRequest]] = []
        self.status_queries: list[str] = []
        self.statuses: dict[str, str] = {}
        self.providers = b'{"results":[{"provider_id":"ob-sandbox-natwest"}]}'

    async def issue_token(self, client_id: str, client_secret: str) -> AccessToken:
        self.token_calls += 1
        if self.token_delay:
            await asyncio.sleep(self.token_delay)
        if self.token_error is not None:
            raise self.token_error
        return AccessToken(value=f"token-{self.token_calls}", expires_in=self.token_ttl)

    async def create_payment(self, token: str, request: CreatePaymentRequest) -> PaymentAuthorization:
        self.created.append((token, request))
        upstream_id = f"T{len(self.created)}"
        return PaymentAuthorization(upstream_id=upstream_id, auth_uri=f"https://auth.example/{upstream_id}")

    async def get_payment_status(self, token: str, upstream_id: str) -> str:
        self.status_queries.append(upstream_id)
        if upstream_id not in self.statuses:
            raise UpstreamError(f"Unknown payment {upstream_id}", status_code=404)
        return self.statuses[upstream_id]

    async def list_providers(self) -> bytes:
        return self.providers


class MockTrueLayer:
    """httpx.MockTransport handler speaking the TrueLayer wire contract."""

    def __init__(self):
        self.token_ttl = 3600
        self.token_delay = 0.0
        self.token_requests: list[dict[str, list[str]]] = []
        self.created: list[dict] = []
        self.authorizations: list[str] = []
        self.simp_ids: list[str] = []
        self.auth_uri = "https://auth.example/x"
        self.statuses: dict[str, str] = {}
        self.providers = b'{"results":[{"provider_id":"ob-sandbox-natwest","display_name":"NatWest"}]}'
        self.provider_queries: list[str] = []

    @property
    def token_calls(self) -> int:
        return len(self.token_requests)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if request.url.host == "auth.truelayer.test" and path == "/connect/token":
            self.token_requests.append(parse_qs(request.content.decode()))
            n = self.token_calls
            if self.token_delay:
                await asyncio.sleep(self.token_delay)
            return httpx.Response(200, json={
                "access_token": f"tok-{n}",
                "expires_in": self.token_ttl,
                "token_type": "Bearer",
                "scope": "payments",
            })

        if request.method == "POST" and path == "/single-immediate-payments":
            self.created.append(json.loads(request.content))
            self.authorizations.append(request.headers.get("Authorization", ""))
            simp_id = self.simp_ids.pop(0) if self.simp_ids else f"T{len(self.created)}"
            return httpx.Response(200, json={"results": [{"simp_id": simp_id, "auth_uri": self.auth_uri}]})

        if request.method == "GET" and path.startswith("/single-immediate-payments/"):
            simp_id = path.rsplit("/", 1)[1]
            self.authorizations.append(request.headers.get("Authorization", ""))
            if simp_id not in self.statuses:
                return httpx.Response(404, json={"error": "not_found"})
            return httpx.Response(200, json={"results": [{"simp_id": simp_id, "status": self.statuses[simp_id]}]})

        if request.method == "GET" and path == "/providers":
            self.provider_queries.append(request.url.params.get("capability", ""))
            return httpx.Response(200, content=self.providers, headers={"Content-Type": "application/json"})

        return httpx.Response(404, json={"error": "unexpected request"})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_upstream():
    return FakeUpstream()


@pytest.fixture
def mock_truelayer():
    return MockTrueLayer()


@pytest_asyncio.fixture
async def truelayer_client(mock_truelayer):
    client = TrueLayerClient(AUTH_URL, PAY_URL, timeout=20.0, transport=httpx.MockTransport(mock_truelayer))
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh SQLite file database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'payments.db'}", echo=False)
    await init_db(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def repository(session_factory):
    return SqlPaymentRepository(session_factory)


@pytest.fixture
def token_cache(fake_upstream, clock):
    return TokenCache(fake_upstream, CREDENTIALS, safety_margin=10.0, clock=clock)


@pytest.fixture
def coordinator(repository, fake_upstream, token_cache):
    return PaymentCoordinator(repository, fake_upstream, token_cache)


@pytest.fixture
def wire_coordinator(repository, truelayer_client, clock):
    """Coordinator talking to the mocked TrueLayer over real HTTP plumbing."""
    cache = TokenCache(truelayer_client, CREDENTIALS, safety_margin=10.0, clock=clock)
    return PaymentCoordinator(repository, truelayer_client, cache)


@pytest.fixture
def api_app(wire_coordinator):
    app.dependency_overrides[get_coordinator] = lambda: wire_coordinator
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(api_app):
    # ASGITransport skips the lifespan, which would wire the real TrueLayer client
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
