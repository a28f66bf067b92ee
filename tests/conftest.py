"""Pytest configuration and fixtures."""

import asyncio
import json
import os
import time
from typing import Any, AsyncGenerator, Optional
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ["STELLA_ENVIRONMENT"] = "test"
os.environ["STELLA_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STELLA_API_BASE_URL"] = "http://stella.test"
os.environ["STELLA_DEBUG"] = "false"

from stella.anchor.client import AnchorApiClient
from stella.config import TESTNET_PASSPHRASE, get_settings
from stella.storage.models import Base
from stella.wallet.base import WalletExtension
from stella.wallet.session import WalletSession
from stella.wallet.store import SessionStore

get_settings.cache_clear()

ADDRESS = "GABCDEFGHIJKLMNOPQRSTUVWXYZ234567ABCDEFGHIJKLMNOPQRSTUVW"
OTHER_ADDRESS = "GZYXWVUTSRQPONMLKJIHGFEDCBA765432ZYXWVUTSRQPONMLKJIHGFE"
ANCHOR = "testanchor.stellar.org"
SRT_ISSUER = "GCDNJUBQSX7AJWLJACMJ7I4BC3Z47BQUTMHEICZLE6MU4KQBRYG5JY6B"
INTERACTIVE_URL = "https://testanchor.stellar.org/sep24/interactive?token=abc"


class FakeAnchorApi:
    """In-process stand-in for the anchor proxy API.

    Records every request and serves canned responses per endpoint.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, tuple[int, dict]] = {}
        self.statuses: list[Any] = [{"status": "pending_user_transfer_start"}]
        self.interactive_url: Optional[str] = INTERACTIVE_URL
        self.missing_trustlines: list[str] = []
        self.token_expires_at: Optional[float] = None
        self.status_started = asyncio.Event()
        self.status_gate: Optional[asyncio.Event] = None
        self._next_flow = 0

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def count(self, prefix: str) -> int:
        return sum(1 for path in self.paths if path.startswith(prefix))

    def body(self, index: int) -> dict:
        return json.loads(self.requests[index].content)

    def fail(self, prefix: str, status_code: int = 400, body: Optional[dict] = None) -> None:
        self.failures[prefix] = (status_code, body or {"message": "rejected"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        for prefix, (status_code, body) in self.failures.items():
            if path.startswith(prefix):
                return httpx.Response(status_code, json=body)

        if path == "/api/sep10/challenge":
            return httpx.Response(200, json={
                "success": True,
                "challengeXdr": "AAAA-challenge",
                "networkPassphrase": TESTNET_PASSPHRASE,
                "authEndpoint": f"https://{ANCHOR}/auth",
            })

        if path == "/api/sep10/submit":
            expires_at = self.token_expires_at or (time.time() + 3600) * 1000
            return httpx.Response(200, json={
                "success": True,
                "token": "jwt-token",
                "expiresAt": expires_at,
            })

        if path == "/api/sep24/initiate":
            self._next_flow += 1
            return httpx.Response(200, json={
                "success": True,
                "type": "interactive_customer_info_needed",
                "id": f"flow-{self._next_flow}",
                "url": self.interactive_url,
            })

        if path.startswith("/api/sep24/status/"):
            self.status_started.set()
            if self.status_gate is not None:
                await self.status_gate.wait()
            item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            if isinstance(item, Exception):
                raise item
            return httpx.Response(200, json=item)

        if path == "/api/trustlines/check":
            return httpx.Response(200, json={
                "success": True,
                "data": {"missingTrustlines": self.missing_trustlines, "accountExists": True},
            })

        return httpx.Response(404, json={"message": "not found"})


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(session_factory) -> SessionStore:
    return SessionStore(session_factory)


@pytest.fixture
def extension() -> AsyncMock:
    """Wallet extension that grants access to ADDRESS and signs everything."""
    ext = AsyncMock(spec=WalletExtension)
    ext.name = "freighter"
    ext.is_connected.return_value = {"isConnected": True}
    ext.is_allowed.return_value = {"isAllowed": True}
    ext.request_access.return_value = {"address": ADDRESS}
    ext.get_address.return_value = {"address": ADDRESS}
    ext.sign_transaction.return_value = {"signedTxXdr": "AAAA-signed", "signerAddress": ADDRESS}
    return ext


@pytest_asyncio.fixture
async def wallet(extension, store) -> WalletSession:
    """Session without a connection yet."""
    return WalletSession(extension, store=store, probe_timeout=0.5)


@pytest_asyncio.fixture
async def connected_wallet(wallet) -> WalletSession:
    """Session connected through the extension."""
    await wallet.connect()
    return wallet


@pytest.fixture
def fake_api() -> FakeAnchorApi:
    return FakeAnchorApi()


@pytest.fixture
def api(fake_api) -> AnchorApiClient:
    return AnchorApiClient(base_url="http://stella.test", timeout=2.0, transport=fake_api.transport())
