"""
Shared fixtures for Tally backend integration tests.

Runs against an in-memory SQLite database by default (aiosqlite); point
TEST_DATABASE_URL at a PostgreSQL database to run the same suite there.
Tables are created before and dropped after every test, so each test
starts with a clean slate.  The LLM client is replaced by FakeLLMClient,
which returns canned replies instead of calling the network.
"""
from __future__ import annotations

import os
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Override settings *before* any app module is imported, so that
# settings and the global engine pick them up.
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["LLM_API_KEY"] = ""

from app.database import Base, build_engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.services.llm_client import LLMClient, LLMNotConfiguredError, get_llm_client  # noqa: E402


class FakeLLMClient(LLMClient):
    """LLMClient that pops canned replies and records every call."""

    def __init__(self, configured: bool = True) -> None:
        super().__init__(
            base_url="http://llm.test/v1",
            api_key="test-key" if configured else "",
            model="fake-model",
        )
        self.replies: List[str] = []
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages, temperature=0.7):
        if not self.is_configured:
            raise LLMNotConfiguredError("LLM_API_KEY is not configured")
        self.calls.append({"messages": messages, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

def _make_engine():
    return build_engine(TEST_DATABASE_URL)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. After the test, all tables are dropped
    so each test starts with a clean slate.
    """
    engine = _make_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, fake_llm: FakeLLMClient
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB and LLM
    dependencies overridden.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_llm_client] = lambda: fake_llm

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {
    "X-User-Id": "test-user-1",
    "X-User-Email": "test1@example.com",
    "X-User-Name": "Test User 1",
}

AUTH_HEADERS_USER2 = {
    "X-User-Id": "test-user-2",
    "X-User-Email": "test2@example.com",
    "X-User-Name": "Test User 2",
}

ADMIN_HEADERS = {
    "X-User-Id": "admin-user",
    "X-User-Email": "admin@example.com",
    "X-User-Name": "Admin User",
}


def event_payload(**overrides: Any) -> Dict[str, Any]:
    """A valid POST /api/events body; keyword arguments replace fields."""
    payload: Dict[str, Any] = {
        "date": "2026-03-10",
        "start_time": "10:00",
        "duration_hours": 2,
        "client_name": "Dana Levi",
        "event_type": "meeting",
        "rate_type": "hourly",
        "rate": 300,
    }
    payload.update(overrides)
    return payload


async def create_event(
    client: AsyncClient, headers: Optional[Dict[str, str]] = None, **overrides: Any
) -> Dict[str, Any]:
    resp = await client.post(
        "/api/events", json=event_payload(**overrides), headers=headers or AUTH_HEADERS
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
