"""
Shared pytest fixtures for the reward settings tests.

Provides an in-memory SQLite database wired into the app through
dependency overrides, an httpx client over ASGI, and a session token minter.
"""

import os

# Settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SHOPIFY_API_KEY", "test-api-key")
os.environ.setdefault("SHOPIFY_API_SECRET", "test-api-secret")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db
from app.main import app


SHOP = "shop1.myshopify.com"


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# -----------------------------------------------------------------------------
# HTTP Fixtures
# -----------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(session_factory):
    """httpx client talking to the app with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# -----------------------------------------------------------------------------
# Session Token Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def make_session_token() -> Callable[..., str]:
    """Mint App Bridge style session tokens; keyword args override claims."""

    def _make(shop: str = SHOP, secret: str | None = None, **claims: Any) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "iss": f"https://{shop}/admin",
            "dest": f"https://{shop}",
            "aud": settings.SHOPIFY_API_KEY,
            "sub": "42",
            "exp": now + timedelta(minutes=1),
            "nbf": now - timedelta(seconds=5),
            "iat": now - timedelta(seconds=5),
            "jti": "test-jti",
        }
        payload.update(claims)
        payload = {key: value for key, value in payload.items() if value is not None}
        return jwt.encode(
            payload,
            secret or settings.SHOPIFY_API_SECRET,
            algorithm=settings.SESSION_TOKEN_ALGORITHM,
        )

    return _make


@pytest.fixture
def auth_headers(make_session_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_session_token()}"}
