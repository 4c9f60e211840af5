"""
Shared pytest fixtures for the fest registration tests.

Sets required environment variables BEFORE any festbot module is imported so
that pydantic-settings and SQLAlchemy engine initialisation use safe test
values.
"""
from __future__ import annotations

import os
from typing import Any, AsyncGenerator, Dict, List

# ── Set env vars before any festbot import ────────────────────────────────────
os.environ.setdefault("BOT_TOKEN", "test-token-for-pytest")
os.environ.setdefault("ADMIN_IDS", "123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CODE_COHORT", "23")
os.environ.setdefault("PAYMENT_KEY_SECRET", "test-secret")

# ── Third-party ───────────────────────────────────────────────────────────────
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# ── festbot imports (safe after env vars are set) ─────────────────────────────
from festbot.errors import Unavailable
from festbot.models.base import Base
from festbot.services.payment_provider import ProviderOrder


# ── DB fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a fresh AsyncSession backed by an isolated in-memory SQLite database.
    Schema is created fresh for every test function; engine is always disposed
    on teardown, even if the test raises an exception.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with factory() as session:
            yield session
    finally:
        await engine.dispose()


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Session factory over a file-backed SQLite database, for code that opens
    its own sessions (the payment callback endpoint).
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fest.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


# ── Payment provider stub ─────────────────────────────────────────────────────

class FakeProvider:
    """In-process PaymentProvider: records calls, hands out sequential refs."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.down = False

    async def create_order(self, amount: int, metadata: Dict[str, Any]) -> ProviderOrder:
        if self.down:
            raise Unavailable("provider down")
        self.calls.append({"amount": amount, **metadata})
        ref = f"plink_{len(self.calls):04d}"
        return ProviderOrder(provider_ref=ref, checkout_url=f"https://pay.example/{ref}")


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()
