"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings, set before any app import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REFERRAL_REPLAY_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Account, Base
from app.services.referral.commission_schedule import CommissionScheduleService


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.add = MagicMock()
    session.expunge = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def file_session_maker(tmp_path):
    """
    Session factory on a file-backed database.

    Each session gets its own connection, so two sessions can race
    against each other the way two workers would.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker):
    """Database session for one test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def account_factory(db_session):
    """
    Create committed accounts and return their ids.

    Usage:
        account_id = await account_factory(points=100, referred_by_id=7)
    """

    async def _create(
        referred_by_id: int | None = None,
        points: int = 0,
        cash: Decimal = Decimal("0"),
        username: str | None = None,
        is_active: bool = True,
    ) -> int:
        account = Account(
            username=username,
            referred_by_id=referred_by_id,
            points_balance=points,
            cash_balance=cash,
            is_active=is_active,
        )
        db_session.add(account)
        await db_session.commit()
        return account.id

    return _create


@pytest.fixture
def chain_factory(account_factory):
    """
    Create a referral chain and return ids source-first.

    chain_factory(3) returns [u1, u2, u3] where u2 referred u1 and
    u3 referred u2 (u3 is the top of the chain).
    """

    async def _create(length: int) -> list[int]:
        ids: list[int] = []
        referrer_id = None
        for index in range(length):
            referrer_id = await account_factory(
                referred_by_id=referrer_id,
                username=f"u{length - index}",
            )
            ids.append(referrer_id)
        return list(reversed(ids))

    return _create


@pytest.fixture
def schedule_factory(db_session):
    """Save a commission schedule version from (level, type, value[, active])."""

    async def _create(*rows: tuple) -> None:
        entries = []
        for row in rows:
            level, commission_type, value, *rest = row
            entries.append(
                {
                    "level": level,
                    "commission_type": commission_type,
                    "commission_value": Decimal(str(value)),
                    "is_active": rest[0] if rest else True,
                }
            )
        await CommissionScheduleService(db_session).replace_schedule(entries)

    return _create
