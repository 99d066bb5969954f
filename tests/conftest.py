"""
Shared test fixtures.

Uses a throw-away SQLite file database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  A file rather than ``:memory:`` lets every
session open its own connection, the way the PostgreSQL pool does.
Per-client sections use the in-process lock provider.
"""

import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mytaxi.domain.bonus import StandardBonusPolicy
from mytaxi.domain.entities import ClientIdentity, OrderRequest
from mytaxi.infrastructure.database import Base, build_engine, build_session_factory
from mytaxi.infrastructure.locks import LocalLockProvider
from mytaxi.infrastructure.repositories import ClientRepository, DriverRepository
from mytaxi.services.lifecycle import OrderLifecycleManager


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh database, yield a factory, then dispose."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'mytaxi.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def policy() -> StandardBonusPolicy:
    return StandardBonusPolicy(bonus_rate=0.05, cancellation_rate=0.01)


@pytest.fixture
def manager(session_factory, policy) -> OrderLifecycleManager:
    return OrderLifecycleManager(session_factory, policy, LocalLockProvider(5.0))


# ── Helpers ───────────────────────────────────────────────────────────


async def create_client(
    session_factory, bonus_amount: float = 0.0, name: str = "Olena"
) -> ClientIdentity:
    async with session_factory() as session:
        client = await ClientRepository(session).create_client(
            name=name,
            email=f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
            bonus_amount=bonus_amount,
        )
        await session.commit()
        return ClientIdentity(client.id)


async def create_driver(session_factory, name: str = "Petro") -> int:
    async with session_factory() as session:
        driver = await DriverRepository(session).create_driver(
            name=name,
            email=f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
            car="Skoda Octavia",
        )
        await session.commit()
        return driver.id


def trip(price: float = 150.0, pay_with_bonuses: bool = False, **kwargs) -> OrderRequest:
    return OrderRequest(
        price=price,
        origin=kwargs.pop("origin", "Khreshchatyk St, 22"),
        destination=kwargs.pop("destination", "Boryspil Airport"),
        pay_with_bonuses=pay_with_bonuses,
        **kwargs,
    )
