"""FastAPI dependency injection helpers."""

from functools import lru_cache

from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mytaxi.config import settings
from mytaxi.domain.bonus import policy_from_settings
from mytaxi.domain.entities import ClientIdentity
from mytaxi.infrastructure.database import async_session_factory
from mytaxi.infrastructure.locks import lock_provider_from_settings
from mytaxi.services.lifecycle import OrderLifecycleManager


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@lru_cache
def get_manager() -> OrderLifecycleManager:
    return OrderLifecycleManager(
        async_session_factory,
        policy_from_settings(settings),
        lock_provider_from_settings(settings),
    )


async def get_client_identity(
    x_client_id: int | None = Header(default=None),
) -> ClientIdentity:
    """Identity comes from the upstream auth gateway as ``X-Client-Id``."""
    if x_client_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return ClientIdentity(client_id=x_client_id)
