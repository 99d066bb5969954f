"""
Client endpoints
================

GET /api/v1/clients/me                 -- profile
GET /api/v1/clients/me/bonuses         -- current balance
GET /api/v1/clients/me/bonuses/history -- ledger history
"""

from fastapi import APIRouter, Depends, Request

from mytaxi.api.dependencies import get_client_identity, get_manager
from mytaxi.api.middleware import RATE_LIMIT, limiter
from mytaxi.api.schemas import (
    BalanceResponse,
    BonusTransactionResponse,
    ClientProfileResponse,
)
from mytaxi.domain.entities import ClientIdentity
from mytaxi.services.lifecycle import OrderLifecycleManager

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/me", response_model=ClientProfileResponse, summary="My profile")
@limiter.limit(RATE_LIMIT)
async def my_profile(
    request: Request,
    identity: ClientIdentity = Depends(get_client_identity),
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.client_profile(identity)


@router.get("/me/bonuses", response_model=BalanceResponse, summary="My bonuses")
@limiter.limit(RATE_LIMIT)
async def my_bonuses(
    request: Request,
    identity: ClientIdentity = Depends(get_client_identity),
    manager: OrderLifecycleManager = Depends(get_manager),
):
    amount = await manager.balance(identity)
    return BalanceResponse(client_id=identity.client_id, bonus_amount=amount)


@router.get(
    "/me/bonuses/history",
    response_model=list[BonusTransactionResponse],
    summary="My bonus history",
)
@limiter.limit(RATE_LIMIT)
async def my_bonus_history(
    request: Request,
    identity: ClientIdentity = Depends(get_client_identity),
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.bonus_history(identity)
