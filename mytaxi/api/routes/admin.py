"""
Admin / observability endpoints
===============================

POST /api/v1/admin/clients                 -- register a client
POST /api/v1/admin/drivers                 -- register a driver
POST /api/v1/admin/clients/{id}/bonuses    -- top up a client's bonuses
GET  /api/v1/admin/health                  -- simple health check
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mytaxi.api.dependencies import get_db, get_manager
from mytaxi.api.middleware import RATE_LIMIT, limiter
from mytaxi.api.schemas import (
    BalanceResponse,
    ClientCreateRequest,
    ClientResponse,
    DriverCreateRequest,
    DriverResponse,
    HealthResponse,
    TopUpRequest,
)
from mytaxi.infrastructure.repositories import ClientRepository, DriverRepository
from mytaxi.services.lifecycle import OrderLifecycleManager

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/clients",
    status_code=201,
    response_model=ClientResponse,
    summary="Register a client",
)
@limiter.limit(RATE_LIMIT)
async def create_client(
    request: Request,
    body: ClientCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await ClientRepository(db).create_client(**body.model_dump())


@router.post(
    "/drivers",
    status_code=201,
    response_model=DriverResponse,
    summary="Register a driver",
)
@limiter.limit(RATE_LIMIT)
async def create_driver(
    request: Request,
    body: DriverCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await DriverRepository(db).create_driver(**body.model_dump())


@router.post(
    "/clients/{client_id}/bonuses",
    response_model=BalanceResponse,
    summary="Top up a client's bonuses",
)
@limiter.limit(RATE_LIMIT)
async def top_up(
    request: Request,
    client_id: int,
    body: TopUpRequest,
    manager: OrderLifecycleManager = Depends(get_manager),
):
    amount = await manager.top_up(client_id, body.amount)
    return BalanceResponse(client_id=client_id, bonus_amount=amount)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
