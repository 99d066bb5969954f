"""
Order endpoints (client side)
=============================

POST /api/v1/orders                  -- place an order
GET  /api/v1/orders                  -- caller's orders, newest first
GET  /api/v1/orders/{order_id}       -- one of the caller's orders
GET  /api/v1/orders/status/{hash}    -- status link shared with the client
POST /api/v1/orders/cancel/{hash}    -- cancel via status link
POST /api/v1/orders/{order_id}/rating -- rate a finished trip

Domain errors are mapped to HTTP codes by the handler in ``mytaxi.api.app``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from mytaxi.api.dependencies import get_client_identity, get_manager
from mytaxi.api.middleware import RATE_LIMIT, limiter
from mytaxi.api.schemas import (
    ErrorResponse,
    OrderCreateRequest,
    OrderResponse,
    OrderViewResponse,
    RatingRequest,
)
from mytaxi.domain.entities import ClientIdentity, OrderRequest
from mytaxi.services.lifecycle import OrderLifecycleManager

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    status_code=201,
    response_model=OrderResponse,
    summary="Place a new order",
    responses={
        409: {"model": ErrorResponse, "description": "Active order exists or not enough bonuses."},
        422: {"model": ErrorResponse, "description": "All invalid fields at once."},
    },
)
@limiter.limit(RATE_LIMIT)
async def create_order(
    request: Request,
    body: OrderCreateRequest,
    identity: ClientIdentity = Depends(get_client_identity),
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.create_order(
        identity, OrderRequest(**body.model_dump())
    )


@router.get("", response_model=list[OrderResponse], summary="List my orders")
@limiter.limit(RATE_LIMIT)
async def list_orders(
    request: Request,
    identity: ClientIdentity = Depends(get_client_identity),
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.list_orders(identity)


@router.get(
    "/status/{order_hash}",
    response_model=OrderViewResponse,
    summary="Order status by link token",
)
@limiter.limit(RATE_LIMIT)
async def order_status(
    request: Request,
    order_hash: str,
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.order_status(order_hash)


@router.post(
    "/cancel/{order_hash}",
    response_model=OrderResponse,
    summary="Cancel an order",
    description=(
        "Transitions a CREATED or ACTIVE order to CANCELLED. Returning "
        "clients get part of the price back as bonuses; first-timers don't."
    ),
)
@limiter.limit(RATE_LIMIT)
async def cancel_order(
    request: Request,
    order_hash: str,
    identity: ClientIdentity = Depends(get_client_identity),
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.cancel_order(order_hash, identity)


@router.get(
    "/{order_id}",
    response_model=OrderViewResponse,
    summary="One of my orders",
)
@limiter.limit(RATE_LIMIT)
async def get_order(
    request: Request,
    order_id: int,
    identity: ClientIdentity = Depends(get_client_identity),
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.get_order(identity, order_id)


@router.post(
    "/{order_id}/rating",
    response_model=OrderResponse,
    summary="Rate a finished trip",
)
@limiter.limit(RATE_LIMIT)
async def rate_trip(
    request: Request,
    order_id: int,
    body: RatingRequest,
    identity: ClientIdentity = Depends(get_client_identity),
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.rate_trip(order_id, body.rating, identity)
