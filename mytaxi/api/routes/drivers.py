"""
Driver-side endpoints
=====================

POST /api/v1/drivers/{driver_id}/orders/{order_id}/accept -- CREATED -> ACTIVE
POST /api/v1/drivers/orders/{order_id}/finish             -- trip completed
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from mytaxi.api.dependencies import get_manager
from mytaxi.api.middleware import RATE_LIMIT, limiter
from mytaxi.api.schemas import OrderResponse
from mytaxi.services.lifecycle import OrderLifecycleManager

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.post(
    "/{driver_id}/orders/{order_id}/accept",
    response_model=OrderResponse,
    summary="Driver takes an order",
)
@limiter.limit(RATE_LIMIT)
async def accept_order(
    request: Request,
    driver_id: int,
    order_id: int,
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.assign_driver(order_id, driver_id)


@router.post(
    "/orders/{order_id}/finish",
    response_model=OrderResponse,
    summary="Finish a trip",
    description="Credits the client with bonuses earned for the trip.",
)
@limiter.limit(RATE_LIMIT)
async def finish_order(
    request: Request,
    order_id: int,
    manager: OrderLifecycleManager = Depends(get_manager),
):
    return await manager.finish_order(order_id)
