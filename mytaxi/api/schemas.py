"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from mytaxi.domain.enums import BonusTransactionKind, OrderStatus


# ── Requests ──────────────────────────────────────────────────────────


class OrderCreateRequest(BaseModel):
    # Field rules live in ``OrderRequest.validate`` so every error is
    # reported together; only types are checked here.
    price: Optional[float] = None
    origin: str = ""
    destination: str = ""
    pay_with_bonuses: bool = False
    car_class: Optional[str] = Field(None, max_length=40)
    for_another_person: bool = False
    passenger_name: Optional[str] = None
    passenger_phone: Optional[str] = None


class RatingRequest(BaseModel):
    rating: int


class TopUpRequest(BaseModel):
    amount: float


class ClientCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=255)
    phone_number: Optional[str] = Field(None, max_length=20)
    bonus_amount: float = Field(0.0, ge=0)


class DriverCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=255)
    car: Optional[str] = Field(None, max_length=120)


# ── Responses ─────────────────────────────────────────────────────────


class OrderResponse(BaseModel):
    id: int
    hash: str
    client_id: int
    driver_id: Optional[int] = None
    price: Optional[float] = None
    pay_with_bonuses: bool
    status: OrderStatus
    rating: Optional[int] = None
    origin: str
    destination: str
    car_class: Optional[str] = None
    for_another_person: bool = False
    passenger_name: Optional[str] = None
    passenger_phone: Optional[str] = None
    created_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DriverResponse(BaseModel):
    id: int
    name: str
    car: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderViewResponse(BaseModel):
    order: OrderResponse
    bonus_amount: float
    driver: Optional[DriverResponse] = None

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    client_id: int
    bonus_amount: float


class BonusTransactionResponse(BaseModel):
    id: int
    order_id: Optional[int] = None
    amount: float
    kind: BonusTransactionKind
    balance_after: float
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ClientResponse(BaseModel):
    id: int
    phone_number: Optional[str] = None
    bonus_amount: float
    has_active_order: bool

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: int
    name: str
    email: str


class ClientProfileResponse(BaseModel):
    user: UserResponse
    phone_number: Optional[str] = None
    rating: float
    bonus_amount: float
    has_active_order: bool


class HealthResponse(BaseModel):
    status: str = "ok"


class FieldErrorResponse(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    detail: str
    errors: list[FieldErrorResponse] = []
