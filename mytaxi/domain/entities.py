"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Order``: enforces valid lifecycle transitions
  (CREATED -> ACTIVE -> FINISHED | CANCELLED).
- ``Client`` embeds a ``User`` identity value instead of extending it.
- ``OrderRequest.validate`` collects every field error in one pass so a
  caller can fix all of them in a single round trip.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .enums import ACTIVE_STATUSES, ORDER_TRANSITIONS, OrderStatus
from .errors import FieldError, IllegalTransition, InvalidRating

MIN_RATING = 1
MAX_RATING = 5
MAX_ADDRESS_LENGTH = 255

# Canonical phone format: "+" followed by up to 12 digits (13 chars total).
PHONE_RE = re.compile(r"^\+?\d{7,12}$")


def ensure_transition(current: OrderStatus, new: OrderStatus) -> None:
    """Raise ``IllegalTransition`` unless *current* -> *new* is allowed."""
    allowed = ORDER_TRANSITIONS.get(OrderStatus(current), set())
    if OrderStatus(new) not in allowed:
        raise IllegalTransition(
            f"Cannot transition from {OrderStatus(current).value} "
            f"to {OrderStatus(new).value}"
        )


def ensure_rating(rating: int) -> None:
    if (
        isinstance(rating, bool)
        or not isinstance(rating, int)
        or not MIN_RATING <= rating <= MAX_RATING
    ):
        raise InvalidRating(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating!r}"
        )


def normalize_phone(phone: str) -> str:
    """Strip separators so ``+380-671-234-567`` and ``+380671234567`` match."""
    return re.sub(r"[\s\-()]", "", phone or "")


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str


@dataclass(frozen=True)
class ClientIdentity:
    """Who is acting.  Passed explicitly into every lifecycle call."""

    client_id: int


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Client:
    user: User
    phone_number: Optional[str] = None
    rating: float = 5.0
    bonus_amount: float = 0.0
    has_active_order: bool = False

    @property
    def client_id(self) -> int:
        return self.user.id

    @classmethod
    def from_models(cls, client_row, user_row) -> "Client":
        return cls(
            user=User(id=user_row.id, name=user_row.name, email=user_row.email),
            phone_number=client_row.phone_number,
            rating=client_row.rating,
            bonus_amount=client_row.bonus_amount,
            has_active_order=client_row.has_active_order,
        )


@dataclass
class Driver:
    id: int
    name: str
    car: Optional[str] = None
    is_available: bool = True


@dataclass
class Order:
    id: Optional[int] = None
    hash: Optional[str] = None
    client_id: int = 0
    driver_id: Optional[int] = None
    price: float = 0.0
    pay_with_bonuses: bool = False
    status: OrderStatus = OrderStatus.CREATED
    rating: Optional[int] = None
    origin: str = ""
    destination: str = ""
    car_class: Optional[str] = None
    for_another_person: bool = False
    passenger_name: Optional[str] = None
    passenger_phone: Optional[str] = None
    created_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def transition_to(self, new_status: OrderStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        ensure_transition(self.status, new_status)
        self.status = new_status

    def rate(self, rating: int) -> None:
        ensure_rating(rating)
        if self.status != OrderStatus.FINISHED:
            raise IllegalTransition(
                f"Only finished trips can be rated (status {self.status.value})"
            )
        if self.rating is not None:
            raise IllegalTransition("Trip has already been rated")
        self.rating = rating

    @classmethod
    def from_model(cls, row) -> "Order":
        return cls(
            id=row.id,
            hash=row.hash,
            client_id=row.client_id,
            driver_id=row.driver_id,
            price=row.price,
            pay_with_bonuses=row.pay_with_bonuses,
            status=OrderStatus(row.status),
            rating=row.rating,
            origin=row.origin,
            destination=row.destination,
            car_class=row.car_class,
            for_another_person=row.for_another_person,
            passenger_name=row.passenger_name,
            passenger_phone=row.passenger_phone,
            created_at=row.created_at,
            finished_at=row.finished_at,
        )


@dataclass
class OrderView:
    """What a client sees behind a status link."""

    order: Order
    bonus_amount: float
    driver: Optional[Driver] = None


# ── Requests ──────────────────────────────────────────────────────────


@dataclass
class OrderRequest:
    price: Optional[float]
    origin: str
    destination: str
    pay_with_bonuses: bool = False
    car_class: Optional[str] = None
    for_another_person: bool = False
    passenger_name: Optional[str] = None
    passenger_phone: Optional[str] = None

    def validate(self) -> list[FieldError]:
        errors: list[FieldError] = []

        if self.price is None or not math.isfinite(self.price):
            errors.append(FieldError("price", "Price is required"))
        elif self.price < 0:
            errors.append(FieldError("price", "Price must not be negative"))

        for name in ("origin", "destination"):
            value = (getattr(self, name) or "").strip()
            if not value:
                errors.append(FieldError(name, f"{name.capitalize()} is required"))
            elif len(value) > MAX_ADDRESS_LENGTH:
                errors.append(
                    FieldError(name, f"Keep it under {MAX_ADDRESS_LENGTH} characters")
                )

        if (
            (self.origin or "").strip()
            and (self.origin or "").strip().lower()
            == (self.destination or "").strip().lower()
        ):
            errors.append(
                FieldError("destination", "Destination must differ from origin")
            )

        if self.for_another_person:
            if not (self.passenger_name or "").strip():
                errors.append(
                    FieldError("passenger_name", "Passenger name is required")
                )
            phone = normalize_phone(self.passenger_phone or "")
            if not phone:
                errors.append(
                    FieldError("passenger_phone", "Passenger phone is required")
                )
            elif not PHONE_RE.match(phone):
                errors.append(
                    FieldError(
                        "passenger_phone",
                        "Invalid phone number, keep format +380xxxxxxxxx",
                    )
                )

        return errors
