"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Nothing here commits: the caller owns the
transaction, so ledger mutations and order status changes become durable
together or not at all.

* ``ClientRepository`` is the **Ledger** (bonus balance per client).
* ``OrderRepository`` is the **Order Store**.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    BonusTransactionModel,
    ClientModel,
    DriverModel,
    OrderModel,
    UserModel,
)
from mytaxi.domain.entities import PHONE_RE, ensure_transition, normalize_phone
from mytaxi.domain.enums import ACTIVE_STATUSES, BonusTransactionKind, OrderStatus
from mytaxi.domain.errors import (
    AlreadyRegistered,
    ClientNotFound,
    DuplicateActiveOrder,
    InsufficientBalance,
    InvalidAmount,
    InvalidPhoneNumber,
    OrderNotFound,
)

HASH_BYTES = 24


def new_order_hash() -> str:
    return secrets.token_urlsafe(HASH_BYTES)


async def _flush_registration(session: AsyncSession) -> None:
    try:
        await session.flush()
    except IntegrityError as exc:
        # users.email and clients.phone_number are unique
        raise AlreadyRegistered(
            "Email or phone number is already registered"
        ) from exc


class ClientRepository:
    """Bonus ledger: one balance per client, never negative."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, client_id: int) -> Optional[ClientModel]:
        return await self.session.get(ClientModel, client_id)

    async def get_for_update(self, client_id: int) -> ClientModel:
        """SELECT ... FOR UPDATE on the client row; raises if unknown."""
        result = await self.session.execute(
            select(ClientModel)
            .where(ClientModel.id == client_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        client = result.scalar_one_or_none()
        if client is None:
            raise ClientNotFound(f"Client {client_id} not found")
        return client

    async def get_user(self, client_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, client_id)

    async def create_client(
        self,
        *,
        name: str,
        email: str,
        phone_number: str | None = None,
        bonus_amount: float = 0.0,
    ) -> ClientModel:
        if phone_number is not None:
            phone_number = normalize_phone(phone_number)
            if not PHONE_RE.match(phone_number):
                raise InvalidPhoneNumber(
                    "Invalid phone number, keep format +380xxxxxxxxx"
                )
        user = UserModel(name=name, email=email)
        self.session.add(user)
        await _flush_registration(self.session)
        client = ClientModel(
            id=user.id,
            phone_number=phone_number,
            bonus_amount=bonus_amount,
            has_active_order=False,
        )
        self.session.add(client)
        await _flush_registration(self.session)
        return client

    async def balance_of(self, client_id: int) -> float:
        client = await self.get_by_id(client_id)
        if client is None:
            raise ClientNotFound(f"Client {client_id} not found")
        return client.bonus_amount

    async def credit(
        self,
        client_id: int,
        amount: float,
        *,
        kind: BonusTransactionKind = BonusTransactionKind.EARN,
        order_id: int | None = None,
    ) -> float:
        if amount < 0:
            raise InvalidAmount(f"Cannot credit a negative amount ({amount})")
        client = await self.get_for_update(client_id)
        client.bonus_amount = round(client.bonus_amount + amount, 2)
        await self._record(client, amount, kind, order_id)
        return client.bonus_amount

    async def debit(
        self,
        client_id: int,
        amount: float,
        *,
        kind: BonusTransactionKind = BonusTransactionKind.SPEND,
        order_id: int | None = None,
    ) -> float:
        if amount < 0:
            raise InvalidAmount(f"Cannot debit a negative amount ({amount})")
        client = await self.get_for_update(client_id)
        if amount > client.bonus_amount:
            raise InsufficientBalance(
                f"Client {client_id} has {client.bonus_amount} bonuses, "
                f"{amount} required"
            )
        client.bonus_amount = round(client.bonus_amount - amount, 2)
        await self._record(client, -amount, kind, order_id)
        return client.bonus_amount

    async def set_has_active_order(self, client_id: int, status: bool) -> None:
        client = await self.get_for_update(client_id)
        client.has_active_order = status
        await self.session.flush()

    async def history(self, client_id: int) -> list[BonusTransactionModel]:
        result = await self.session.execute(
            select(BonusTransactionModel)
            .where(BonusTransactionModel.client_id == client_id)
            .order_by(BonusTransactionModel.id)
        )
        return list(result.scalars().all())

    async def _record(
        self,
        client: ClientModel,
        amount: float,
        kind: BonusTransactionKind,
        order_id: int | None,
    ) -> None:
        self.session.add(
            BonusTransactionModel(
                client_id=client.id,
                order_id=order_id,
                amount=amount,
                kind=kind,
                balance_after=client.bonus_amount,
            )
        )
        await self.session.flush()


class OrderRepository:
    """Order Store keyed by id and by the opaque ``hash`` token."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: OrderModel) -> OrderModel:
        """Persist *order* as CREATED with a fresh hash."""
        if await self.get_active_for_client(order.client_id) is not None:
            raise DuplicateActiveOrder(
                f"Client {order.client_id} already has an active order"
            )
        order.hash = new_order_hash()
        order.status = OrderStatus.CREATED
        self.session.add(order)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            # Partial unique index caught a concurrent insert; the caller's
            # transaction must be rolled back.
            raise DuplicateActiveOrder(
                f"Client {order.client_id} already has an active order"
            ) from exc
        return order

    async def get_by_id(
        self, order_id: int, *, for_update: bool = False
    ) -> Optional[OrderModel]:
        query = select(OrderModel).where(OrderModel.id == order_id)
        if for_update:
            query = query.with_for_update().execution_options(
                populate_existing=True
            )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_hash(
        self, order_hash: str, *, for_update: bool = False
    ) -> Optional[OrderModel]:
        query = select(OrderModel).where(OrderModel.hash == order_hash)
        if for_update:
            query = query.with_for_update().execution_options(
                populate_existing=True
            )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_by_id(self, order_id: int, *, for_update: bool = False) -> OrderModel:
        order = await self.get_by_id(order_id, for_update=for_update)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        return order

    async def find_by_hash(
        self, order_hash: str, *, for_update: bool = False
    ) -> OrderModel:
        order = await self.get_by_hash(order_hash, for_update=for_update)
        if order is None:
            raise OrderNotFound("Order not found")
        return order

    async def update_status(
        self, order_id: int, new_status: OrderStatus
    ) -> OrderModel:
        order = await self.find_by_id(order_id, for_update=True)
        ensure_transition(order.status, new_status)
        order.status = new_status
        if new_status == OrderStatus.FINISHED:
            order.finished_at = datetime.now(timezone.utc)
        await self.session.flush()
        return order

    async def assign_driver(self, order_id: int, driver_id: int) -> OrderModel:
        order = await self.update_status(order_id, OrderStatus.ACTIVE)
        order.driver_id = driver_id
        await self.session.flush()
        return order

    async def set_rating(self, order_id: int, rating: int) -> OrderModel:
        order = await self.find_by_id(order_id, for_update=True)
        order.rating = rating
        await self.session.flush()
        return order

    async def get_active_for_client(self, client_id: int) -> Optional[OrderModel]:
        result = await self.session.execute(
            select(OrderModel).where(
                OrderModel.client_id == client_id,
                OrderModel.status.in_(list(ACTIVE_STATUSES)),
            )
        )
        return result.scalars().first()

    async def list_for_client(self, client_id: int) -> list[OrderModel]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.client_id == client_id)
            .order_by(OrderModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_finished(self, client_id: int) -> list[OrderModel]:
        result = await self.session.execute(
            select(OrderModel)
            .where(
                OrderModel.client_id == client_id,
                OrderModel.status == OrderStatus.FINISHED,
            )
            .order_by(OrderModel.id)
        )
        return list(result.scalars().all())

    async def count_finished(self, client_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(OrderModel)
            .where(
                OrderModel.client_id == client_id,
                OrderModel.status == OrderStatus.FINISHED,
            )
        )
        return result.scalar() or 0


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def create_driver(
        self, *, name: str, email: str, car: str | None = None
    ) -> DriverModel:
        user = UserModel(name=name, email=email)
        self.session.add(user)
        await _flush_registration(self.session)
        driver = DriverModel(user_id=user.id, name=name, car=car)
        self.session.add(driver)
        await _flush_registration(self.session)
        return driver
