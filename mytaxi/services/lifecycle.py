"""
Order Lifecycle Manager
=======================

Orchestrates every order state change together with its ledger side effect.

    (none) -> CREATED      debit price if paid with bonuses
    CREATED -> ACTIVE      record the assigned driver
    * -> FINISHED          credit bonus_earned(price, finished_count)
    * -> CANCELLED         credit cancellation_adjustment(order, finished_count)
    FINISHED + rating      store a 1..5 rating once

Concurrency safety
------------------
* Each operation enters the owning client's exclusive section
  (``client:<id>``), so two requests for the same client never interleave.
  Different clients proceed in parallel.
* Inside the section one DB transaction covers the whole step and takes
  ``SELECT ... FOR UPDATE`` on the client and order rows.  Any error rolls
  the transaction back, so a rejected step leaves no ledger mutation.
* The transition is validated before the ledger is touched.  The loser of a
  cancel/finish race re-reads a terminal status and gets
  ``IllegalTransition``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mytaxi.domain.bonus import BonusPolicy
from mytaxi.domain.entities import (
    Client,
    ClientIdentity,
    Driver,
    Order,
    OrderRequest,
    OrderView,
    ensure_rating,
    ensure_transition,
    normalize_phone,
)
from mytaxi.domain.enums import BonusTransactionKind, OrderStatus
from mytaxi.domain.errors import (
    ClientNotFound,
    DriverNotFound,
    DuplicateActiveOrder,
    FieldError,
    InsufficientBalance,
    OrderNotFound,
    OrderValidationError,
)
from mytaxi.infrastructure.locks import client_lock_key
from mytaxi.infrastructure.models import BonusTransactionModel, OrderModel
from mytaxi.infrastructure.repositories import (
    ClientRepository,
    DriverRepository,
    OrderRepository,
)

logger = logging.getLogger(__name__)

ACTIVE_ORDER_MESSAGE = "You already have an active order."


class OrderLifecycleManager:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: BonusPolicy,
        locks,
    ):
        self.session_factory = session_factory
        self.policy = policy
        self.locks = locks

    # ── Unit of work ──────────────────────────────────────────────────

    @asynccontextmanager
    async def _unit_of_work(self, client_id: int) -> AsyncIterator[AsyncSession]:
        """Client's exclusive section + one transaction (commit or rollback)."""
        async with self.locks.hold(client_lock_key(client_id)):
            async with self.session_factory() as session:
                async with session.begin():
                    yield session

    async def _owner_of(
        self,
        *,
        order_id: int | None = None,
        order_hash: str | None = None,
        identity: ClientIdentity | None = None,
    ) -> int:
        """Resolve the owning client before entering its section."""
        async with self.session_factory() as session:
            orders = OrderRepository(session)
            if order_hash is not None:
                order = await orders.find_by_hash(order_hash)
            else:
                order = await orders.find_by_id(order_id)
            client_id = order.client_id
        if identity is not None and identity.client_id != client_id:
            # Other clients' orders are indistinguishable from missing ones
            raise OrderNotFound("Order not found")
        return client_id

    async def _has_active_order(self, client_id: int) -> bool:
        async with self.session_factory() as session:
            active = await OrderRepository(session).get_active_for_client(client_id)
            return active is not None

    # ── Create ────────────────────────────────────────────────────────

    async def create_order(
        self, identity: ClientIdentity, request: OrderRequest
    ) -> Order:
        errors = request.validate()
        if errors:
            if await self._has_active_order(identity.client_id):
                errors.append(FieldError("order", ACTIVE_ORDER_MESSAGE))
            raise OrderValidationError(errors)

        async with self._unit_of_work(identity.client_id) as session:
            clients = ClientRepository(session)
            orders = OrderRepository(session)

            client = await clients.get_for_update(identity.client_id)
            active = await orders.get_active_for_client(client.id)
            if active is not None:
                logger.warning(
                    "Client %d tried to place a second active order (has %d)",
                    client.id,
                    active.id,
                )
                raise DuplicateActiveOrder(ACTIVE_ORDER_MESSAGE)
            if client.has_active_order:
                logger.warning(
                    "Client %d flagged with an active order but none stored; "
                    "resetting flag",
                    client.id,
                )

            if request.pay_with_bonuses and request.price > client.bonus_amount:
                raise InsufficientBalance(
                    f"Not enough bonuses: {client.bonus_amount} available, "
                    f"{request.price} required"
                )

            order = await orders.create(
                OrderModel(
                    client_id=client.id,
                    driver_id=None,
                    rating=None,
                    finished_at=None,
                    price=request.price,
                    pay_with_bonuses=request.pay_with_bonuses,
                    origin=request.origin.strip(),
                    destination=request.destination.strip(),
                    car_class=request.car_class,
                    for_another_person=request.for_another_person,
                    passenger_name=request.passenger_name,
                    passenger_phone=(
                        normalize_phone(request.passenger_phone)
                        if request.passenger_phone
                        else None
                    ),
                )
            )
            if request.pay_with_bonuses:
                await clients.debit(
                    client.id,
                    request.price,
                    kind=BonusTransactionKind.SPEND,
                    order_id=order.id,
                )
            await clients.set_has_active_order(client.id, True)

        logger.info(
            "Order %d created for client %d (price=%.2f, bonuses=%s)",
            order.id,
            identity.client_id,
            order.price,
            order.pay_with_bonuses,
        )
        return Order.from_model(order)

    # ── Driver assignment ─────────────────────────────────────────────

    async def assign_driver(self, order_id: int, driver_id: int) -> Order:
        client_id = await self._owner_of(order_id=order_id)
        async with self._unit_of_work(client_id) as session:
            if await DriverRepository(session).get_by_id(driver_id) is None:
                raise DriverNotFound(f"Driver {driver_id} not found")
            order = await OrderRepository(session).assign_driver(order_id, driver_id)
        logger.info("Order %d accepted by driver %d", order_id, driver_id)
        return Order.from_model(order)

    # ── Terminal transitions ──────────────────────────────────────────

    async def finish_order(self, order_id: int) -> Order:
        client_id = await self._owner_of(order_id=order_id)
        async with self._unit_of_work(client_id) as session:
            order = await OrderRepository(session).find_by_id(order_id, for_update=True)
            amount = await self._close(session, order, OrderStatus.FINISHED)
        logger.info(
            "Order %d finished; client %d earned %.2f bonuses",
            order_id,
            client_id,
            amount,
        )
        return Order.from_model(order)

    async def cancel_order(
        self, order_hash: str, identity: ClientIdentity | None = None
    ) -> Order:
        client_id = await self._owner_of(order_hash=order_hash, identity=identity)
        async with self._unit_of_work(client_id) as session:
            order = await OrderRepository(session).find_by_hash(
                order_hash, for_update=True
            )
            amount = await self._close(session, order, OrderStatus.CANCELLED)
        logger.info(
            "Order %d cancelled; client %d adjusted by %.2f bonuses",
            order.id,
            client_id,
            amount,
        )
        return Order.from_model(order)

    async def _close(
        self, session: AsyncSession, order: OrderModel, new_status: OrderStatus
    ) -> float:
        """Apply a terminal transition and its ledger credit.  Returns the credit."""
        ensure_transition(order.status, new_status)

        orders = OrderRepository(session)
        clients = ClientRepository(session)
        finished_count = await orders.count_finished(order.client_id)

        if new_status == OrderStatus.FINISHED:
            amount = self.policy.bonus_earned(order.price, finished_count)
            kind = BonusTransactionKind.EARN
        else:
            amount = self.policy.cancellation_adjustment(order, finished_count)
            kind = BonusTransactionKind.CANCEL_ADJUSTMENT

        await orders.update_status(order.id, new_status)
        if amount > 0:
            await clients.credit(order.client_id, amount, kind=kind, order_id=order.id)
        await clients.set_has_active_order(order.client_id, False)
        return amount

    # ── Rating ────────────────────────────────────────────────────────

    async def rate_trip(
        self,
        order_id: int,
        rating: int,
        identity: ClientIdentity | None = None,
    ) -> Order:
        ensure_rating(rating)
        client_id = await self._owner_of(order_id=order_id, identity=identity)
        async with self._unit_of_work(client_id) as session:
            orders = OrderRepository(session)
            row = await orders.find_by_id(order_id, for_update=True)
            order = Order.from_model(row)
            order.rate(rating)
            await orders.set_rating(order_id, order.rating)
        logger.info("Order %d rated %d", order_id, rating)
        return order

    # ── Queries ───────────────────────────────────────────────────────

    async def order_status(self, order_hash: str) -> OrderView:
        async with self.session_factory() as session:
            row = await OrderRepository(session).find_by_hash(order_hash)
            balance = await ClientRepository(session).balance_of(row.client_id)
            driver = await self._driver(session, row.driver_id)
            return OrderView(Order.from_model(row), balance, driver)

    async def get_order(self, identity: ClientIdentity, order_id: int) -> OrderView:
        async with self.session_factory() as session:
            row = await OrderRepository(session).get_by_id(order_id)
            if row is None or row.client_id != identity.client_id:
                raise OrderNotFound(f"Order {order_id} not found")
            balance = await ClientRepository(session).balance_of(row.client_id)
            driver = await self._driver(session, row.driver_id)
            return OrderView(Order.from_model(row), balance, driver)

    async def list_orders(self, identity: ClientIdentity) -> list[Order]:
        async with self.session_factory() as session:
            rows = await OrderRepository(session).list_for_client(identity.client_id)
            return [Order.from_model(r) for r in rows]

    async def balance(self, identity: ClientIdentity) -> float:
        async with self.session_factory() as session:
            return await ClientRepository(session).balance_of(identity.client_id)

    async def client_profile(self, identity: ClientIdentity) -> Client:
        async with self.session_factory() as session:
            clients = ClientRepository(session)
            row = await clients.get_by_id(identity.client_id)
            if row is None:
                raise ClientNotFound(f"Client {identity.client_id} not found")
            user = await clients.get_user(identity.client_id)
            return Client.from_models(row, user)

    async def bonus_history(
        self, identity: ClientIdentity
    ) -> list[BonusTransactionModel]:
        async with self.session_factory() as session:
            clients = ClientRepository(session)
            await clients.balance_of(identity.client_id)
            return await clients.history(identity.client_id)

    async def top_up(self, client_id: int, amount: float) -> float:
        """Administrative credit outside of any order."""
        async with self._unit_of_work(client_id) as session:
            balance = await ClientRepository(session).credit(
                client_id, amount, kind=BonusTransactionKind.TOP_UP
            )
        logger.info("Client %d topped up by %.2f", client_id, amount)
        return balance

    @staticmethod
    async def _driver(session: AsyncSession, driver_id: Optional[int]) -> Optional[Driver]:
        if driver_id is None:
            return None
        row = await DriverRepository(session).get_by_id(driver_id)
        if row is None:
            return None
        return Driver(id=row.id, name=row.name, car=row.car, is_available=row.is_available)
