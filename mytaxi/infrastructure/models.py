"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``              -- identity shared by clients and drivers
* ``clients``            -- client profile + bonus balance (the ledger)
* ``drivers``            -- drivers that can be assigned to orders
* ``orders``             -- trip orders and their lifecycle status
* ``bonus_transactions`` -- append-only history of ledger mutations

Indexes
-------
* **Partial unique** on ``orders.client_id`` for non-terminal statuses:
  the database itself refuses a second active order per client.
* **Unique** on ``orders.hash`` for status / cancellation links.
* **B-Tree** on ``orders.status``, ``orders.client_id``,
  ``bonus_transactions.client_id``.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
    text,
)

from .database import Base
from mytaxi.domain.enums import BonusTransactionKind, OrderStatus

ACTIVE_ORDER_PREDICATE = text("status IN ('CREATED', 'ACTIVE')")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ClientModel(Base):
    __tablename__ = "clients"

    # Same id as the embedded user row
    id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    phone_number = Column(String(13), unique=True, nullable=True)
    rating = Column(Float, default=5.0, nullable=False)
    bonus_amount = Column(Float, default=0.0, nullable=False)
    has_active_order = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        CheckConstraint("bonus_amount >= 0", name="ck_clients_bonus_non_negative"),
    )


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(120), nullable=False)
    car = Column(String(120), nullable=True)
    is_available = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    hash = Column(String(64), unique=True, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)

    price = Column(Float, nullable=False)
    pay_with_bonuses = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(OrderStatus), default=OrderStatus.CREATED, nullable=False)
    rating = Column(Integer, nullable=True)

    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    car_class = Column(String(40), nullable=True)
    for_another_person = Column(Boolean, default=False, nullable=False)
    passenger_name = Column(String(120), nullable=True)
    passenger_phone = Column(String(13), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    finished_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_orders_price_non_negative"),
        CheckConstraint(
            "rating IS NULL OR (rating BETWEEN 1 AND 5)",
            name="ck_orders_rating_range",
        ),
        Index("idx_orders_status", "status"),
        Index("idx_orders_client", "client_id"),
        Index(
            "uq_orders_one_active_per_client",
            "client_id",
            unique=True,
            postgresql_where=ACTIVE_ORDER_PREDICATE,
            sqlite_where=ACTIVE_ORDER_PREDICATE,
        ),
    )


class BonusTransactionModel(Base):
    __tablename__ = "bonus_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    amount = Column(Float, nullable=False)  # positive = credit, negative = debit
    kind = Column(Enum(BonusTransactionKind), nullable=False)
    balance_after = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_bonus_tx_client", "client_id"),)
