"""Initial schema: users, clients (bonus ledger), drivers, orders, bonus history.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

ORDER_STATUS = sa.Enum(
    "CREATED", "ACTIVE", "FINISHED", "CANCELLED", name="orderstatus"
)
BONUS_KIND = sa.Enum(
    "SPEND", "EARN", "CANCEL_ADJUSTMENT", "TOP_UP", name="bonustransactionkind"
)


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── clients ───────────────────────────────────────────────────────
    op.create_table(
        "clients",
        sa.Column(
            "id", sa.Integer, sa.ForeignKey("users.id"), primary_key=True
        ),
        sa.Column("phone_number", sa.String(13), unique=True, nullable=True),
        sa.Column("rating", sa.Float, nullable=False, server_default="5.0"),
        sa.Column(
            "bonus_amount", sa.Float, nullable=False, server_default="0"
        ),
        sa.Column(
            "has_active_order",
            sa.Boolean,
            nullable=False,
            server_default=sa.false(),
        ),
        sa.CheckConstraint("bonus_amount >= 0", name="ck_clients_bonus_non_negative"),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("car", sa.String(120), nullable=True),
        sa.Column("is_available", sa.Boolean, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── orders ────────────────────────────────────────────────────────
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("hash", sa.String(64), unique=True, nullable=False),
        sa.Column(
            "client_id", sa.Integer, sa.ForeignKey("clients.id"), nullable=False
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True
        ),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column(
            "pay_with_bonuses",
            sa.Boolean,
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("status", ORDER_STATUS, nullable=False),
        sa.Column("rating", sa.Integer, nullable=True),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("car_class", sa.String(40), nullable=True),
        sa.Column(
            "for_another_person",
            sa.Boolean,
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("passenger_name", sa.String(120), nullable=True),
        sa.Column("passenger_phone", sa.String(13), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("price >= 0", name="ck_orders_price_non_negative"),
        sa.CheckConstraint(
            "rating IS NULL OR (rating BETWEEN 1 AND 5)",
            name="ck_orders_rating_range",
        ),
    )
    op.create_index("idx_orders_status", "orders", ["status"])
    op.create_index("idx_orders_client", "orders", ["client_id"])
    op.create_index(
        "uq_orders_one_active_per_client",
        "orders",
        ["client_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('CREATED', 'ACTIVE')"),
    )

    # ── bonus_transactions ────────────────────────────────────────────
    op.create_table(
        "bonus_transactions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "client_id", sa.Integer, sa.ForeignKey("clients.id"), nullable=False
        ),
        sa.Column(
            "order_id", sa.Integer, sa.ForeignKey("orders.id"), nullable=True
        ),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("kind", BONUS_KIND, nullable=False),
        sa.Column("balance_after", sa.Float, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_bonus_tx_client", "bonus_transactions", ["client_id"]
    )


def downgrade() -> None:
    op.drop_table("bonus_transactions")
    op.drop_table("orders")
    op.drop_table("drivers")
    op.drop_table("clients")
    op.drop_table("users")
    BONUS_KIND.drop(op.get_bind(), checkfirst=True)
    ORDER_STATUS.drop(op.get_bind(), checkfirst=True)
