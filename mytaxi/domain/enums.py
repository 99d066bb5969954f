"""Domain enumerations and state-transition rules."""

import enum


class OrderStatus(str, enum.Enum):
    CREATED = "CREATED"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


# State machine: maps current status -> set of valid next statuses
ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.CREATED: {
        OrderStatus.ACTIVE,
        OrderStatus.FINISHED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ACTIVE: {OrderStatus.FINISHED, OrderStatus.CANCELLED},
    OrderStatus.FINISHED: set(),
    OrderStatus.CANCELLED: set(),
}

ACTIVE_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.CREATED, OrderStatus.ACTIVE}
)
TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.FINISHED, OrderStatus.CANCELLED}
)


class BonusTransactionKind(str, enum.Enum):
    SPEND = "SPEND"  # order paid with bonuses
    EARN = "EARN"  # trip finished
    CANCEL_ADJUSTMENT = "CANCEL_ADJUSTMENT"
    TOP_UP = "TOP_UP"  # administrative credit
