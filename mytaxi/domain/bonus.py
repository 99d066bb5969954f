"""
Bonus Policy  (Strategy Pattern)
================================

Pure functions of the order price and the client's finished-order count.

Formulas
--------
* **Earned** on a finished trip = Price x Bonus_Rate x Tier_Multiplier
* **Cancellation adjustment** =
    Price x Cancellation_Rate   if the client has >= 1 finished order
    0                           otherwise (first-timers get nothing back)

With the default rates a finished 150 trip earns 7.5 and a cancelled 150
order refunds 1.5 to a returning client.

Complexity: O(1) per call (O(T) for T loyalty tiers).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping


# ── Strategy hierarchy ────────────────────────────────────────────────


class BonusPolicy(ABC):
    @abstractmethod
    def bonus_earned(self, price: float, finished_order_count: int) -> float: ...

    @abstractmethod
    def cancellation_adjustment(self, order, finished_order_count: int) -> float: ...


class StandardBonusPolicy(BonusPolicy):
    def __init__(self, bonus_rate: float = 0.05, cancellation_rate: float = 0.01):
        self.bonus_rate = bonus_rate
        self.cancellation_rate = cancellation_rate

    def bonus_earned(self, price: float, finished_order_count: int) -> float:
        return round(price * self.bonus_rate, 2)

    def cancellation_adjustment(self, order, finished_order_count: int) -> float:
        if finished_order_count < 1:
            return 0.0
        return round(order.price * self.cancellation_rate, 2)


class LoyaltyTierBonusPolicy(StandardBonusPolicy):
    """Scales earned bonuses by the highest tier the client has reached.

    ``tiers`` maps a minimum finished-order count to a multiplier, e.g.
    ``{10: 1.5, 50: 2.0}``.  Cancellation refunds are not scaled.
    """

    def __init__(
        self,
        tiers: Mapping[int, float],
        bonus_rate: float = 0.05,
        cancellation_rate: float = 0.01,
    ):
        super().__init__(bonus_rate, cancellation_rate)
        self.tiers = sorted(tiers.items())

    def multiplier(self, finished_order_count: int) -> float:
        result = 1.0
        for threshold, mult in self.tiers:
            if finished_order_count >= threshold:
                result = mult
        return result

    def bonus_earned(self, price: float, finished_order_count: int) -> float:
        base = price * self.bonus_rate
        return round(base * self.multiplier(finished_order_count), 2)


# ── Factory ───────────────────────────────────────────────────────────


def policy_from_settings(settings) -> BonusPolicy:
    if settings.loyalty_tiers:
        return LoyaltyTierBonusPolicy(
            settings.loyalty_tiers,
            bonus_rate=settings.bonus_rate,
            cancellation_rate=settings.cancellation_rate,
        )
    return StandardBonusPolicy(settings.bonus_rate, settings.cancellation_rate)
