"""
Execution price model: half-spread then slippage, both against the trader.

Dynamic spread: 1bp base widened by 1% of the bar-to-bar absolute return,
clamped to [0.5bp, 20bp]. A manual spread is fixed for the whole run.
"""

from __future__ import annotations

from execution.models import OrderSide

BASE_SPREAD = 0.0001
MIN_SPREAD = 0.00005
MAX_SPREAD = 0.0020
RETURN_WEIGHT = 0.01


def dynamic_spread(price: float, prev_price: float) -> float:
    extra = 0.0
    if prev_price > 0:
        ret = abs(price - prev_price) / prev_price
        extra = ret * RETURN_WEIGHT
    return min(max(BASE_SPREAD + extra, MIN_SPREAD), MAX_SPREAD)


def apply_spread(side: OrderSide, price: float, spread_pct: float) -> float:
    if price <= 0 or spread_pct <= 0:
        return price
    half = spread_pct / 2
    if side == OrderSide.BUY:
        return price * (1 + half)
    return price * (1 - half)


def apply_slippage(side: OrderSide, price: float, slippage_pct: float) -> float:
    if price <= 0 or slippage_pct <= 0:
        return price
    if side == OrderSide.BUY:
        return price * (1 + slippage_pct)
    return price * (1 - slippage_pct)


def exec_price(side: OrderSide, mid: float, spread_pct: float, slippage_pct: float) -> float:
    """Price actually paid (buy) or received (sell) for a quoted ``mid``."""
    return apply_slippage(side, apply_spread(side, mid, spread_pct), slippage_pct)


class SpreadModel:
    """Tracks the spread in effect; fed one close per tick."""

    def __init__(self, spread_pct: float) -> None:
        if spread_pct < 0 or spread_pct >= 1:
            self.spread_pct = 0.0
            self.manual = False
        else:
            self.spread_pct = spread_pct
            self.manual = True
        self._prev_price = 0.0

    def update(self, price: float) -> float:
        if self.manual:
            self._prev_price = price
            return self.spread_pct
        if price <= 0:
            return self.spread_pct
        self.spread_pct = dynamic_spread(price, self._prev_price)
        self._prev_price = price
        return self.spread_pct
