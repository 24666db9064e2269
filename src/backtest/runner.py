"""
Replay loop: drive an Emulator to exhaustion, letting a strategy place orders
between steps. Collects round-trip trades and the final account state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from backtest.emulator import Emulator
from execution import Bar, Exchange, LimitDiagnostics, Order
from journal import JournalWriter

logger = logging.getLogger("emul.replay")

Strategy = Callable[[Exchange, Bar, list[Order]], None]


@dataclass
class ReplayTrade:
    """One round trip: an entry order and the order that closed it."""

    entry: Order
    exit: Order

    @property
    def direction(self) -> str:
        return "long" if self.entry.position_after > 0 else "short"

    @property
    def pnl(self) -> float:
        return self.exit.equity - self.entry.equity_before

    @property
    def fees(self) -> float:
        return self.entry.fee + self.exit.fee


@dataclass
class ReplayResult:
    """Result of a replay run."""

    symbol: str
    steps: int
    start_equity: float
    final_equity: float
    orders: list[Order] = field(default_factory=list)
    trades: list[ReplayTrade] = field(default_factory=list)
    diagnostics: LimitDiagnostics = field(default_factory=LimitDiagnostics)

    @property
    def total_return_pct(self) -> float:
        if self.start_equity <= 0:
            return 0.0
        return (self.final_equity - self.start_equity) / self.start_equity * 100

    @property
    def win_count(self) -> int:
        return sum(1 for t in self.trades if t.pnl > 0)

    @property
    def loss_count(self) -> int:
        return sum(1 for t in self.trades if t.pnl < 0)

    @property
    def liquidations(self) -> int:
        return sum(1 for o in self.orders if o.is_liquidation)


def pair_trades(orders: list[Order]) -> list[ReplayTrade]:
    """Match each entry with the next non-entry order. An unclosed entry is left out."""
    trades: list[ReplayTrade] = []
    entry: Order | None = None
    for order in orders:
        if order.is_entry:
            entry = order
        elif entry is not None:
            trades.append(ReplayTrade(entry=entry, exit=order))
            entry = None
    return trades


def run_replay(
    emulator: Emulator,
    strategy: Strategy | None = None,
    *,
    journal: JournalWriter | None = None,
    max_steps: int | None = None,
) -> ReplayResult:
    """Replay the remaining bars.

    Parameters
    ----------
    emulator:
        Emulator positioned at the first bar to replay.
    strategy:
        Called after every step with the exchange, the bar just applied and
        the orders that step executed. Places orders for later steps.
    journal:
        Optional journal; receives every executed order, every new limit
        miss, and a closing summary.
    max_steps:
        Stop after this many steps even if bars remain.
    """
    exchange = emulator.exchange
    start_equity = exchange.balance().equity
    logger.info("Replay start: %d bars, equity %.2f", emulator.remaining, start_equity)

    steps = 0
    misses_seen = 0
    for bar, executed in emulator:
        steps += 1
        if journal is not None:
            for order in executed:
                journal.order(order)
            for miss in exchange.limit_misses(misses_seen):
                journal.limit_miss(miss)
            misses_seen = exchange.miss_count
        if strategy is not None:
            strategy(exchange, bar, executed)
        if max_steps is not None and steps >= max_steps:
            break

    orders = exchange.orders()
    final_equity = exchange.balance().equity
    if journal is not None:
        journal.summary(exchange.symbol, steps, start_equity, final_equity, len(orders))
    logger.info("Replay finished: %d steps, %d orders, equity %.2f", steps, len(orders), final_equity)

    return ReplayResult(
        symbol=exchange.symbol,
        steps=steps,
        start_equity=start_equity,
        final_equity=final_equity,
        orders=orders,
        trades=pair_trades(orders),
        diagnostics=exchange.limit_diagnostics(),
    )


def buy_and_hold(last_tick: int, fraction: float = 1.0) -> Strategy:
    """Open a long on the first bar and close it at ``last_tick``."""

    def _strategy(exchange: Exchange, bar: Bar, executed: list[Order]) -> None:
        flat = exchange.balance().is_flat
        if exchange.tick >= last_tick:
            if not flat:
                exchange.close_deal()
        elif flat and not exchange.orders():
            exchange.open_long(fraction)

    return _strategy
