"""
Emulator: replay a pre-loaded bar sequence through an Exchange, one bar per step.

Bar i (0-based) is applied at tick i + 1. Between steps the caller places
orders on emulator.exchange; each step reports exactly the orders that
execution produced during that step, in execution order.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, NamedTuple, Sequence

from execution import Bar, Exchange, Order

if TYPE_CHECKING:
    from config.loader import AppConfig

logger = logging.getLogger("emul.emulator")


class NoMoreBars(Exception):
    """All bars have been replayed. Normal end of a run."""


class Step(NamedTuple):
    bar: Bar
    orders: list[Order]


class Emulator:
    def __init__(
        self,
        bars: Sequence[Bar],
        *,
        symbol: str = "",
        start_usd: float = 0.0,
        fee: float = 0.0,
        slippage_pct: float = 0.0,
        spread_pct: float = -1.0,
    ) -> None:
        if not bars:
            raise ValueError("bars are empty")
        self._bars = list(bars)
        self._index = 0
        self._exchange = Exchange(
            symbol,
            start_usd=start_usd,
            fee=fee,
            slippage_pct=slippage_pct,
            spread_pct=spread_pct,
        )

    @classmethod
    def from_csv(
        cls,
        csv_path: str | Path,
        *,
        symbol: str = "",
        start_usd: float = 0.0,
        fee: float = 0.0,
        slippage_pct: float = 0.0,
        spread_pct: float = -1.0,
    ) -> Emulator:
        from data.bar_loader import load_bars_from_csv

        return cls(
            load_bars_from_csv(csv_path),
            symbol=symbol,
            start_usd=start_usd,
            fee=fee,
            slippage_pct=slippage_pct,
            spread_pct=spread_pct,
        )

    @classmethod
    def from_config(cls, cfg: AppConfig) -> Emulator:
        """Load bars as described by ``cfg.data`` and build an emulator with ``cfg.exchange``."""
        from data import load_bars_for_config

        ex = cfg.exchange
        return cls(
            load_bars_for_config(cfg),
            symbol=cfg.symbol,
            start_usd=ex.start_usd,
            fee=ex.fee,
            slippage_pct=ex.slippage_pct,
            spread_pct=ex.spread_pct,
        )

    @property
    def exchange(self) -> Exchange:
        return self._exchange

    @property
    def cursor(self) -> int:
        """Index of the next bar to replay."""
        return self._index

    @property
    def remaining(self) -> int:
        return len(self._bars) - self._index

    def __len__(self) -> int:
        return len(self._bars)

    def bars(self) -> list[Bar]:
        return list(self._bars)

    def next(self) -> Step:
        """Replay the next bar. Raises NoMoreBars once the sequence is exhausted."""
        if self._index >= len(self._bars):
            raise NoMoreBars("no more bars")
        bar = self._bars[self._index]
        before = len(self._exchange.orders())
        self._exchange.tick_bar_at(self._index + 1, bar)
        executed = self._exchange.orders()[before:]
        self._index += 1
        if executed:
            logger.debug("Step %d executed %d order(s)", self._index, len(executed))
        return Step(bar, executed)

    def __iter__(self) -> Iterator[Step]:
        while self._index < len(self._bars):
            yield self.next()
