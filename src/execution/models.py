"""Bar, Order, Balance and pending-limit records for the exchange emulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


REASON_ENTRY_LONG = "entry-long"
REASON_ENTRY_SHORT = "entry-short"
REASON_EXIT = "exit"
REASON_STOP_LOSS = "stop-loss"
REASON_LIQUIDATION = "liquidation"

# Limit failure / miss reason codes
AWAIT_NEXT_CANDLE = "await_next_candle"
PRICE_NOT_IN_HL = "price_not_in_hl"
BLOCKED_BY_FIFO_HEAD = "blocked_by_fifo_head"
POSITION_STATE_MISMATCH = "position_state_mismatch"
EXECUTION_REJECTED = "execution_rejected"


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class PendingKind(str, Enum):
    """What a queued limit order does once its price is touched."""

    OPEN_LONG = "open_long"
    OPEN_SHORT = "open_short"
    CLOSE = "close"


@dataclass(frozen=True)
class Bar:
    """One OHLC observation. ``average`` defaults to the mean of O/H/L/C."""

    open: float
    high: float
    low: float
    close: float
    average: float | None = None
    timestamp: datetime | None = None
    symbol: str | None = None

    def __post_init__(self) -> None:
        if self.average is None:
            object.__setattr__(self, "average", (self.open + self.high + self.low + self.close) / 4)

    @classmethod
    def from_ohlc(
        cls,
        open_: float,
        high: float,
        low: float,
        close: float,
        *,
        timestamp: datetime | None = None,
        symbol: str | None = None,
    ) -> Bar:
        return cls(open=open_, high=high, low=low, close=close, timestamp=timestamp, symbol=symbol)


@dataclass(frozen=True)
class Order:
    """Executed trade. Appended once to the exchange history, never changed."""

    id: int
    symbol: str
    side: OrderSide
    qty: float
    mid_price: float
    exec_price: float
    fee: float
    exec_pnl: float
    equity_before: float
    reason: str
    stop_kind: str
    position_after: float
    usd: float
    short_cash: float
    short_margin: float
    equity: float
    entry_price: float
    tick: int
    placed_tick: int
    spread_pct: float
    slippage_pct: float

    @property
    def is_entry(self) -> bool:
        return self.reason in (REASON_ENTRY_LONG, REASON_ENTRY_SHORT)

    @property
    def is_liquidation(self) -> bool:
        return self.reason == REASON_LIQUIDATION


@dataclass(frozen=True)
class Balance:
    """Derived snapshot; computed on demand by the exchange."""

    usd: float
    position: float
    short_cash: float
    short_margin: float
    equity: float
    entry_price: float
    last_price: float

    @property
    def is_flat(self) -> bool:
        return self.position == 0

    @property
    def is_long(self) -> bool:
        return self.position > 0

    @property
    def is_short(self) -> bool:
        return self.position < 0


@dataclass
class PendingOrder:
    """Queued limit instruction. ``fraction`` is unused for closes, ``reason`` for opens."""

    id: int
    kind: PendingKind
    price: float
    placed_at_tick: int
    fraction: float = 0.0
    reason: str = ""
    stop_kind: str = ""
    last_reason: str = AWAIT_NEXT_CANDLE
    placed_bar: Bar | None = None


@dataclass(frozen=True)
class LimitMiss:
    reason: str
    kind: PendingKind
    limit_price: float
    placed_tick: int
    check_tick: int
    prev_bar: Bar | None
    curr_bar: Bar


@dataclass
class LimitDiagnostics:
    """Failure counters across dropped and still-queued limits, plus the miss log."""

    pending_total: int = 0
    reasons: dict[str, int] = field(default_factory=dict)
    misses: list[LimitMiss] = field(default_factory=list)
