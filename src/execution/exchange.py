"""
Exchange: single-asset, single-position order execution against replayed bars.

Owns balance, position, order history and the FIFO queue of pending limits.
State changes only through tick_bar_at() (driven by the Emulator) and the
immediate market calls. Not thread-safe; one instance per simulation run.

Queue semantics, evaluated once per tick:
  - only the head is inspected; a head placed at or after the current tick
    stops processing for this tick
  - a head whose price is outside [low, high] stops processing and is
    recorded as a miss; later entries are recorded as blocked by the head
  - a head that no longer fits the position state is dropped
  - otherwise the head fills at its own limit price and the next head is tried
"""

from __future__ import annotations

import itertools
import logging
from collections import deque

from execution import pricing
from execution.errors import (
    ExchangeError,
    InvalidBarError,
    InvalidFractionError,
    NoPositionError,
    PositionOpenError,
    PriceNotSetError,
    SymbolMismatchError,
)
from execution.models import (
    BLOCKED_BY_FIFO_HEAD,
    EXECUTION_REJECTED,
    POSITION_STATE_MISMATCH,
    PRICE_NOT_IN_HL,
    REASON_ENTRY_LONG,
    REASON_ENTRY_SHORT,
    REASON_EXIT,
    REASON_LIQUIDATION,
    Balance,
    Bar,
    LimitDiagnostics,
    LimitMiss,
    Order,
    OrderSide,
    PendingKind,
    PendingOrder,
)

logger = logging.getLogger("emul.exchange")


def price_in_range(price: float, low: float, high: float) -> bool:
    """True when ``price`` lies within the bar's range (bounds swapped if inverted)."""
    if price <= 0 or low <= 0 or high <= 0:
        return False
    if low > high:
        low, high = high, low
    return low <= price <= high


def _check_fraction(fraction: float) -> None:
    if fraction <= 0 or fraction > 1:
        raise InvalidFractionError(f"fraction must be in (0, 1], got {fraction}")


class Exchange:
    """
    Simulated exchange for one symbol.

    Parameters are clamped rather than rejected: negative ``start_usd`` and
    ``fee`` become 0, ``slippage_pct`` outside [0, 1) becomes 0, and a
    ``spread_pct`` outside [0, 1) switches on the dynamic spread model.
    """

    def __init__(
        self,
        symbol: str = "",
        *,
        start_usd: float = 0.0,
        fee: float = 0.0,
        slippage_pct: float = 0.0,
        spread_pct: float = -1.0,
    ) -> None:
        self._symbol = symbol
        self._fee = max(fee, 0.0)
        self._slippage_pct = slippage_pct if 0 <= slippage_pct < 1 else 0.0
        self._spread = pricing.SpreadModel(spread_pct)

        self._usd = max(start_usd, 0.0)
        self._position = 0.0
        self._entry_price = 0.0
        self._short_cash = 0.0
        self._short_margin = 0.0
        self._last_price = 0.0
        self._tick = 0

        self._orders: list[Order] = []
        self._order_ids = itertools.count(1)
        self._limit_ids = itertools.count(1)
        self._pending: deque[PendingOrder] = deque()
        self._executed_by_limit: dict[int, Order] = {}
        self._limit_failed: dict[str, int] = {}
        self._misses: list[LimitMiss] = []
        self._last_bar: Bar | None = None

    # ---------- read-only views ----------

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def last_price(self) -> float:
        return self._last_price

    @property
    def fee(self) -> float:
        return self._fee

    @property
    def slippage_pct(self) -> float:
        return self._slippage_pct

    @property
    def spread_pct(self) -> float:
        return self._spread.spread_pct

    @property
    def spread_manual(self) -> bool:
        return self._spread.manual

    def balance(self) -> Balance:
        price = self._last_price
        if price <= 0:
            price = self._entry_price
        equity = self._usd + self._short_cash + self._short_margin
        if price > 0:
            equity += self._position * price
        return Balance(
            usd=self._usd,
            position=self._position,
            short_cash=self._short_cash,
            short_margin=self._short_margin,
            equity=equity,
            entry_price=self._entry_price,
            last_price=self._last_price,
        )

    def orders(self) -> list[Order]:
        return list(self._orders)

    def pending_orders(self) -> list[PendingOrder]:
        return list(self._pending)

    def executed_limit(self, limit_id: int) -> Order | None:
        """Order produced by the pending limit ``limit_id``, if it has filled."""
        return self._executed_by_limit.get(limit_id)

    def limit_diagnostics(self) -> LimitDiagnostics:
        out = LimitDiagnostics()
        for reason, count in self._limit_failed.items():
            out.reasons[reason] = out.reasons.get(reason, 0) + count
            out.pending_total += count
        for p in self._pending:
            reason = p.last_reason or "unknown"
            out.reasons[reason] = out.reasons.get(reason, 0) + 1
            out.pending_total += 1
        out.misses = list(self._misses)
        return out

    @property
    def miss_count(self) -> int:
        return len(self._misses)

    def limit_misses(self, start: int = 0) -> list[LimitMiss]:
        """Misses recorded from index ``start`` on, without rebuilding diagnostics."""
        return self._misses[start:]

    # ---------- tick advance (replay driver only) ----------

    def tick_bar_at(self, tick: int, bar: Bar) -> Order | None:
        """Advance to ``tick`` with ``bar`` and fill what the pending queue allows.

        Called by the Emulator. Returns the first order executed this tick.
        """
        if bar.symbol and self._symbol and bar.symbol != self._symbol:
            raise SymbolMismatchError(f"bar symbol {bar.symbol!r} != exchange symbol {self._symbol!r}")
        if bar.close <= 0:
            raise InvalidBarError(f"bar close must be positive, got {bar.close}")
        self._tick = max(tick, 0)
        self._spread.update(bar.close)
        self._last_price = bar.close
        executed = self._process_pending(bar)
        self._last_bar = bar
        return executed

    # ---------- market orders ----------

    def open_long(self, fraction: float) -> Order:
        return self._open_long_at(self._last_price, fraction, self._tick)

    def open_short(self, fraction: float) -> Order:
        return self._open_short_at(self._last_price, fraction, self._tick)

    def close_deal(self, reason: str = "") -> Order:
        if self._position == 0:
            raise NoPositionError("no open position")
        if self._last_price <= 0:
            raise PriceNotSetError("price not set")
        return self._close_at(self._last_price, reason or REASON_EXIT, "", self._tick)

    # ---------- limit orders ----------

    def long_limit(self, price: float, fraction: float) -> int:
        """Queue a long entry at ``price`` (``<= 0`` means the last price). Returns the limit id."""
        price = self._limit_price(price)
        _check_fraction(fraction)
        return self._enqueue(PendingKind.OPEN_LONG, price, fraction=fraction)

    def short_limit(self, price: float, fraction: float) -> int:
        price = self._limit_price(price)
        _check_fraction(fraction)
        return self._enqueue(PendingKind.OPEN_SHORT, price, fraction=fraction)

    def close_limit(self, price: float, reason: str = "", stop_kind: str = "") -> int:
        price = self._limit_price(price)
        return self._enqueue(PendingKind.CLOSE, price, reason=reason or REASON_EXIT, stop_kind=stop_kind)

    def _limit_price(self, price: float) -> float:
        if price <= 0:
            price = self._last_price
        if price <= 0:
            raise PriceNotSetError("price not set")
        return price

    def _enqueue(self, kind: PendingKind, price: float, **kwargs) -> int:
        limit_id = next(self._limit_ids)
        self._pending.append(
            PendingOrder(
                id=limit_id,
                kind=kind,
                price=price,
                placed_at_tick=self._tick,
                placed_bar=self._last_bar,
                **kwargs,
            )
        )
        return limit_id

    # ---------- queue processing ----------

    def _process_pending(self, bar: Bar) -> Order | None:
        first: Order | None = None
        while self._pending:
            head = self._pending[0]
            if self._tick <= head.placed_at_tick:
                break
            if not price_in_range(head.price, bar.low, bar.high):
                head.last_reason = PRICE_NOT_IN_HL
                self._count_failure(PRICE_NOT_IN_HL)
                self._record_miss(PRICE_NOT_IN_HL, head, bar)
                break
            self._pending.popleft()
            if not self._fits_position(head.kind):
                self._count_failure(POSITION_STATE_MISMATCH)
                logger.debug("Dropped limit #%d (%s): position %.8f", head.id, head.kind.value, self._position)
                continue
            try:
                executed = self._execute_pending(head)
            except ExchangeError as exc:
                self._count_failure(EXECUTION_REJECTED)
                logger.debug("Dropped limit #%d (%s): %s", head.id, head.kind.value, exc)
                continue
            self._executed_by_limit[head.id] = executed
            if first is None:
                first = executed

        for p in itertools.islice(self._pending, 1, None):
            if self._tick > p.placed_at_tick:
                p.last_reason = BLOCKED_BY_FIFO_HEAD
                self._record_miss(BLOCKED_BY_FIFO_HEAD, p, bar)
        return first

    def _fits_position(self, kind: PendingKind) -> bool:
        if kind == PendingKind.CLOSE:
            return self._position != 0
        return self._position == 0

    def _execute_pending(self, p: PendingOrder) -> Order:
        if p.kind == PendingKind.OPEN_LONG:
            return self._open_long_at(p.price, p.fraction, p.placed_at_tick)
        if p.kind == PendingKind.OPEN_SHORT:
            return self._open_short_at(p.price, p.fraction, p.placed_at_tick)
        return self._close_at(p.price, p.reason, p.stop_kind, p.placed_at_tick)

    def _count_failure(self, reason: str) -> None:
        self._limit_failed[reason] = self._limit_failed.get(reason, 0) + 1

    def _record_miss(self, reason: str, p: PendingOrder, bar: Bar) -> None:
        self._misses.append(
            LimitMiss(
                reason=reason,
                kind=p.kind,
                limit_price=p.price,
                placed_tick=p.placed_at_tick,
                check_tick=self._tick,
                prev_bar=p.placed_bar,
                curr_bar=bar,
            )
        )
        logger.debug("Limit #%d %s at tick %d (price %.8f)", p.id, reason, self._tick, p.price)

    # ---------- position accounting ----------

    def _notional(self, fraction: float) -> tuple[float, float, float]:
        _check_fraction(fraction)
        notional = self._usd * fraction
        if notional <= 0:
            raise InvalidFractionError("notional must be positive")
        fee_usd = notional * self._fee
        net = notional - fee_usd
        if net <= 0:
            raise InvalidFractionError("notional net of fee must be positive")
        return notional, fee_usd, net

    def _check_can_open(self) -> None:
        if self._position != 0:
            raise PositionOpenError("position already open")
        if self._last_price <= 0:
            raise PriceNotSetError("price not set")

    def _exec_price(self, side: OrderSide, mid: float) -> float:
        return pricing.exec_price(side, mid, self._spread.spread_pct, self._slippage_pct)

    def _open_long_at(self, price: float, fraction: float, placed_tick: int) -> Order:
        self._check_can_open()
        if price <= 0:
            price = self._last_price
        notional, fee_usd, net = self._notional(fraction)
        equity_before = self.balance().equity
        exec_px = self._exec_price(OrderSide.BUY, price)
        qty = net / exec_px
        self._usd -= notional
        self._position = qty
        self._entry_price = exec_px
        return self._record_order(
            OrderSide.BUY, qty, price, exec_px, fee_usd, qty * (price - exec_px),
            equity_before, REASON_ENTRY_LONG, "", placed_tick,
        )

    def _open_short_at(self, price: float, fraction: float, placed_tick: int) -> Order:
        self._check_can_open()
        if price <= 0:
            price = self._last_price
        notional, fee_usd, net = self._notional(fraction)
        equity_before = self.balance().equity
        exec_px = self._exec_price(OrderSide.SELL, price)
        qty = notional / exec_px
        self._usd -= notional
        self._short_margin += notional
        self._short_cash += net
        self._position = -qty
        self._entry_price = exec_px
        return self._record_order(
            OrderSide.SELL, qty, price, exec_px, fee_usd, qty * (exec_px - price),
            equity_before, REASON_ENTRY_SHORT, "", placed_tick,
        )

    def _close_at(self, price: float, reason: str, stop_kind: str, placed_tick: int) -> Order:
        # Equity is valued at the closing level, which may differ from the bar close.
        saved_last = self._last_price
        self._last_price = price
        try:
            if self._position > 0:
                return self._close_long(price, reason, stop_kind, placed_tick)
            return self._close_short(price, reason, stop_kind, placed_tick)
        finally:
            self._last_price = saved_last

    def _close_long(self, price: float, reason: str, stop_kind: str, placed_tick: int) -> Order:
        equity_before = self.balance().equity
        exec_px = self._exec_price(OrderSide.SELL, price)
        qty = self._position
        revenue = qty * exec_px
        fee_usd = revenue * self._fee
        self._usd += revenue - fee_usd
        self._position = 0.0
        self._entry_price = 0.0
        return self._record_order(
            OrderSide.SELL, qty, price, exec_px, fee_usd, qty * (exec_px - price),
            equity_before, reason, stop_kind, placed_tick,
        )

    def _close_short(self, price: float, reason: str, stop_kind: str, placed_tick: int) -> Order:
        equity_before = self.balance().equity
        exec_px = self._exec_price(OrderSide.BUY, price)
        qty = -self._position
        cost = qty * exec_px
        fee_usd = cost * self._fee
        total = cost + fee_usd
        if self._short_cash + self._short_margin < total:
            # Full wipeout; the fee is not reconciled against the loss.
            self._usd = 0.0
            self._short_cash = 0.0
            self._short_margin = 0.0
            self._position = 0.0
            self._entry_price = 0.0
            logger.info("Liquidation at tick %d: buy-back %.8f exceeds reserved capital", self._tick, total)
            return self._record_order(
                OrderSide.BUY, qty, price, exec_px, fee_usd, -equity_before,
                equity_before, REASON_LIQUIDATION, "", placed_tick,
            )
        if total <= self._short_cash:
            self._short_cash -= total
        else:
            self._short_margin = max(self._short_margin - (total - self._short_cash), 0.0)
            self._short_cash = 0.0
        self._position = 0.0
        self._entry_price = 0.0
        self._usd += self._short_cash + self._short_margin
        self._short_cash = 0.0
        self._short_margin = 0.0
        return self._record_order(
            OrderSide.BUY, qty, price, exec_px, fee_usd, qty * (price - exec_px),
            equity_before, reason, stop_kind, placed_tick,
        )

    def _record_order(
        self,
        side: OrderSide,
        qty: float,
        mid: float,
        exec_px: float,
        fee_usd: float,
        exec_pnl: float,
        equity_before: float,
        reason: str,
        stop_kind: str,
        placed_tick: int,
    ) -> Order:
        bal = self.balance()
        order = Order(
            id=next(self._order_ids),
            symbol=self._symbol,
            side=side,
            qty=qty,
            mid_price=mid,
            exec_price=exec_px,
            fee=fee_usd,
            exec_pnl=exec_pnl,
            equity_before=equity_before,
            reason=reason,
            stop_kind=stop_kind,
            position_after=self._position,
            usd=self._usd,
            short_cash=bal.short_cash,
            short_margin=bal.short_margin,
            equity=bal.equity,
            entry_price=bal.entry_price,
            tick=self._tick,
            placed_tick=placed_tick,
            spread_pct=self._spread.spread_pct,
            slippage_pct=self._slippage_pct,
        )
        self._orders.append(order)
        logger.debug(
            "Order #%d %s %s qty=%.8f @ %.8f (mid %.8f) tick=%d",
            order.id, order.reason, side.value, qty, exec_px, mid, self._tick,
        )
        return order
