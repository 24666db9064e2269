"""
Human-readable replay output for the terminal.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from data.data_root import points_per_day

if TYPE_CHECKING:
    from backtest.runner import ReplayResult
    from execution import Balance, Bar, LimitDiagnostics, Order


def format_bar(bar: Bar) -> str:
    ts = bar.timestamp.isoformat() if bar.timestamp else "-"
    return f"{ts}  O {bar.open:.8f}  H {bar.high:.8f}  L {bar.low:.8f}  C {bar.close:.8f}  avg {bar.average:.8f}"


def format_bars_summary(bars: Sequence[Bar], symbol: str, interval: str | None = None) -> str:
    """Count, span and price range of a loaded bar sequence."""
    lines = [f"=== Bars: {symbol} ===", f"Count        : {len(bars)}"]
    per_day = points_per_day(interval) if interval else 0
    if per_day:
        lines.append(f"Interval     : {interval} ({len(bars) / per_day:.1f} days)")
    if bars:
        lines.append(f"First        : {format_bar(bars[0])}")
        lines.append(f"Last         : {format_bar(bars[-1])}")
        lines.append(f"Low / High   : {min(b.low for b in bars):.8f} / {max(b.high for b in bars):.8f}")
        lines.append(f"Max average  : {max(b.average for b in bars):.8f}")
    lines.append("===")
    return "\n".join(lines)


def format_order(order: Order) -> str:
    stop = f" [{order.stop_kind}]" if order.stop_kind else ""
    return (
        f"  #{order.id} tick {order.tick} (placed {order.placed_tick}) {order.reason}{stop}: "
        f"{order.side.value} {order.qty:.8f} @ {order.exec_price:.8f} (mid {order.mid_price:.8f}) "
        f"fee {order.fee:.4f} equity {order.equity_before:.2f} -> {order.equity:.2f}"
    )


def format_balance(bal: Balance) -> str:
    if bal.is_long:
        pos = f"long {bal.position:.8f} @ {bal.entry_price:.8f}"
    elif bal.is_short:
        pos = f"short {-bal.position:.8f} @ {bal.entry_price:.8f}"
    else:
        pos = "flat"
    lines = [
        "=== Account ===",
        f"USD          : {bal.usd:,.2f}",
        f"Position     : {pos}",
    ]
    if bal.is_short:
        lines.append(f"Short cash   : {bal.short_cash:,.2f}  margin {bal.short_margin:,.2f}")
    lines.append(f"Equity       : {bal.equity:,.2f} (last price {bal.last_price:.8f})")
    lines.append("===")
    return "\n".join(lines)


def format_limit_diagnostics(diag: LimitDiagnostics) -> str:
    lines = [f"Limit orders : {diag.pending_total} failure/pending record(s)"]
    for reason, count in sorted(diag.reasons.items()):
        lines.append(f"  {reason}: {count}")
    if diag.misses:
        lines.append(f"  misses logged: {len(diag.misses)}")
    return "\n".join(lines)


def format_replay_summary(result: ReplayResult) -> str:
    lines = [
        f"=== Replay: {result.symbol or '-'} ===",
        f"Steps        : {result.steps}",
        f"Start equity : {result.start_equity:,.2f}",
        f"Final equity : {result.final_equity:,.2f}",
        f"Return       : {result.total_return_pct:+.2f}%",
        f"Orders       : {len(result.orders)} (liquidations: {result.liquidations})",
        f"Trades       : {len(result.trades)} (W:{result.win_count} / L:{result.loss_count})",
    ]
    if result.orders:
        lines.append("")
        lines.extend(format_order(o) for o in result.orders)
    lines.append("")
    lines.append(format_limit_diagnostics(result.diagnostics))
    lines.append("===")
    return "\n".join(lines)
