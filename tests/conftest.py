"""Pytest fixtures: bar sequences and exchanges for deterministic tests."""

from datetime import datetime, timedelta, timezone

import pytest

from execution import Bar, Exchange

BASE_TS = datetime(2026, 1, 1, tzinfo=timezone.utc)


def bar(open_: float, high: float, low: float, close: float, i: int = 0) -> Bar:
    return Bar.from_ohlc(open_, high, low, close, timestamp=BASE_TS + timedelta(hours=i))


@pytest.fixture
def four_bars() -> list[Bar]:
    """Averages 10, 11, 12, 12.25; each average lies inside its own bar's range."""
    return [
        bar(10.0, 11.0, 9.0, 10.0, 0),
        bar(10.0, 12.0, 10.0, 12.0, 1),
        bar(12.0, 13.0, 11.0, 12.0, 2),
        bar(12.0, 13.0, 11.5, 12.5, 3),
    ]


@pytest.fixture
def flat_bar() -> Bar:
    """Range 9..11, close 10."""
    return bar(10.0, 11.0, 9.0, 10.0)


@pytest.fixture
def exchange() -> Exchange:
    """1000 USD, no fee, no slippage, fixed zero spread."""
    return Exchange("TEST", start_usd=1_000.0, fee=0.0, slippage_pct=0.0, spread_pct=0.0)


@pytest.fixture
def priced_exchange(exchange: Exchange, flat_bar: Bar) -> Exchange:
    """Zero-cost exchange that has seen one bar (tick 1, last price 10)."""
    exchange.tick_bar_at(1, flat_bar)
    return exchange
