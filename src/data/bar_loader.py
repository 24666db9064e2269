"""
Load OHLC bars from CSV. Rows: time,open,high,low,close,volume[,...].

Time is unix seconds or milliseconds. Blank, short, untimed and unparseable
rows are skipped, as are rows whose OHLC cannot form a bar. Each bar's
average is (O + H + L + C) / 4.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Sequence

from execution.models import Bar

logger = logging.getLogger("emul.data")

_MS_THRESHOLD = 1_000_000_000_000
_MIN_COLUMNS = 6


class BarLoadError(ValueError):
    """Malformed or empty bar source."""


class NoDataRows(BarLoadError):
    """File parsed but yielded no usable rows."""


@dataclass
class BarSeries:
    """Parallel OHLC columns plus per-row average and the largest average seen."""

    averages: list[float] = field(default_factory=list)
    open: list[float] = field(default_factory=list)
    high: list[float] = field(default_factory=list)
    low: list[float] = field(default_factory=list)
    close: list[float] = field(default_factory=list)
    timestamps: list[datetime | None] = field(default_factory=list)
    max_value: float = 0.0

    def __len__(self) -> int:
        return len(self.averages)

    def extend(self, other: BarSeries) -> None:
        self.averages.extend(other.averages)
        self.open.extend(other.open)
        self.high.extend(other.high)
        self.low.extend(other.low)
        self.close.extend(other.close)
        self.timestamps.extend(other.timestamps)
        if len(other) and other.max_value > self.max_value:
            self.max_value = other.max_value


def parse_csv_float(raw: str) -> float | None:
    value = raw.strip().strip('"')
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_csv_time(raw: str) -> datetime | None:
    """Unix seconds or milliseconds -> UTC datetime. None if unparseable or non-positive."""
    value = parse_csv_float(raw)
    if value is None or not math.isfinite(value):
        return None
    sec = int(value)
    if sec > _MS_THRESHOLD:
        sec //= 1000
    if sec <= 0:
        return None
    try:
        return datetime.fromtimestamp(sec, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def valid_ohlc(o: float, h: float, l: float, c: float) -> bool:
    """Finite, non-negative, positive close and high >= low."""
    values = (o, h, l, c)
    if not all(math.isfinite(v) and v >= 0 for v in values):
        return False
    return c > 0 and h >= l


def build_month_filter(months: Iterable[int] | None) -> set[int] | None:
    """Valid months (1..12) as a set, or None when nothing valid was given."""
    if not months:
        return None
    valid = {m for m in months if 1 <= m <= 12}
    return valid or None


def load_series(path: str | Path, months: set[int] | None = None) -> BarSeries:
    """Parse one CSV file into a BarSeries. Raises NoDataRows if nothing parsed.

    Rows with OHLC values that cannot form a bar (non-finite, negative,
    close <= 0 or high < low) are skipped and reported in one warning.
    """
    path = Path(path)
    series = BarSeries()
    max_value = float("-inf")
    rejected = 0
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            parts = line.split(",")
            if len(parts) < _MIN_COLUMNS:
                continue
            ts = parse_csv_time(parts[0])
            if ts is None:
                continue
            if months is not None and ts.month not in months:
                continue
            values = [parse_csv_float(p) for p in parts[1:5]]
            if any(v is None for v in values):
                continue
            o, h, l, c = values
            if not valid_ohlc(o, h, l, c):
                rejected += 1
                continue
            avg = (o + h + l + c) / 4
            series.averages.append(avg)
            series.open.append(o)
            series.high.append(h)
            series.low.append(l)
            series.close.append(c)
            series.timestamps.append(ts)
            max_value = max(max_value, avg)
    if rejected:
        logger.warning("%s: skipped %d row(s) with invalid OHLC values", path.name, rejected)
    if not len(series):
        raise NoDataRows(f"{path}: no data rows parsed")
    series.max_value = max_value
    return series


def bars_from_series(series: BarSeries, symbol: str | None = None) -> list[Bar]:
    n = len(series)
    if any(len(col) != n for col in (series.open, series.high, series.low, series.close)):
        raise BarLoadError("ohlc length mismatch")
    timestamps: Sequence[datetime | None] = series.timestamps if len(series.timestamps) == n else [None] * n
    return [
        Bar(
            open=series.open[i],
            high=series.high[i],
            low=series.low[i],
            close=series.close[i],
            average=series.averages[i],
            timestamp=timestamps[i],
            symbol=symbol,
        )
        for i in range(n)
    ]


def load_bars_from_csv(csv_path: str | Path, *, months: Iterable[int] | None = None, symbol: str | None = None) -> list[Bar]:
    """Load one ``.csv`` file as an ordered, non-empty bar list."""
    text = str(csv_path).strip()
    if not text:
        raise BarLoadError("csv path is empty")
    path = Path(text)
    if path.suffix.lower() != ".csv":
        raise BarLoadError("csv path must end with .csv")
    series = load_series(path, build_month_filter(months))
    logger.info("Loaded %d bars from %s", len(series), path)
    return bars_from_series(series, symbol)
