"""
Bar source: CSV files (single file or <root>/<coin>/<interval> directory) -> ordered bars.

Depends on execution.models for Bar; nothing in execution depends back on data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from data.bar_loader import BarLoadError, BarSeries, bars_from_series, load_bars_from_csv, load_series
from data.data_root import interval_from_flags, load_series_from_data_root, points_per_day
from execution.models import Bar

if TYPE_CHECKING:
    from config.loader import AppConfig

__all__ = [
    "BarLoadError",
    "BarSeries",
    "bars_from_series",
    "interval_from_flags",
    "load_bars_for_config",
    "load_bars_from_csv",
    "load_series",
    "load_series_from_data_root",
    "points_per_day",
]


def load_bars_for_config(cfg: AppConfig) -> list[Bar]:
    """A configured csv_path wins; otherwise read the data root for cfg.symbol."""
    d = cfg.data
    if d.csv_path:
        return load_bars_from_csv(d.csv_path, months=d.months)
    series = load_series_from_data_root(d.root, cfg.symbol, d.interval, years=d.years, months=d.months)
    return bars_from_series(series)
