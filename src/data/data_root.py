"""
Historical data directory layout: <root>/<coin>/<interval>/*.csv

Interval is one of d (daily), h (hourly), m (minute). Year selection picks
``<coin><year>.csv`` or, failing that, ``<year>.csv``. Files are read in
sorted name order and concatenated.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from data.bar_loader import BarLoadError, BarSeries, NoDataRows, build_month_filter, load_series

logger = logging.getLogger("emul.data")

INTERVAL_DAILY = "d"
INTERVAL_HOURLY = "h"
INTERVAL_MINUTE = "m"
INTERVALS = (INTERVAL_DAILY, INTERVAL_HOURLY, INTERVAL_MINUTE)
MINUTES_PER_DAY = 24 * 60


def interval_from_flags(daily: bool, hourly: bool, minute: bool) -> str:
    selected = [name for name, on in ((INTERVAL_DAILY, daily), (INTERVAL_HOURLY, hourly), (INTERVAL_MINUTE, minute)) if on]
    if not selected:
        raise ValueError("select interval with -d, -h, or -m")
    if len(selected) > 1:
        raise ValueError("only one interval flag is allowed: -d, -h, or -m")
    return selected[0]


def points_per_day(interval: str) -> int:
    return {INTERVAL_DAILY: 1, INTERVAL_HOURLY: 24, INTERVAL_MINUTE: MINUTES_PER_DAY}.get(interval, 0)


def resolve_data_dir(root: str | Path, coin: str, interval: str) -> Path:
    root_text = str(root).strip()
    if not root_text:
        raise BarLoadError("data root is empty")
    coin = coin.strip().lower()
    if not coin:
        raise BarLoadError("coin is empty")
    interval = interval.strip().lower()
    if interval not in INTERVALS:
        raise BarLoadError(f"invalid interval {interval!r}")
    path = Path(root_text) / coin / interval
    if not path.exists():
        raise FileNotFoundError(f"data path not found: {path}")
    if not path.is_dir():
        raise BarLoadError(f"data path is not a directory: {path}")
    return path


def list_csv_files(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".csv")


def _resolve_year_file(year_only: Path, coin_year: Path | None) -> Path | None:
    for candidate in (coin_year, year_only):
        if candidate is None or not candidate.exists():
            continue
        if candidate.is_dir():
            raise BarLoadError(f"data path is a directory: {candidate}")
        return candidate
    return None


def list_csv_files_for_years(directory: Path, coin: str, years: Iterable[int] | None) -> list[Path]:
    years = list(years or [])
    if not years:
        return list_csv_files(directory)
    coin = coin.strip().lower()
    files: list[Path] = []
    for year in years:
        if year <= 0:
            continue
        year_only = directory / f"{year}.csv"
        coin_year = directory / f"{coin}{year}.csv" if coin else None
        path = _resolve_year_file(year_only, coin_year)
        if path is None:
            expected = f"{coin_year.name} or {year_only.name}" if coin_year else year_only.name
            raise BarLoadError(f"missing year file {year} (expected {expected})")
        files.append(path)
    return sorted(files)


def load_series_from_files(directory: Path, files: list[Path], months: set[int] | None = None) -> BarSeries:
    if not files:
        raise BarLoadError(f"no csv files found in {directory}")
    series = BarSeries()
    for path in files:
        try:
            series.extend(load_series(path, months))
        except NoDataRows:
            logger.warning("Skipping %s: no data rows", path.name)
    if not len(series):
        raise BarLoadError(f"no data loaded from {directory}")
    return series


def load_series_from_data_root(
    root: str | Path,
    coin: str,
    interval: str,
    *,
    years: Iterable[int] | None = None,
    months: Iterable[int] | None = None,
) -> BarSeries:
    """Concatenate every selected CSV under ``<root>/<coin>/<interval>``, optionally filtered by month."""
    directory = resolve_data_dir(root, coin, interval)
    files = list_csv_files_for_years(directory, coin, years)
    series = load_series_from_files(directory, files, build_month_filter(months))
    logger.info("Loaded %d rows for %s/%s from %d file(s)", len(series), coin, interval, len(files))
    return series
