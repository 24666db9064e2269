"""
Structured journal: append-only JSON lines. One line per executed order,
limit miss, or replay summary.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from execution.models import LimitMiss, Order


def _serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "__dict__") and not isinstance(obj, type):
        return {k: _serialize(v) for k, v in vars(obj).items() if not k.startswith("_")}
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(x) for x in obj]
    return obj


class JournalWriter:
    """Append-only journal. Each line is a JSON object with event type and payload."""

    def __init__(self, path: str | Path, *, echo_stdout: bool = False) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._echo = echo_stdout

    @property
    def path(self) -> Path:
        return self._path

    def _write(self, event_type: str, payload: dict) -> None:
        record = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event_type, **payload}
        line = json.dumps(_serialize(record)) + "\n"
        with open(self._path, "a") as f:
            f.write(line)
        if self._echo:
            print(line.rstrip())

    def order(self, order: Order, **extra: Any) -> None:
        self._write("order", {**vars(order), **extra})

    def limit_miss(self, miss: LimitMiss, **extra: Any) -> None:
        self._write("limit_miss", {**vars(miss), **extra})

    def summary(self, symbol: str, steps: int, start_equity: float, final_equity: float, orders: int, **extra: Any) -> None:
        self._write(
            "summary",
            {"symbol": symbol, "steps": steps, "start_equity": start_equity, "final_equity": final_equity, "orders": orders, **extra},
        )
