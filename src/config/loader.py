"""
Config loader: YAML file -> JSON Schema validation -> frozen dataclass tree.

Data locations can be overridden from the environment (EMUL_DATA_ROOT,
EMUL_CSV_PATH) so the same config file works across machines.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml

logger = logging.getLogger("emul.config")

CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "symbol": {"type": "string"},
        "data": {
            "type": "object",
            "properties": {
                "root": {"type": "string"},
                "interval": {"enum": ["d", "h", "m"]},
                "csv_path": {"type": "string"},
                "years": {"type": "array", "items": {"type": "integer", "minimum": 1}},
                "months": {"type": "array", "items": {"type": "integer", "minimum": 1, "maximum": 12}},
            },
        },
        "exchange": {
            "type": "object",
            "properties": {
                "start_usd": {"type": "number"},
                "fee": {"type": "number"},
                "slippage_pct": {"type": "number"},
                "spread_pct": {"type": "number"},
            },
        },
        "journal": {
            "type": "object",
            "properties": {
                "path": {"type": "string"},
                "echo_stdout": {"type": "boolean"},
            },
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "debug", "info", "warning", "error"]},
            },
        },
    },
}


class ConfigError(Exception):
    """Raised when the config fails schema validation."""


@dataclass(frozen=True)
class DataConfig:
    root: str = "data"
    interval: str = "h"
    csv_path: str = ""
    years: tuple[int, ...] = ()
    months: tuple[int, ...] = ()


@dataclass(frozen=True)
class ExchangeConfig:
    start_usd: float = 1_000.0
    fee: float = 0.001
    slippage_pct: float = 0.0
    spread_pct: float = -1.0  # outside [0, 1): dynamic spread


@dataclass(frozen=True)
class JournalConfig:
    path: str = "data/journal.jsonl"
    echo_stdout: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    symbol: str
    data: DataConfig = field(default_factory=DataConfig)
    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    journal: JournalConfig = field(default_factory=JournalConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _validate(raw: dict[str, Any]) -> None:
    try:
        jsonschema.validate(instance=raw, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as exc:
        raise ConfigError(f"Config validation failed: {exc.message}") from exc


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """
    Load configuration from a YAML file.

    Environment overrides:
      - EMUL_DATA_ROOT  -> data.root
      - EMUL_CSV_PATH   -> data.csv_path
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    _validate(raw)

    data_raw = raw.get("data", {})
    data_cfg = DataConfig(
        root=os.environ.get("EMUL_DATA_ROOT", data_raw.get("root", "data")),
        interval=data_raw.get("interval", "h"),
        csv_path=os.environ.get("EMUL_CSV_PATH", data_raw.get("csv_path", "")),
        years=tuple(data_raw.get("years", [])),
        months=tuple(data_raw.get("months", [])),
    )

    ex_raw = raw.get("exchange", {})
    ex_cfg = ExchangeConfig(
        start_usd=float(ex_raw.get("start_usd", 1_000.0)),
        fee=float(ex_raw.get("fee", 0.001)),
        slippage_pct=float(ex_raw.get("slippage_pct", 0.0)),
        spread_pct=float(ex_raw.get("spread_pct", -1.0)),
    )

    j_raw = raw.get("journal", {})
    j_cfg = JournalConfig(
        path=j_raw.get("path", "data/journal.jsonl"),
        echo_stdout=bool(j_raw.get("echo_stdout", False)),
    )

    log_cfg = LoggingConfig(level=str(raw.get("logging", {}).get("level", "INFO")).upper())

    logger.debug("Loaded config from %s", config_path)
    return AppConfig(
        symbol=str(raw.get("symbol", "")),
        data=data_cfg,
        exchange=ex_cfg,
        journal=j_cfg,
        logging=log_cfg,
    )
