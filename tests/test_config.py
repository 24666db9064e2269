"""Tests for config loader: YAML parsing, schema validation, env overrides, error cases."""

from pathlib import Path

import pytest

from config import ConfigError, load_config


def _write_yaml(path: Path, content: str) -> Path:
    path.write_text(content)
    return path


def test_load_config_basic(tmp_path: Path) -> None:
    path = _write_yaml(
        tmp_path / "config.yaml",
        """
symbol: ENJ
data:
  root: /srv/candles
  interval: d
  years: [2024, 2025]
  months: [1, 2]
exchange:
  start_usd: 5000
  fee: 0.002
  slippage_pct: 0.001
  spread_pct: 0.0005
journal:
  path: out/journal.jsonl
  echo_stdout: true
logging:
  level: debug
""",
    )
    cfg = load_config(path)
    assert cfg.symbol == "ENJ"
    assert cfg.data.root == "/srv/candles"
    assert cfg.data.interval == "d"
    assert cfg.data.years == (2024, 2025)
    assert cfg.data.months == (1, 2)
    assert cfg.exchange.start_usd == 5_000.0
    assert cfg.exchange.fee == 0.002
    assert cfg.exchange.slippage_pct == 0.001
    assert cfg.exchange.spread_pct == 0.0005
    assert cfg.journal.path == "out/journal.jsonl"
    assert cfg.journal.echo_stdout is True
    assert cfg.logging.level == "DEBUG"


def test_load_config_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EMUL_DATA_ROOT", raising=False)
    monkeypatch.delenv("EMUL_CSV_PATH", raising=False)
    cfg = load_config(_write_yaml(tmp_path / "config.yaml", "symbol: btc\n"))
    assert cfg.data.root == "data"
    assert cfg.data.interval == "h"
    assert cfg.data.csv_path == ""
    assert cfg.data.years == ()
    assert cfg.exchange.start_usd == 1_000.0
    assert cfg.exchange.fee == 0.001
    assert cfg.exchange.spread_pct == -1.0
    assert cfg.journal.echo_stdout is False
    assert cfg.logging.level == "INFO"


def test_load_config_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_yaml(tmp_path / "config.yaml", "symbol: btc\ndata:\n  root: data\n  csv_path: a.csv\n")
    monkeypatch.setenv("EMUL_DATA_ROOT", "/mnt/history")
    monkeypatch.setenv("EMUL_CSV_PATH", "/mnt/history/btc.csv")
    cfg = load_config(path)
    assert cfg.data.root == "/mnt/history"
    assert cfg.data.csv_path == "/mnt/history/btc.csv"


def test_load_config_missing_file() -> None:
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/path.yaml")


def test_load_config_not_a_mapping(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="mapping"):
        load_config(_write_yaml(tmp_path / "config.yaml", "- just\n- a list\n"))


@pytest.mark.parametrize(
    "content",
    [
        "symbol: x\ndata:\n  interval: w\n",
        "symbol: x\ndata:\n  months: [13]\n",
        "symbol: x\nexchange:\n  fee: cheap\n",
        "symbol: x\nlogging:\n  level: LOUD\n",
    ],
)
def test_load_config_schema_errors(tmp_path: Path, content: str) -> None:
    with pytest.raises(ConfigError, match="validation failed"):
        load_config(_write_yaml(tmp_path / "config.yaml", content))
