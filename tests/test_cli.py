"""Tests for CLI commands using click CliRunner. Uses a temp config and CSV fixture."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cli.main import cli

JAN_1 = 1767225600


@pytest.fixture
def tmp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Write a temp config.yaml pointing at a four-bar CSV."""
    monkeypatch.delenv("EMUL_DATA_ROOT", raising=False)
    monkeypatch.delenv("EMUL_CSV_PATH", raising=False)
    csv_path = tmp_path / "enj.csv"
    rows = [(10, 11, 9, 10), (10, 12, 10, 12), (12, 13, 11, 12), (12, 13, 11.5, 12.5)]
    csv_path.write_text("".join(f"{JAN_1 + i * 3600},{o},{h},{l},{c},100\n" for i, (o, h, l, c) in enumerate(rows)))
    journal_path = tmp_path / "journal.jsonl"
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"""
symbol: ENJ
data:
  csv_path: "{csv_path}"
exchange:
  start_usd: 1000
  fee: 0
  spread_pct: 0
journal:
  path: "{journal_path}"
logging:
  level: WARNING
"""
    )
    return config_path


def test_cli_bars(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "bars"])
    assert result.exit_code == 0, result.output
    assert "=== Bars: ENJ ===" in result.output
    assert "Count        : 4" in result.output
    assert "Max average  : 12.25000000" in result.output


def test_cli_replay_idle(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "replay"])
    assert result.exit_code == 0, result.output
    assert "=== Replay: ENJ ===" in result.output
    assert "Steps        : 4" in result.output
    assert "Trades       : 0 (W:0 / L:0)" in result.output
    assert "Position     : flat" in result.output

    journal = tmp_config.parent / "journal.jsonl"
    (summary,) = [json.loads(line) for line in journal.read_text().splitlines()]
    assert summary["event"] == "summary"
    assert summary["steps"] == 4


def test_cli_replay_buy_and_hold(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "replay", "--buy-and-hold", "--no-journal"])
    assert result.exit_code == 0, result.output
    assert "Return       : +25.00%" in result.output
    assert "Trades       : 1 (W:1 / L:0)" in result.output
    assert "entry-long" in result.output
    assert not (tmp_config.parent / "journal.jsonl").exists()


def test_cli_replay_steps(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "replay", "--steps", "2", "--buy-and-hold", "--no-journal"])
    assert result.exit_code == 0, result.output
    assert "Steps        : 2" in result.output
    assert "Return       : +20.00%" in result.output


def test_cli_missing_config(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "bars"])
    assert result.exit_code != 0
    assert "Config file not found" in result.output


def test_cli_missing_csv(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f'symbol: ENJ\ndata:\n  csv_path: "{tmp_path / "gone.csv"}"\n')
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "replay", "--no-journal"])
    assert result.exit_code != 0
    assert "Error" in result.output


@pytest.fixture
def root_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Config reading <root>/enj/<interval>; only daily data exists."""
    monkeypatch.delenv("EMUL_DATA_ROOT", raising=False)
    monkeypatch.delenv("EMUL_CSV_PATH", raising=False)
    daily = tmp_path / "data" / "enj" / "d"
    daily.mkdir(parents=True)
    (daily / "2026.csv").write_text(f"{JAN_1},10,11,9,10,100\n{JAN_1 + 86400},10,12,10,12,100\n")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f'symbol: ENJ\ndata:\n  root: "{tmp_path / "data"}"\n  interval: h\n')
    return config_path


def test_cli_interval_flag_overrides_config(root_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(root_config), "bars", "-d"])
    assert result.exit_code == 0, result.output
    assert "Count        : 2" in result.output
    assert "Interval     : d (2.0 days)" in result.output


def test_cli_configured_interval_used_without_flag(root_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(root_config), "bars"])
    assert result.exit_code != 0
    assert "data path not found" in result.output


def test_cli_replay_daily(root_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(root_config), "replay", "--daily", "--no-journal"])
    assert result.exit_code == 0, result.output
    assert "Steps        : 2" in result.output


def test_cli_conflicting_interval_flags(root_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(root_config), "bars", "-d", "-h"])
    assert result.exit_code == 2
    assert "only one interval flag" in result.output
