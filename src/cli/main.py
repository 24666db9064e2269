"""
CLI entry point: emul bars | replay.

Every command loads config from --config (default config.yaml) and
prints a human-readable summary. Replay events go to the journal.
"""

import dataclasses
import logging
import sys

import click
from dotenv import load_dotenv

from config import ConfigError, load_config

load_dotenv()

logger = logging.getLogger("emul.cli")


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _interval_flags(f):
    """-d / -h / -m select the data-root interval, overriding config."""
    f = click.option("-m", "--minute", is_flag=True, default=False, help="Minute bars.")(f)
    f = click.option("-h", "--hourly", is_flag=True, default=False, help="Hourly bars.")(f)
    return click.option("-d", "--daily", is_flag=True, default=False, help="Daily bars.")(f)


def _load(ctx: click.Context, daily: bool = False, hourly: bool = False, minute: bool = False):
    try:
        cfg = load_config(ctx.obj["config_path"])
    except (FileNotFoundError, ValueError, ConfigError) as exc:
        raise click.ClickException(str(exc)) from exc
    _setup_logging(ctx.obj["log_level"] or cfg.logging.level)
    if daily or hourly or minute:
        from data import interval_from_flags

        try:
            interval = interval_from_flags(daily, hourly, minute)
        except ValueError as exc:
            raise click.UsageError(str(exc)) from exc
        cfg = dataclasses.replace(cfg, data=dataclasses.replace(cfg.data, interval=interval))
    return cfg


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config file.")
@click.option("--log-level", default=None, help="Override logging level (DEBUG, INFO, ...).")
@click.pass_context
def cli(ctx: click.Context, config_path: str, log_level: str | None) -> None:
    """emul: replay historical bars through a simulated exchange."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level


# ---------- emul bars ----------


@cli.command()
@_interval_flags
@click.pass_context
def bars(ctx: click.Context, daily: bool, hourly: bool, minute: bool) -> None:
    """Load bars as configured and summarize them."""
    cfg = _load(ctx, daily, hourly, minute)
    from cli.output import format_bars_summary
    from data import BarLoadError, load_bars_for_config

    try:
        loaded = load_bars_for_config(cfg)
    except (BarLoadError, OSError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(format_bars_summary(loaded, cfg.symbol, None if cfg.data.csv_path else cfg.data.interval))


# ---------- emul replay ----------


@cli.command()
@click.option("--steps", "max_steps", default=None, type=int, help="Stop after this many bars.")
@click.option("--buy-and-hold", is_flag=True, default=False, help="Go long on the first bar, close on the last.")
@click.option("--fraction", default=1.0, type=float, help="Share of USD committed by --buy-and-hold.")
@click.option("--journal/--no-journal", "use_journal", default=True, help="Write events to the configured journal.")
@_interval_flags
@click.pass_context
def replay(
    ctx: click.Context,
    max_steps: int | None,
    buy_and_hold: bool,
    fraction: float,
    use_journal: bool,
    daily: bool,
    hourly: bool,
    minute: bool,
) -> None:
    """Replay configured bars and print account state, orders and limit diagnostics."""
    cfg = _load(ctx, daily, hourly, minute)
    from backtest import Emulator, run_replay
    from backtest.runner import buy_and_hold as buy_and_hold_strategy
    from cli.output import format_balance, format_replay_summary
    from data import BarLoadError
    from execution import ExchangeError
    from journal import JournalWriter

    try:
        emulator = Emulator.from_config(cfg)
    except (BarLoadError, OSError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    last_tick = len(emulator) if max_steps is None else min(max_steps, len(emulator))
    strategy = buy_and_hold_strategy(last_tick, fraction) if buy_and_hold else None
    journal = JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout) if use_journal else None

    click.echo(f"Replaying {cfg.symbol or '-'}: {len(emulator)} bars ...")
    try:
        result = run_replay(emulator, strategy, journal=journal, max_steps=max_steps)
    except ExchangeError as exc:
        raise click.ClickException(f"replay failed at tick {emulator.exchange.tick}: {exc}") from exc
    click.echo(format_replay_summary(result))
    click.echo(format_balance(emulator.exchange.balance()))
