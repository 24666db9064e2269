"""
Bar replay: feed a pre-loaded bar sequence to the exchange one tick at a time.
"""

from backtest.emulator import Emulator, NoMoreBars, Step
from backtest.runner import ReplayResult, ReplayTrade, buy_and_hold, pair_trades, run_replay

__all__ = [
    "Emulator",
    "NoMoreBars",
    "ReplayResult",
    "ReplayTrade",
    "Step",
    "buy_and_hold",
    "pair_trades",
    "run_replay",
]
