"""
Simulated execution: one exchange, one symbol, one position at a time.
Market and FIFO limit orders, fees, slippage and spread. In memory only.
"""

from execution.errors import (
    ExchangeError,
    InvalidBarError,
    InvalidFractionError,
    NoPositionError,
    PositionOpenError,
    PriceNotSetError,
    SymbolMismatchError,
)
from execution.exchange import Exchange
from execution.models import (
    REASON_ENTRY_LONG,
    REASON_ENTRY_SHORT,
    REASON_EXIT,
    REASON_LIQUIDATION,
    REASON_STOP_LOSS,
    Balance,
    Bar,
    LimitDiagnostics,
    LimitMiss,
    Order,
    OrderSide,
    PendingKind,
    PendingOrder,
)

__all__ = [
    "Balance",
    "Bar",
    "Exchange",
    "ExchangeError",
    "InvalidBarError",
    "InvalidFractionError",
    "LimitDiagnostics",
    "LimitMiss",
    "NoPositionError",
    "Order",
    "OrderSide",
    "PendingKind",
    "PendingOrder",
    "PositionOpenError",
    "PriceNotSetError",
    "REASON_ENTRY_LONG",
    "REASON_ENTRY_SHORT",
    "REASON_EXIT",
    "REASON_LIQUIDATION",
    "REASON_STOP_LOSS",
    "SymbolMismatchError",
]
