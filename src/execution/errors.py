"""Typed failures raised by the exchange. None of them leave state mutated."""


class ExchangeError(Exception):
    """Base class for exchange failures."""


class SymbolMismatchError(ExchangeError):
    """Bar tagged with a symbol other than the exchange's."""


class PriceNotSetError(ExchangeError):
    """No price has been observed yet."""


class PositionOpenError(ExchangeError):
    """Position already open."""


class NoPositionError(ExchangeError):
    """No open position."""


class InvalidFractionError(ExchangeError, ValueError):
    """Fraction must be in (0, 1] and produce a positive notional."""


class InvalidBarError(ExchangeError, ValueError):
    """Bar close must be positive."""
