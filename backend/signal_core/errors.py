"""Errors that abort a pipeline tick.

Only conditions that make a signal meaningless raise; missing optional
inputs are reported through ``available`` flags instead.
"""


class SignalEngineError(RuntimeError):
    """Base class for fatal-for-tick conditions."""


class PriceUnavailableError(SignalEngineError):
    """Current price could not be determined from the order books."""


class EmptyLiquidityError(SignalEngineError):
    """No liquidity clusters remain for one side of the book."""


class InsufficientCandlesError(SignalEngineError):
    """The primary timeframe has too few candles to compute ATR."""
