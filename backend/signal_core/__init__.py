"""Core signal computation engine.

This package contains pure business logic with no I/O dependencies
(no network, no storage). It turns already-parsed order books, candles and
futures metrics into a BUY/SELL/HOLD signal with a conviction score.
"""

from signal_core.conviction import ConvictionEngine, ConvictionInputs, decide
from signal_core.errors import (
    EmptyLiquidityError,
    InsufficientCandlesError,
    PriceUnavailableError,
    SignalEngineError,
)
from signal_core.pipeline import SignalPipeline, resolve_price

__all__ = [
    "ConvictionEngine",
    "ConvictionInputs",
    "decide",
    "EmptyLiquidityError",
    "InsufficientCandlesError",
    "PriceUnavailableError",
    "SignalEngineError",
    "SignalPipeline",
    "resolve_price",
]
