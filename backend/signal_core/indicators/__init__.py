"""Technical indicators (pure math, no I/O)."""

from signal_core.indicators.indicators import (
    ema,
    last_mean,
    true_range,
    atr,
    log_returns,
    ewma_volatility,
    realized_volatility,
    rsi,
    macd_histogram,
    MacdResult,
)

__all__ = [
    "ema",
    "last_mean",
    "true_range",
    "atr",
    "log_returns",
    "ewma_volatility",
    "realized_volatility",
    "rsi",
    "macd_histogram",
    "MacdResult",
]
