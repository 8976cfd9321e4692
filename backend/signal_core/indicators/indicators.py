"""Technical indicators for signal generation.

Pure NumPy/Python implementations operating on float sequences. ``ema``
returns a list aligned with its input, NaN for warm-up positions;
``true_range`` starts at the second bar. Point functions (``atr``, ``rsi``,
``macd_histogram``, volatility helpers) return the latest value or ``None``
when the input is too short.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np


# =============================================================================
# Moving averages
# =============================================================================

def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average.

    The first defined value (index ``period - 1``) is the SMA of the first
    ``period`` values; later values use ``alpha = 2 / (period + 1)``.

    Args:
        values: Sequence of values
        period: EMA period

    Returns:
        List of EMA values (same length as input, NaN for initial values)
    """
    if len(values) < period:
        return [math.nan] * len(values)

    arr = np.asarray(values, dtype=np.float64)
    multiplier = 2.0 / (period + 1)

    result = np.empty_like(arr)
    result[:period - 1] = np.nan
    result[period - 1] = np.mean(arr[:period])

    for i in range(period, len(arr)):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)

    return result.tolist()


def last_mean(values: Sequence[float], period: int) -> float | None:
    """Mean of the trailing *period* values, or None if fewer exist."""
    if period <= 0 or len(values) < period:
        return None
    return float(np.mean(np.asarray(values[-period:], dtype=np.float64)))


# =============================================================================
# Volatility
# =============================================================================

def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """
    Calculate True Range for every bar that has a previous close.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))

    The first bar has no previous close and contributes no value, so the
    result has ``len(highs) - 1`` entries.
    """
    result = []
    for i in range(1, len(highs)):
        hl = highs[i] - lows[i]
        hc = abs(highs[i] - closes[i - 1])
        lc = abs(lows[i] - closes[i - 1])
        result.append(max(hl, hc, lc))
    return result


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float | None:
    """
    Calculate the latest Average True Range.

    Simple mean of the last ``period`` true ranges (not Wilder's RMA). With
    fewer than ``period`` true ranges the mean of those available is used.

    Returns:
        ATR value, or None when no true range can be computed
    """
    tr = true_range(highs, lows, closes)
    if not tr:
        return None
    tail = np.asarray(tr[-period:], dtype=np.float64)
    return float(tail.mean())


def log_returns(closes: Sequence[float]) -> list[float]:
    """Log returns of consecutive closes, skipping non-positive prices."""
    result = []
    for prev, cur in zip(closes, closes[1:]):
        if not (math.isfinite(prev) and math.isfinite(cur)) or prev <= 0 or cur <= 0:
            continue
        result.append(math.log(cur / prev))
    return result


def ewma_volatility(returns: Sequence[float], decay: float = 0.94) -> float | None:
    """
    RiskMetrics-style EWMA volatility of a return series.

    Variance is seeded with the first squared return and updated as
    ``s2 = decay * s2 + (1 - decay) * r^2``.
    """
    if len(returns) == 0:
        return None
    s2 = returns[0] * returns[0]
    for r in returns[1:]:
        s2 = decay * s2 + (1 - decay) * r * r
    return math.sqrt(s2)


def realized_volatility(returns: Sequence[float], window: int) -> float | None:
    """Root-mean-square of the trailing *window* returns."""
    if len(returns) < 2 or window <= 0:
        return None
    tail = np.asarray(returns[-window:], dtype=np.float64)
    if tail.size == 0:
        return None
    return float(np.sqrt(np.mean(tail * tail)))


# =============================================================================
# Momentum
# =============================================================================

def rsi(closes: Sequence[float], period: int = 14) -> float | None:
    """
    Calculate the latest Relative Strength Index.

    Average gain and loss are the plain means of the trailing ``period``
    close-to-close moves (Wilder's seed average).

    Returns:
        RSI in [0, 100]; 50 when there is no movement at all, 100 when
        there are gains but no losses. None when fewer than ``period + 1``
        closes are supplied.
    """
    if len(closes) < period + 1:
        return None

    diffs = np.diff(np.asarray(closes, dtype=np.float64))[-period:]
    avg_gain = float(np.clip(diffs, 0, None).sum()) / period
    avg_loss = float(np.clip(-diffs, 0, None).sum()) / period

    if avg_gain == 0 and avg_loss == 0:
        return 50.0
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    value = 100 - 100 / (1 + rs)
    return max(0.0, min(100.0, value))


@dataclass(slots=True, frozen=True)
class MacdResult:
    """Latest MACD values plus the recent average histogram magnitude."""

    macd: float
    signal: float
    hist: float
    avg_abs_hist: float


def macd_histogram(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal_period: int = 9,
) -> MacdResult | None:
    """
    Calculate MACD(fast, slow, signal) for the latest bar.

    The signal line is the EMA of the MACD line with undefined warm-up
    positions treated as zero. ``avg_abs_hist`` is the mean absolute
    histogram over the trailing ``slow`` bars, used for normalization.

    Returns:
        MacdResult, or None when fewer than ``slow + signal_period`` closes
    """
    if len(closes) < slow + signal_period:
        return None

    ema_fast = np.asarray(ema(closes, fast))
    ema_slow = np.asarray(ema(closes, slow))
    macd_line = ema_fast - ema_slow
    macd_clean = np.nan_to_num(macd_line, nan=0.0)
    signal_line = np.nan_to_num(np.asarray(ema(macd_clean.tolist(), signal_period)), nan=0.0)

    hist_series = macd_clean - signal_line
    recent = np.abs(hist_series[-slow:])
    avg_abs = float(recent.mean()) if recent.size else 0.0

    macd_last = float(macd_clean[-1])
    signal_last = float(signal_line[-1])
    return MacdResult(
        macd=macd_last,
        signal=signal_last,
        hist=macd_last - signal_last,
        avg_abs_hist=avg_abs,
    )
