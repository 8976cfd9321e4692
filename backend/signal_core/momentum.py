"""Momentum layer: RSI, MACD histogram and moving-average structure.

The three sub-scores are blended into one 0-100 momentum score:
``0.40 * RSI + 0.35 * MACD score + 0.25 * MA score``.
"""

from __future__ import annotations

from typing import Sequence

from signal_core.indicators import last_mean, macd_histogram, rsi
from signal_core.models import CandleBar, EngineConfig, MomentumReading, TrendReading
from signal_core.utils import clamp, round_half_up

RSI_WEIGHT = 0.40
MACD_WEIGHT = 0.35
MA_WEIGHT = 0.25

MACD_SWING = 25
MACD_EPSILON = 1e-8

MA_FAST = 50
MA_SLOW = 200


def macd_score(closes: Sequence[float], config: EngineConfig) -> tuple[int, float | None]:
    """MACD histogram mapped to 50 +/- 25.

    The histogram is normalized by ``max(avg |hist|, |hist|, 1e-8)`` so the
    score saturates at 25 or 75.

    Returns:
        (score, histogram); (50, None) when history is too short
    """
    result = macd_histogram(closes, config.macd_fast, config.macd_slow, config.macd_signal)
    if result is None:
        return 50, None
    denom = max(result.avg_abs_hist, abs(result.hist), MACD_EPSILON)
    scaled = clamp(result.hist / denom, -1, 1)
    return int(clamp(round_half_up(50 + scaled * MACD_SWING))), result.hist


def ma_score(closes: Sequence[float], price: float) -> tuple[int, float | None, float | None]:
    """Score price structure against MA50 / MA200.

    Returns:
        (score, ma50, ma200)
    """
    ma50 = last_mean(closes, MA_FAST)
    ma200 = last_mean(closes, MA_SLOW)

    if ma50 is not None and ma200 is not None:
        score = 70 if ma50 > ma200 else 30
        if price > ma50 and price > ma200:
            score = min(95, score + 10)
        if price < ma50 and price < ma200:
            score = max(5, score - 10)
    elif ma50 is not None:
        score = 60 if price > ma50 else 40
    else:
        score = 50
    return score, ma50, ma200


def compute_momentum(
    candles: Sequence[CandleBar],
    price: float,
    config: EngineConfig | None = None,
) -> MomentumReading:
    """Blend RSI, MACD and MA structure into a momentum reading.

    Fewer than ``momentum_min_bars`` candles yields a neutral reading with
    ``available=False``.
    """
    config = config or EngineConfig()
    if len(candles) < config.momentum_min_bars:
        return MomentumReading()

    closes = [c.close for c in candles]

    rsi_value = rsi(closes, config.rsi_period)
    rsi_score = 50.0 if rsi_value is None else rsi_value

    m_score, hist = macd_score(closes, config)
    a_score, ma50, ma200 = ma_score(closes, price)

    blended = round_half_up(rsi_score * RSI_WEIGHT + m_score * MACD_WEIGHT + a_score * MA_WEIGHT)
    return MomentumReading(
        available=True,
        rsi=rsi_value,
        rsi_score=rsi_score,
        macd_hist=hist,
        macd_score=m_score,
        ma50=ma50,
        ma200=ma200,
        ma_score=a_score,
        momentum_score=int(clamp(blended)),
    )


def compute_trend(candles: Sequence[CandleBar], min_bars: int = 10) -> TrendReading:
    """Trend agreement ratio: share of down-closes among non-flat moves.

    High TALR means sellers have been winning most bars.
    """
    if len(candles) < min_bars:
        return TrendReading()

    down = up = 0
    for prev, cur in zip(candles, candles[1:]):
        change = cur.close - prev.close
        if change < 0:
            down += 1
        elif change > 0:
            up += 1

    talr = round_half_up(down / ((up + down) or 1) * 100)
    first = candles[0].close
    slope = (candles[-1].close - first) / first * 100 if first else 0.0

    if talr > 60:
        interpretation = "downward pressure"
    elif talr < 40:
        interpretation = "upward pressure"
    else:
        interpretation = "balanced"
    return TrendReading(talr=talr, slope_pct=abs(slope), interpretation=interpretation)
