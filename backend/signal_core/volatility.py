"""Multi-timeframe ATR and return volatility.

The primary timeframe's ATR drives clustering, reach and regime decisions.
Secondary timeframes are computed best-effort for reporting only and never
influence the signal.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from signal_core.indicators import atr, ewma_volatility, log_returns, realized_volatility
from signal_core.models import CandleBar, EngineConfig, TimeframeConfig, VolatilityReading

logger = logging.getLogger(__name__)


def compute_atr(candles: Sequence[CandleBar], period: int = 14) -> float | None:
    """ATR of a candle series (simple mean of the last *period* true ranges)."""
    if len(candles) < 2:
        return None
    return atr(
        [c.high for c in candles],
        [c.low for c in candles],
        [c.close for c in candles],
        period,
    )


def compute_volatility(candles: Sequence[CandleBar], tf: TimeframeConfig) -> float | None:
    """EWMA volatility of log returns, falling back to realized RMS volatility."""
    returns = log_returns([c.close for c in candles])
    vol = ewma_volatility(returns[-tf.ewma_window:], tf.ewma_decay)
    if not vol:
        vol = realized_volatility(returns, min(len(returns), tf.realized_window))
    return vol


class VolatilityEngine:
    """Compute volatility readings for the primary and secondary timeframes."""

    def __init__(self, config: EngineConfig):
        self.config = config

    def primary(self, candles: Sequence[CandleBar]) -> VolatilityReading:
        """ATR reading for the authoritative timeframe."""
        value = compute_atr(candles, self.config.atr_period)
        return VolatilityReading(
            timeframe=self.config.primary_timeframe,
            atr=value,
            available=value is not None,
        )

    def secondary(self, interval: str, candles: Sequence[CandleBar] | None) -> VolatilityReading:
        """ATR + EWMA volatility for a reporting timeframe.

        Missing or short series produce ``available=False``.
        """
        tf = self.config.timeframe(interval) or TimeframeConfig(interval=interval)
        if not candles or len(candles) < 2:
            logger.debug("Volatility %s: no candles, reporting unavailable", interval)
            return VolatilityReading(timeframe=interval)

        value = compute_atr(candles, self.config.atr_period)
        vol = compute_volatility(candles, tf)
        return VolatilityReading(
            timeframe=interval,
            atr=value,
            volatility=vol,
            available=value is not None,
        )

    def all_secondary(
        self, candles: Mapping[str, Sequence[CandleBar]]
    ) -> dict[str, VolatilityReading]:
        """Readings for every configured secondary timeframe."""
        return {
            tf.interval: self.secondary(tf.interval, candles.get(tf.interval))
            for tf in self.config.secondary_timeframes
        }
