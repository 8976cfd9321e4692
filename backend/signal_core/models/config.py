"""Signal engine configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class TimeframeConfig(BaseModel):
    """Secondary (reporting-only) volatility timeframe."""

    interval: str
    candle_limit: int = 300
    ewma_decay: float = 0.94
    ewma_window: int = 300  # tail of returns fed to the EWMA
    realized_window: int = 50  # RMS fallback window


DEFAULT_SECONDARY_TIMEFRAMES: list[TimeframeConfig] = [
    TimeframeConfig(interval="1h", candle_limit=300, ewma_decay=0.94, ewma_window=300, realized_window=100),
    TimeframeConfig(interval="15m", candle_limit=400, ewma_decay=0.96, ewma_window=400, realized_window=50),
    TimeframeConfig(interval="5m", candle_limit=500, ewma_decay=0.97, ewma_window=500, realized_window=50),
]


class EngineConfig(BaseModel):
    """Every tunable of the signal pipeline.

    Defaults are the tuned production values.
    """

    # Volatility
    primary_timeframe: str = "4h"
    atr_period: int = Field(14, ge=1)
    secondary_timeframes: list[TimeframeConfig] = Field(
        default_factory=lambda: [tf.model_copy() for tf in DEFAULT_SECONDARY_TIMEFRAMES]
    )

    # Clustering / POI
    cluster_multiplier: float = 0.5
    coverage: float = Field(0.9, gt=0, le=1)
    min_strength: float = 0.03  # fraction of the strongest cluster
    distance_multiplier: float = 6.0  # ATR multiples of reach

    # Liquidation ladder
    liq_threshold_frac: float = 0.10
    liq_max_lookup_frac: float = 0.50
    proximity_unavailable_pct: float = 999.0

    # Momentum
    momentum_min_bars: int = 50
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    talr_min_bars: int = 10

    # Flow
    cvd_lookback: int = 200
    cvd_scale: float = 10.0

    # Regime heuristic
    regime_concentration_high: float = 0.08
    regime_concentration_vol: float = 0.06
    regime_vol_ratio: float = 0.01
    regime_concentration_momentum: float = 0.04
    regime_momentum_ceiling: int = 45

    # Conviction weights
    dominance_weight: float = 0.35
    talr_weight: float = 0.5
    proximity_weight: float = 0.5
    proximity_base: float = 40.0
    mass_weight: float = 0.4
    mass_scale: float = 20.0
    futures_strength_max: int = 30
    futures_strength_divisor: float = 20.0
    funding_scale: float = 1000.0
    long_short_scale: float = 10.0
    momentum_bias_max: float = 7.5
    cvd_bias_max: float = 8.0
    lci_bias_max: float = 5.0
    mela_bias_max: float = 5.0
    proximity_influence_max: float = 10.0
    cac_weight: float = 0.2

    # Regime-aware suppression
    suppress_in_stress: bool = True
    regime_cvd_threshold: int = 40
    regime_cac_threshold: float = -1.0
    suppression_buy_score_cap: int = 55
    suppression_min_penalty: int = 15
    suppression_cvd_divisor: float = 5.0
    suppression_partial_penalty: int = 8
    suppression_partial_credit: int = 4

    # Decision rule
    signal_margin: int = 8
    signal_min_score: int = 60

    # Anti-oscillation
    anti_oscillation: bool = True
    dead_band_threshold: int = 12
    momentum_confirm_threshold: int = 55
    trend_persist_ticks: int = Field(2, ge=1)
    smoothing_alpha: float = Field(0.35, ge=0, le=1)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "EngineConfig":
        if self.liq_max_lookup_frac < self.liq_threshold_frac:
            raise ValueError(
                "liq_max_lookup_frac must be >= liq_threshold_frac "
                f"(got {self.liq_max_lookup_frac} < {self.liq_threshold_frac})"
            )
        return self

    def timeframe(self, interval: str) -> TimeframeConfig | None:
        """Look up a secondary timeframe by interval name."""
        for tf in self.secondary_timeframes:
            if tf.interval == interval:
                return tf
        return None
