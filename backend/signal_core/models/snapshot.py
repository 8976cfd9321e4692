"""Structured output of one pipeline evaluation.

The snapshot carries numbers and enum labels only; turning it into prose is
the job of whatever presents it.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from signal_core.models.readings import (
    BiasBreakdown,
    LiquidationZone,
    MomentumReading,
    Regime,
    Signal,
)


class ZoneSnapshot(BaseModel):
    """Serializable view of a LiquidationZone."""

    model_config = ConfigDict(frozen=True)

    price: float
    accumulated_usd: float
    distance: float
    distance_pct: float
    source: str

    @classmethod
    def from_zone(cls, zone: LiquidationZone | None, distance_pct: float) -> "ZoneSnapshot | None":
        if zone is None:
            return None
        return cls(
            price=zone.price,
            accumulated_usd=zone.accumulated_notional,
            distance=zone.distance_from_price,
            distance_pct=distance_pct,
            source=zone.source,
        )


class MomentumSnapshot(BaseModel):
    """Serializable view of a MomentumReading."""

    available: bool
    rsi: float | None
    rsi_score: float
    macd_hist: float | None
    macd_score: int
    ma50: float | None
    ma200: float | None
    ma_score: int
    momentum_score: int

    @classmethod
    def from_reading(cls, reading: MomentumReading) -> "MomentumSnapshot":
        return cls(**asdict(reading))


class BiasSnapshot(BaseModel):
    """Serializable view of a BiasBreakdown."""

    dominance: float
    talr: float
    proximity_buy: float
    proximity_sell: float
    mass: float
    futures: float
    futures_strength: int
    momentum: float
    cvd: float
    lci: float
    mela: float
    proximity_factor: float
    cross_asset: float
    cac_modifier: float
    suppression: float

    @classmethod
    def from_breakdown(cls, bias: BiasBreakdown) -> "BiasSnapshot":
        return cls(**asdict(bias))


class SignalSnapshot(BaseModel):
    """Complete metrics object for one symbol at one tick."""

    symbol: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Core call
    signal: Signal
    conviction: int
    buy_score: int
    sell_score: int
    raw_signal: Signal
    suppressed: bool = False

    # Dominance / book
    price: float
    buy_pct: float
    sell_pct: float
    bid_total_usd: float
    ask_total_usd: float
    bid_poi_count: int
    ask_poi_count: int
    cluster_size: float

    # Volatility
    atr_4h: float
    atr_1h: float | None = None
    atr_15m: float | None = None
    atr_5m: float | None = None
    vol_1h: float | None = None
    vol_15m: float | None = None
    vol_5m: float | None = None

    # Liquidation zones
    nearest_support: ZoneSnapshot | None = None
    nearest_resistance: ZoneSnapshot | None = None
    max_pain_down: ZoneSnapshot | None = None
    max_pain_up: ZoneSnapshot | None = None

    # Trend / momentum
    talr: int
    trend_slope_pct: float
    momentum: MomentumSnapshot

    # Flow
    cvd_score: int
    cvd_available: bool
    lci_score: int
    lci_concentration_pct: float
    mela_score: int
    mela_agreement_pct: float
    mela_available: bool

    # Regime / futures
    regime: Regime
    open_interest_usd: float | None = None
    funding_rate: float | None = None
    long_short_ratio: float | None = None
    bias: BiasSnapshot

    def to_dict(self) -> dict:
        """JSON-compatible dict with stable field names."""
        return self.model_dump(mode="json")
