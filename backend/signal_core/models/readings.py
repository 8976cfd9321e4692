"""Per-stage reading models produced by the signal pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel

NEUTRAL_SCORE = 50


class Regime(str, Enum):
    """Coarse market-condition classification."""

    NORMAL = "NORMAL"
    LIQUIDITY_STRESSED = "LIQUIDITY_STRESSED"


class Signal(str, Enum):
    """Final trading call."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    @property
    def is_directional(self) -> bool:
        return self is not Signal.HOLD


@dataclass(slots=True, frozen=True)
class LiquidityCluster:
    """A fixed-width price bucket of aggregated notional."""

    low: float
    high: float
    notional_usd: float
    level_count: int

    @property
    def mid(self) -> float:
        return (self.low + self.high) / 2


@dataclass(slots=True)
class PointsOfInterest:
    """Clusters admitted (by descending notional) until coverage is reached."""

    total_notional: float
    target_notional: float
    clusters: list[LiquidityCluster] = field(default_factory=list)

    @property
    def covered_notional(self) -> float:
        return sum(c.notional_usd for c in self.clusters)


@dataclass(slots=True)
class VolatilityReading:
    """ATR and return volatility for one timeframe."""

    timeframe: str
    atr: float | None = None
    volatility: float | None = None
    available: bool = False


@dataclass(slots=True)
class MomentumReading:
    """RSI / MACD / moving-average blend.

    ``available`` is False when the candle history is too short; every
    score is then neutral.
    """

    available: bool = False
    rsi: float | None = None
    rsi_score: float = NEUTRAL_SCORE
    macd_hist: float | None = None
    macd_score: int = NEUTRAL_SCORE
    ma50: float | None = None
    ma200: float | None = None
    ma_score: int = NEUTRAL_SCORE
    momentum_score: int = NEUTRAL_SCORE


@dataclass(slots=True)
class TrendReading:
    """Trend agreement ratio (share of down-closes) and slope."""

    talr: int = NEUTRAL_SCORE
    slope_pct: float = 0.0
    interpretation: str = "insufficient data"


@dataclass(slots=True)
class FlowReading:
    """Order-flow and liquidity-structure scores (0-100, neutral 50)."""

    cvd: float = 0.0
    cvd_score: int = NEUTRAL_SCORE
    cvd_available: bool = False
    lci: float = 0.0
    lci_score: int = 0
    mela: float = 0.0
    mela_score: int = NEUTRAL_SCORE
    mela_available: bool = False


@dataclass(slots=True)
class LiquidationZone:
    """Nearest price where accumulated notional crosses a threshold.

    ``source`` is "ladder" for a cumulative-ladder hit and "max_pain" for the
    top-cluster fallback.
    """

    price: float
    accumulated_notional: float
    distance_from_price: float
    threshold_crossed: float | None = None
    source: str = "ladder"


@dataclass(slots=True)
class BiasBreakdown:
    """Individual additive terms that went into the buy score."""

    dominance: float = 0.0
    talr: float = 0.0
    proximity_buy: float = 0.0
    proximity_sell: float = 0.0
    mass: float = 0.0
    futures: float = 0.0
    futures_strength: int = 0
    momentum: float = 0.0
    cvd: float = 0.0
    lci: float = 0.0
    mela: float = 0.0
    proximity_factor: float = 0.0
    cross_asset: float = 0.0
    cac_modifier: float = 0.0
    suppression: float = 0.0


@dataclass(slots=True)
class ConvictionResult:
    """Output of the conviction engine for one tick.

    ``raw_signal`` / ``raw_conviction`` come from the plain decision rule;
    ``signal`` / ``conviction`` are what survives anti-oscillation.
    """

    signal: Signal
    conviction: int
    buy_score: int
    sell_score: int
    raw_signal: Signal
    raw_conviction: int
    regime: Regime
    bias: BiasBreakdown = field(default_factory=BiasBreakdown)
    suppressed: bool = False


class EngineState(BaseModel):
    """Smoothing memory for one symbol, carried across ticks."""

    last_signal: Signal = Signal.HOLD
    last_buy_score: int = NEUTRAL_SCORE
    last_sell_score: int = NEUTRAL_SCORE
    last_conviction: int | None = None
    pending_signal: Signal = Signal.HOLD
    trend_persist_counter: int = 0

    def observe(self, candidate: Signal) -> int:
        """Record a candidate call and return its consecutive-tick count."""
        if not candidate.is_directional:
            self.pending_signal = Signal.HOLD
            self.trend_persist_counter = 0
        elif candidate == self.pending_signal:
            self.trend_persist_counter += 1
        else:
            self.pending_signal = candidate
            self.trend_persist_counter = 1
        return self.trend_persist_counter

    def remember(self, signal: Signal, buy_score: int, sell_score: int, conviction: int) -> None:
        """Store the emitted outcome of a tick."""
        self.last_signal = signal
        self.last_buy_score = buy_score
        self.last_sell_score = sell_score
        self.last_conviction = conviction
