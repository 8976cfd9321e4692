"""Data models."""

from signal_core.models.market import (
    CandleBar,
    FuturesMetrics,
    MarketSnapshot,
    OrderBook,
    PriceLevel,
    RawLevel,
)
from signal_core.models.readings import (
    NEUTRAL_SCORE,
    BiasBreakdown,
    ConvictionResult,
    EngineState,
    FlowReading,
    LiquidationZone,
    LiquidityCluster,
    MomentumReading,
    PointsOfInterest,
    Regime,
    Signal,
    TrendReading,
    VolatilityReading,
)
from signal_core.models.config import (
    DEFAULT_SECONDARY_TIMEFRAMES,
    EngineConfig,
    TimeframeConfig,
)
from signal_core.models.snapshot import (
    BiasSnapshot,
    MomentumSnapshot,
    SignalSnapshot,
    ZoneSnapshot,
)

__all__ = [
    # Inputs (dataclass)
    "CandleBar",
    "FuturesMetrics",
    "MarketSnapshot",
    "OrderBook",
    "PriceLevel",
    "RawLevel",
    # Readings
    "NEUTRAL_SCORE",
    "BiasBreakdown",
    "ConvictionResult",
    "EngineState",
    "FlowReading",
    "LiquidationZone",
    "LiquidityCluster",
    "MomentumReading",
    "PointsOfInterest",
    "Regime",
    "Signal",
    "TrendReading",
    "VolatilityReading",
    # Config
    "DEFAULT_SECONDARY_TIMEFRAMES",
    "EngineConfig",
    "TimeframeConfig",
    # Output (Pydantic)
    "BiasSnapshot",
    "MomentumSnapshot",
    "SignalSnapshot",
    "ZoneSnapshot",
]
