"""Market input data models.

These are hot path models using ``@dataclass(slots=True)`` and float
arithmetic. They describe the already-parsed records the engine consumes:
order-book levels, candles and optional futures metrics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

# A raw order-book entry as delivered by an exchange: (price, size), where
# either element may still be a string.
RawLevel = Sequence[float | str]


@dataclass(slots=True)
class PriceLevel:
    """A single price with its aggregated USD notional."""

    price: float
    notional_usd: float


@dataclass(slots=True)
class CandleBar:
    """One OHLCV candle."""

    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open


@dataclass(slots=True)
class OrderBook:
    """Raw bid/ask levels for one exchange, best levels first."""

    bids: list[RawLevel] = field(default_factory=list)
    asks: list[RawLevel] = field(default_factory=list)

    @property
    def best_bid(self) -> float | None:
        return _first_price(self.bids)

    @property
    def best_ask(self) -> float | None:
        return _first_price(self.asks)


def _first_price(levels: list[RawLevel]) -> float | None:
    if not levels:
        return None
    try:
        price = float(levels[0][0])
    except (TypeError, ValueError, IndexError):
        return None
    return price if price > 0 else None


@dataclass(slots=True)
class FuturesMetrics:
    """Perpetual futures context. Any field may be missing."""

    open_interest_usd: float | None = None
    funding_rate: float | None = None
    long_short_ratio: float | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.open_interest_usd is None
            and self.funding_rate is None
            and self.long_short_ratio is None
        )


@dataclass(slots=True)
class MarketSnapshot:
    """Everything the pipeline needs to evaluate one tick for one symbol.

    ``books`` maps exchange name to its order book; the first two exchanges
    (in insertion order) are compared for multi-exchange agreement.
    ``candles`` maps timeframe (e.g. "4h") to a time-ascending series.
    ``price`` overrides the mid price derived from the first book.
    """

    symbol: str
    books: dict[str, OrderBook]
    candles: dict[str, list[CandleBar]]
    futures: FuturesMetrics | None = None
    cac_modifier: float | None = None
    price: float | None = None

    def combined_bids(self) -> list[RawLevel]:
        return [lvl for book in self.books.values() for lvl in book.bids]

    def combined_asks(self) -> list[RawLevel]:
        return [lvl for book in self.books.values() for lvl in book.asks]
