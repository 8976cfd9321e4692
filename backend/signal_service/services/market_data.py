"""Market data collection for one evaluation tick.

Fetches both order books, the primary and secondary candle series and the
futures metrics concurrently, then packs them into a ``MarketSnapshot``.

Required inputs (at least one order book, primary candles) propagate their
errors; secondary candles and futures metrics are best-effort.
"""

import asyncio
import logging

from signal_core import resolve_price
from signal_core.models import CandleBar, EngineConfig, MarketSnapshot, OrderBook
from signal_service.clients import BinanceRestClient, CoinbaseRestClient
from signal_service.config import Settings

logger = logging.getLogger(__name__)


class UnknownSymbolError(ValueError):
    """Requested asset is not configured on every exchange."""


class MarketDataService:
    """Collect a MarketSnapshot for a base asset (e.g. "BTC")."""

    def __init__(
        self,
        settings: Settings,
        engine_config: EngineConfig,
        binance: BinanceRestClient,
        coinbase: CoinbaseRestClient,
    ):
        self.settings = settings
        self.engine_config = engine_config
        self.binance = binance
        self.coinbase = coinbase

    def resolve_symbol(self, symbol: str) -> tuple[str, str]:
        """Map a base asset to (binance pair, coinbase product)."""
        key = symbol.strip().upper()
        pair = self.settings.binance_symbols.get(key)
        product = self.settings.coinbase_products.get(key)
        if pair is None or product is None:
            raise UnknownSymbolError(
                f"Unsupported symbol {symbol!r}; expected one of {', '.join(self.settings.symbols)}"
            )
        return pair, product

    async def _fetch_books(self, pair: str, product: str) -> dict[str, OrderBook]:
        results = await asyncio.gather(
            self.binance.get_depth(pair, self.settings.depth_limit),
            self.coinbase.get_book(product),
            return_exceptions=True,
        )
        books: dict[str, OrderBook] = {}
        errors: list[BaseException] = []
        for name, result in zip(("binance", "coinbase"), results):
            if isinstance(result, BaseException):
                logger.warning("%s order book unavailable: %s", name, result)
                errors.append(result)
            else:
                books[name] = result

        if not books:
            raise errors[0]
        return books

    async def _fetch_secondary(self, pair: str) -> dict[str, list[CandleBar]]:
        timeframes = self.engine_config.secondary_timeframes
        results = await asyncio.gather(
            *(self.binance.get_klines(pair, tf.interval, tf.candle_limit) for tf in timeframes),
            return_exceptions=True,
        )
        candles: dict[str, list[CandleBar]] = {}
        for tf, result in zip(timeframes, results):
            if isinstance(result, BaseException):
                logger.warning("%s %s candles unavailable: %s", pair, tf.interval, result)
                continue
            candles[tf.interval] = result
        return candles

    async def collect(self, symbol: str) -> MarketSnapshot:
        """
        Fetch everything needed for one tick.

        Raises:
            UnknownSymbolError: symbol not configured
            httpx.HTTPError: both books or the primary candles failed
            PriceUnavailableError: books carry no usable price
        """
        key = symbol.strip().upper()
        pair, product = self.resolve_symbol(key)
        primary_tf = self.engine_config.primary_timeframe

        books, primary, secondary = await asyncio.gather(
            self._fetch_books(pair, product),
            self.binance.get_klines(pair, primary_tf, self.settings.primary_candle_limit),
            self._fetch_secondary(pair),
        )

        snapshot = MarketSnapshot(
            symbol=key,
            books=books,
            candles={primary_tf: primary, **secondary},
        )
        snapshot.price = resolve_price(snapshot)
        snapshot.futures = await self.binance.get_futures_metrics(pair, snapshot.price)

        logger.debug(
            "%s: collected %d books, %d %s candles, %d secondary series",
            key, len(books), len(primary), primary_tf, len(secondary),
        )
        return snapshot
