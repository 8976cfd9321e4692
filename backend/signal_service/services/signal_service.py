"""Signal evaluation service.

Serializes evaluations per symbol so each symbol's smoothing state is only
touched by one tick at a time, while different symbols run concurrently.
"""

import asyncio
import logging

from signal_core import SignalPipeline
from signal_core.models import SignalSnapshot
from signal_service.services.market_data import MarketDataService

logger = logging.getLogger(__name__)


class SignalService:
    """Fetch market data and run the pipeline for a symbol."""

    def __init__(
        self,
        market_data: MarketDataService,
        pipeline: SignalPipeline,
        timeout: float = 60.0,
    ):
        self.market_data = market_data
        self.pipeline = pipeline
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self.evaluations = 0
        self.failures = 0

    def _lock_for(self, symbol: str) -> asyncio.Lock:
        if symbol not in self._locks:
            self._locks[symbol] = asyncio.Lock()
        return self._locks[symbol]

    async def _run(self, symbol: str) -> SignalSnapshot:
        snapshot = await self.market_data.collect(symbol)
        return self.pipeline.evaluate(snapshot)

    async def evaluate(self, symbol: str) -> SignalSnapshot:
        """
        Evaluate one tick for *symbol*.

        Raises:
            UnknownSymbolError: symbol not configured
            SignalEngineError: fatal engine condition
            httpx.HTTPError: required market data could not be fetched
            asyncio.TimeoutError: evaluation exceeded the deadline
        """
        key = symbol.strip().upper()
        self.market_data.resolve_symbol(key)

        async with self._lock_for(key):
            try:
                result = await asyncio.wait_for(self._run(key), timeout=self.timeout)
            except Exception:
                self.failures += 1
                raise
            self.evaluations += 1
            return result

    def status(self) -> dict:
        """Evaluation counters and symbols with smoothing state."""
        return {
            "evaluations": self.evaluations,
            "failures": self.failures,
            "tracked_symbols": self.pipeline.conviction.symbols,
        }
