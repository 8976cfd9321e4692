"""Binance REST API client for order-book, candle and futures data."""

import asyncio
import logging
import math
from typing import Any

import httpx

from signal_core.models import CandleBar, FuturesMetrics, OrderBook

logger = logging.getLogger(__name__)

DEPTH_LIMIT_FALLBACKS = (1000, 500, 100)


def _finite_field(body: Any, *keys: str) -> float | None:
    """Read the first present key of a JSON object as a finite float."""
    if not isinstance(body, dict):
        raise ValueError(f"expected a JSON object, got {type(body).__name__}")
    for key in keys:
        raw = body.get(key)
        if raw is None:
            continue
        value = float(raw)
        if not math.isfinite(value):
            raise ValueError(f"non-finite {key}: {raw!r}")
        return value
    return None


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            now = asyncio.get_running_loop().time()
            wait_time = self.last_call + self.interval - now
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = asyncio.get_running_loop().time()


class BinanceRestClient:
    """Binance spot + USD-M futures REST client (public endpoints only)."""

    SPOT_URL = "https://api.binance.com"
    FUTURES_URL = "https://fapi.binance.com"

    def __init__(
        self,
        api_key: str = "",
        spot_url: str | None = None,
        futures_url: str | None = None,
        timeout: float = 20.0,
        futures_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.spot_url = spot_url or self.SPOT_URL
        self.futures_url = futures_url or self.FUTURES_URL
        self.timeout = timeout
        self.futures_timeout = futures_timeout
        self.rate_limiter = RateLimiter()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {}
            if self.api_key:
                headers["X-MBX-APIKEY"] = self.api_key
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(
            method, url, params=params, timeout=timeout or self.timeout
        )
        response.raise_for_status()
        return response.json()

    async def get_depth(self, symbol: str, limit: int = 5000) -> OrderBook:
        """
        Fetch the spot order book.

        Binance rejects very deep requests for some pairs, so progressively
        smaller limits are tried before giving up.

        Raises:
            httpx.HTTPError: when every limit fails
        """
        last_error: httpx.HTTPError | None = None
        for attempt in (limit, *[l for l in DEPTH_LIMIT_FALLBACKS if l < limit]):
            try:
                data = await self._request(
                    "GET", f"{self.spot_url}/api/v3/depth",
                    {"symbol": symbol, "limit": attempt},
                )
            except httpx.HTTPError as e:
                logger.debug("Binance depth %s limit=%d failed: %s", symbol, attempt, e)
                last_error = e
                continue
            return OrderBook(bids=data.get("bids") or [], asks=data.get("asks") or [])

        logger.error("Binance depth fetch failed for %s: %s", symbol, last_error)
        raise last_error

    async def get_klines(self, symbol: str, interval: str = "4h", limit: int = 300) -> list[CandleBar]:
        """
        Fetch spot candles, oldest first.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval: Candle interval (e.g., "4h", "5m")
            limit: Number of candles (max 1000)
        """
        data = await self._request(
            "GET", f"{self.spot_url}/api/v3/klines",
            {"symbol": symbol, "interval": interval, "limit": min(limit, 1000)},
        )
        return [
            CandleBar(
                open=float(item[1]),
                high=float(item[2]),
                low=float(item[3]),
                close=float(item[4]),
                volume=float(item[5]),
            )
            for item in data
        ]

    async def get_futures_metrics(self, symbol: str, price: float) -> FuturesMetrics:
        """
        Fetch open interest, funding rate and taker long/short ratio.

        Each metric is fetched independently; a failed metric is logged and
        left as None instead of failing the whole call.
        """
        metrics = FuturesMetrics()
        url = self.futures_url
        timeout = self.futures_timeout

        try:
            body = await self._request(
                "GET", f"{url}/fapi/v1/openInterest", {"symbol": symbol}, timeout
            )
            metrics.open_interest_usd = (_finite_field(body, "openInterest") or 0.0) * (price or 0)
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning("Open interest unavailable for %s: %s", symbol, e)

        try:
            body = await self._request(
                "GET", f"{url}/fapi/v1/premiumIndex", {"symbol": symbol}, timeout
            )
            metrics.funding_rate = _finite_field(body, "lastFundingRate") or 0.0
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning("Funding rate unavailable for %s: %s", symbol, e)

        try:
            body = await self._request(
                "GET", f"{url}/futures/data/takerlongshortRatio",
                {"symbol": symbol, "period": "5m", "limit": 1},
                timeout,
            )
            row = body[0] if isinstance(body, list) else body
            metrics.long_short_ratio = _finite_field(row, "longShortRatio", "buySellRatio")
        except (httpx.HTTPError, ValueError, TypeError, IndexError) as e:
            logger.warning("Taker long/short ratio unavailable for %s: %s", symbol, e)

        return metrics
