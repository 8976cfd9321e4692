"""Coinbase Exchange REST client for order-book data."""

import logging
from typing import Any

import httpx

from signal_core.models import OrderBook
from signal_service.clients.binance_rest import RateLimiter

logger = logging.getLogger(__name__)


class CoinbaseRestClient:
    """Coinbase Exchange public REST client."""

    BASE_URL = "https://api.exchange.coinbase.com"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        # Public endpoints allow ~10 requests per second
        self.rate_limiter = RateLimiter(calls_per_minute=600)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"User-Agent": "liquidity-signal-engine"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def get_book(self, product_id: str) -> OrderBook:
        """
        Fetch the full order book for a product.

        Level 3 (individual orders) is tried first; level 2 (aggregated) is
        used when level 3 is refused.

        Raises:
            httpx.HTTPError: when both levels fail
        """
        try:
            data = await self._request("GET", f"/products/{product_id}/book", {"level": 3})
        except httpx.HTTPError as e:
            logger.debug("Coinbase level 3 book unavailable for %s (%s), trying level 2", product_id, e)
            data = await self._request("GET", f"/products/{product_id}/book", {"level": 2})

        return OrderBook(bids=data.get("bids") or [], asks=data.get("asks") or [])
