"""Exchange clients."""

from signal_service.clients.binance_rest import BinanceRestClient, RateLimiter
from signal_service.clients.coinbase_rest import CoinbaseRestClient

__all__ = [
    "BinanceRestClient",
    "CoinbaseRestClient",
    "RateLimiter",
]
