"""Business services."""

from signal_service.services.market_data import MarketDataService, UnknownSymbolError
from signal_service.services.signal_service import SignalService

__all__ = [
    "MarketDataService",
    "SignalService",
    "UnknownSymbolError",
]
