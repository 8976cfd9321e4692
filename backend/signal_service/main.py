"""Main application entry point."""

import logging
import time
from contextlib import asynccontextmanager

from signal_service.config import get_settings

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signal_core import SignalPipeline
from signal_service.api import router
from signal_service.clients import BinanceRestClient, CoinbaseRestClient
from signal_service.services import MarketDataService, SignalService

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def build_signal_service() -> tuple[SignalService, list]:
    """Wire clients, market data and pipeline from settings.

    Returns:
        (service, clients to close on shutdown)
    """
    settings = get_settings()
    engine_config = settings.engine_config()

    binance = BinanceRestClient(
        api_key=settings.binance_api_key,
        spot_url=settings.binance_spot_url,
        futures_url=settings.binance_futures_url,
        timeout=settings.request_timeout,
        futures_timeout=settings.futures_timeout,
    )
    coinbase = CoinbaseRestClient(base_url=settings.coinbase_url, timeout=settings.request_timeout)
    market_data = MarketDataService(settings, engine_config, binance, coinbase)
    service = SignalService(
        market_data,
        SignalPipeline(engine_config),
        timeout=settings.evaluation_timeout,
    )
    return service, [binance, coinbase]


def create_app(signal_service: SignalService | None = None) -> FastAPI:
    """Create the FastAPI app; pass *signal_service* to skip client wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting liquidity signal engine v%s...", VERSION)
        clients = []
        if signal_service is None:
            service, clients = build_signal_service()
        else:
            service = signal_service

        # Expose service to API routes via app.state
        app.state.signal_service = service
        app.state.started_at = time.monotonic()
        logger.info("Serving symbols: %s", ", ".join(get_settings().symbols))

        yield

        logger.info("Shutting down...")
        app.state.signal_service = None
        for client in clients:
            await client.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Liquidity Signal Engine",
        description="BUY/SELL/HOLD signals from order-book liquidity, volatility and flow",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix="/api")
    return app


app = create_app()
