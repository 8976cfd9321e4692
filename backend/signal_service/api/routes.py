"""REST API routes."""

import asyncio
import logging
import time

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from signal_core import SignalEngineError
from signal_core.models import SignalSnapshot
from signal_service.config import get_settings
from signal_service.services import SignalService, UnknownSymbolError

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class HealthResponse(BaseModel):
    """Service health response."""

    status: str
    version: str
    uptime_seconds: float
    symbols: list[str]
    evaluations: int
    failures: int
    tracked_symbols: list[str]


class SignalRequest(BaseModel):
    """Signal evaluation request."""

    symbol: str


def get_signal_service(request: Request) -> SignalService:
    service = getattr(request.app.state, "signal_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Signal service not initialized")
    return service


async def _evaluate(service: SignalService, symbol: str) -> SignalSnapshot:
    try:
        return await service.evaluate(symbol)
    except UnknownSymbolError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SignalEngineError as e:
        logger.warning("Signal evaluation failed for %s: %s", symbol, e)
        raise HTTPException(status_code=422, detail=str(e))
    except asyncio.TimeoutError:
        logger.error("Signal evaluation timed out for %s", symbol)
        raise HTTPException(status_code=504, detail=f"Evaluation of {symbol} timed out")
    except httpx.HTTPError as e:
        logger.error("Market data fetch failed for %s: %s", symbol, e)
        raise HTTPException(status_code=502, detail=f"Upstream exchange error: {e}")


@router.get("/health", response_model=HealthResponse)
async def health(request: Request, service: SignalService = Depends(get_signal_service)):
    """Get service health."""
    settings = get_settings()
    started = getattr(request.app.state, "started_at", time.monotonic())
    status = service.status()

    return HealthResponse(
        status="running",
        version=request.app.version,
        uptime_seconds=round(time.monotonic() - started, 3),
        symbols=settings.symbols,
        evaluations=status["evaluations"],
        failures=status["failures"],
        tracked_symbols=status["tracked_symbols"],
    )


@router.get("/signal", response_model=SignalSnapshot)
async def get_signal(
    symbol: str = Query("BTC", min_length=1, description="Base asset, e.g. BTC"),
    service: SignalService = Depends(get_signal_service),
):
    """Evaluate one tick for a symbol."""
    return await _evaluate(service, symbol)


@router.post("/signal", response_model=SignalSnapshot)
async def post_signal(body: SignalRequest, service: SignalService = Depends(get_signal_service)):
    """Evaluate one tick for the symbol in the request body."""
    return await _evaluate(service, body.symbol)
