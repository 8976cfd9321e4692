"""Shared fixtures for service-level tests."""

import pytest

from signal_core import SignalPipeline
from signal_core.models import CandleBar, MarketSnapshot, OrderBook


def build_candles(n: int = 250) -> list[CandleBar]:
    candles = []
    prev = 99.5
    for i in range(n):
        close = 100.5 if i % 2 else 99.5
        candles.append(CandleBar(open=prev, high=max(prev, close) + 1, low=min(prev, close) - 1, close=close, volume=100.0))
        prev = close
    return candles


def build_book(size: float = 10.0) -> OrderBook:
    return OrderBook(
        bids=[[str(99.5 - 0.5 * i), str(size)] for i in range(20)],
        asks=[[str(100.5 + 0.5 * i), str(size)] for i in range(20)],
    )


@pytest.fixture
def market_snapshot() -> MarketSnapshot:
    """A two-exchange snapshot that evaluates cleanly."""
    return MarketSnapshot(
        symbol="BTC",
        books={"binance": build_book(10.0), "coinbase": build_book(5.0)},
        candles={"4h": build_candles()},
    )


@pytest.fixture
def signal_snapshot(market_snapshot):
    """A real SignalSnapshot produced by the pipeline."""
    return SignalPipeline().evaluate(market_snapshot)
