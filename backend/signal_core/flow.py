"""Flow metrics: CVD, LCI and MELA.

- CVD (cumulative volume delta): candle-direction-signed volume over a
  lookback, normalized by total volume.
- LCI (liquidity concentration index): share of book notional within one
  ATR of price.
- MELA (multi-exchange liquidity agreement): how many of one exchange's
  cluster midpoints have a counterpart on the other exchange.
"""

from __future__ import annotations

from typing import Sequence

from signal_core.models import (
    CandleBar,
    FlowReading,
    LiquidityCluster,
    PriceLevel,
)
from signal_core.utils import clamp, round_half_up


def compute_cvd(
    candles: Sequence[CandleBar],
    lookback: int = 200,
    scale: float = 10.0,
) -> tuple[float, int, bool]:
    """Cumulative volume delta over the last *lookback* candles.

    Up candles add their volume, down candles subtract it and flat candles
    contribute nothing. The change in running delta from the first to the
    last candle is divided by total volume, multiplied by *scale*, clipped
    to [-1, 1] and mapped onto 0-100 around 50.

    Returns:
        (running cvd, score, available)
    """
    if len(candles) < 2:
        return 0.0, 50, False

    window = candles[-lookback:]
    running = 0.0
    total_volume = 0.0
    first_running = None
    for candle in window:
        if candle.is_bullish:
            running += candle.volume
        elif candle.is_bearish:
            running -= candle.volume
        total_volume += candle.volume
        if first_running is None:
            first_running = running

    change = running - (first_running or 0.0)
    norm = change / (total_volume or 1)
    clipped = clamp(norm * scale, -1, 1)
    score = int(clamp(round_half_up(50 + clipped * 50)))
    return running, score, True


def compute_lci(
    bids: Sequence[PriceLevel],
    asks: Sequence[PriceLevel],
    price: float,
    atr_value: float,
) -> tuple[float, int]:
    """Fraction of combined notional within +/- ATR of price.

    Returns:
        (ratio, score) with score = ratio * 100 clamped to [0, 100]
    """
    levels = [*bids, *asks]
    total = sum(lvl.notional_usd for lvl in levels) or 1
    radius = atr_value or 1
    lo, hi = price - radius, price + radius
    within = sum(lvl.notional_usd for lvl in levels if lo <= lvl.price <= hi)
    ratio = within / total
    return ratio, round_half_up(clamp(ratio * 100))


def compute_mela(
    clusters_a: Sequence[LiquidityCluster] | None,
    clusters_b: Sequence[LiquidityCluster] | None,
    size: float,
) -> tuple[float, int, bool]:
    """Agreement between two exchanges' cluster midpoints for one side.

    A midpoint from exchange A matches when any midpoint from exchange B
    lies within one cluster width. Ratio = matched A / max(|A|, |B|).

    Returns:
        (ratio, score, available); unavailable when either side is empty
    """
    if not clusters_a or not clusters_b:
        return 0.0, 50, False

    radius = max(size, 1)
    mids_b = [c.mid for c in clusters_b]
    matched = sum(
        1 for a in clusters_a
        if any(abs(a.mid - b) <= radius for b in mids_b)
    )
    ratio = matched / max(1, len(clusters_a), len(clusters_b))
    return ratio, round_half_up(ratio * 100), True


def compute_flow(
    candles: Sequence[CandleBar],
    bids: Sequence[PriceLevel],
    asks: Sequence[PriceLevel],
    price: float,
    atr_value: float,
    exchange_clusters: Sequence[tuple[list[LiquidityCluster], list[LiquidityCluster]]],
    size: float,
    cvd_lookback: int = 200,
    cvd_scale: float = 10.0,
) -> FlowReading:
    """Compute all three flow metrics.

    Args:
        exchange_clusters: ``[(bid_clusters, ask_clusters)]`` per exchange;
            the first two entries are compared for MELA.
    """
    cvd, cvd_score, cvd_ok = compute_cvd(candles, cvd_lookback, cvd_scale)
    lci, lci_score = compute_lci(bids, asks, price, atr_value)

    if len(exchange_clusters) >= 2:
        (bids_a, asks_a), (bids_b, asks_b) = exchange_clusters[0], exchange_clusters[1]
        bid_ratio, bid_score, bid_ok = compute_mela(bids_a, bids_b, size)
        ask_ratio, ask_score, ask_ok = compute_mela(asks_a, asks_b, size)
        mela = max(0.0, (bid_ratio + ask_ratio) / 2)
        mela_score = round_half_up(clamp((bid_score + ask_score) / 2))
        mela_ok = bid_ok or ask_ok
    else:
        mela, mela_score, mela_ok = 0.0, 50, False

    return FlowReading(
        cvd=cvd,
        cvd_score=cvd_score,
        cvd_available=cvd_ok,
        lci=lci,
        lci_score=lci_score,
        mela=mela,
        mela_score=mela_score,
        mela_available=mela_ok,
    )
