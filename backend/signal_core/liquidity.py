"""Order-book liquidity aggregation, clustering and POI extraction.

Raw (price, size) levels are merged into USD-notional price levels, grouped
into fixed-width buckets sized from ATR, filtered to the clusters that
matter near the current price, and reduced to the Points Of Interest: the
strongest clusters that together cover a target share of total notional.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from signal_core.errors import EmptyLiquidityError
from signal_core.models import (
    LiquidationZone,
    LiquidityCluster,
    PointsOfInterest,
    PriceLevel,
    RawLevel,
)
from signal_core.utils import round_half_up

logger = logging.getLogger(__name__)


def aggregate_levels(levels: Iterable[RawLevel]) -> list[PriceLevel]:
    """Merge raw (price, size) entries into USD-notional price levels.

    Entries with a non-numeric, non-finite or non-positive price or size
    are dropped. Duplicate prices are merged by summing notional. Output
    order follows first appearance of each price.
    """
    merged: dict[float, float] = {}
    for level in levels:
        try:
            price = float(level[0])
            size = float(level[1])
        except (TypeError, ValueError, IndexError):
            continue
        if not (math.isfinite(price) and math.isfinite(size)) or price <= 0 or size <= 0:
            continue
        merged[price] = merged.get(price, 0.0) + price * size
    return [PriceLevel(price=p, notional_usd=usd) for p, usd in merged.items()]


def cluster_size(atr_value: float, multiplier: float = 0.5) -> float:
    """Bucket width: ``max(1, atr * multiplier)``."""
    return max(1.0, atr_value * multiplier)


def cluster_levels(levels: Iterable[PriceLevel], size: float) -> list[LiquidityCluster]:
    """Group levels into ``[k*size, (k+1)*size)`` buckets.

    Returns:
        Clusters sorted by descending notional
    """
    bins: dict[int, list[float]] = {}
    for level in levels:
        idx = math.floor(level.price / size)
        acc = bins.setdefault(idx, [0.0, 0])
        acc[0] += level.notional_usd
        acc[1] += 1

    clusters = [
        LiquidityCluster(
            low=idx * size,
            high=(idx + 1) * size,
            notional_usd=usd,
            level_count=count,
        )
        for idx, (usd, count) in bins.items()
    ]
    clusters.sort(key=lambda c: c.notional_usd, reverse=True)
    return clusters


def apply_moderate_filter(
    clusters: list[LiquidityCluster],
    atr_value: float,
    price: float,
    min_strength: float = 0.03,
    distance_multiplier: float = 6.0,
) -> list[LiquidityCluster]:
    """Drop weak or distant clusters.

    A cluster survives when its notional is at least ``min_strength`` of the
    strongest cluster and its midpoint lies within ``atr * distance_multiplier``
    of the current price. Input order is preserved.
    """
    if not clusters:
        return []
    strongest = max(c.notional_usd for c in clusters)
    min_usd = strongest * min_strength
    max_dist = atr_value * distance_multiplier
    return [
        c for c in clusters
        if c.notional_usd >= min_usd and abs(c.mid - price) <= max_dist
    ]


def extract_poi(clusters: list[LiquidityCluster], coverage: float = 0.9) -> PointsOfInterest:
    """Greedily admit clusters by descending notional until coverage is met.

    The admitted clusters' notional is >= ``coverage * total``, or every
    cluster is admitted when that target cannot be reached.
    """
    ordered = sorted(clusters, key=lambda c: c.notional_usd, reverse=True)
    total = sum(c.notional_usd for c in ordered)
    target = total * coverage

    poi = PointsOfInterest(total_notional=total, target_notional=target)
    cumulative = 0.0
    for cluster in ordered:
        poi.clusters.append(cluster)
        cumulative += cluster.notional_usd
        if cumulative >= target:
            break
    return poi


def build_side_clusters(
    levels: list[PriceLevel],
    size: float,
    atr_value: float,
    price: float,
    side: str,
    min_strength: float = 0.03,
    distance_multiplier: float = 6.0,
    required: bool = True,
) -> list[LiquidityCluster]:
    """Cluster and filter one book side.

    Raises:
        EmptyLiquidityError: when ``required`` and no cluster survives
    """
    clusters = cluster_levels(levels, size)
    if not clusters:
        if required:
            raise EmptyLiquidityError(f"No {side} cluster data available")
        return []

    filtered = apply_moderate_filter(
        clusters, atr_value, price,
        min_strength=min_strength,
        distance_multiplier=distance_multiplier,
    )
    if not filtered and required:
        raise EmptyLiquidityError(
            f"No {side} clusters within {distance_multiplier} ATR of {price}"
        )
    logger.debug(
        "%s clusters: %d raw, %d after filter (size=%.2f)",
        side, len(clusters), len(filtered), size,
    )
    return filtered


def dominance(bid_poi: PointsOfInterest, ask_poi: PointsOfInterest) -> tuple[float, float]:
    """Buy/sell share (percent) of POI notional; 50/50 on an empty book."""
    total_bid = bid_poi.total_notional
    total_ask = ask_poi.total_notional
    total = total_bid + total_ask
    if total == 0:
        return 50.0, 50.0
    return total_bid / total * 100, total_ask / total * 100


def top_cluster_as_pain(
    clusters: list[LiquidityCluster],
    price: float,
) -> LiquidationZone | None:
    """Use the single highest-notional cluster as a max-pain zone."""
    if not clusters:
        return None
    top = max(clusters, key=lambda c: c.notional_usd)
    pain_price = float(round_half_up(top.mid))
    return LiquidationZone(
        price=pain_price,
        accumulated_notional=top.notional_usd,
        distance_from_price=abs(price - pain_price),
        source="max_pain",
    )
