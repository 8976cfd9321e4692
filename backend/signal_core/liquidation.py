"""Liquidation zone locator.

Walks the combined book outward from the current price, accumulating
notional, and reports the nearest level where the running total crosses a
share of the side's liquidity while staying within ATR-scaled reach.
"""

from __future__ import annotations

import logging

from signal_core.models import EngineConfig, LiquidationZone, PriceLevel

logger = logging.getLogger(__name__)

SIDE_BID = "bid"
SIDE_ASK = "ask"


def build_ladder(levels: list[PriceLevel]) -> list[PriceLevel]:
    """Price-ascending copy of a side's levels."""
    return sorted(levels, key=lambda lvl: lvl.price)


def _walk(
    ordered: list[PriceLevel],
    price: float,
    threshold: float,
    max_reach: float,
) -> LiquidationZone | None:
    cumulative = 0.0
    for level in ordered:
        cumulative += level.notional_usd
        dist = abs(price - level.price)
        if dist <= max_reach and cumulative >= threshold:
            return LiquidationZone(
                price=level.price,
                accumulated_notional=cumulative,
                distance_from_price=dist,
                threshold_crossed=threshold,
            )
    return None


def find_liquidation_zone(
    ladder: list[PriceLevel],
    price: float,
    side: str,
    side_total: float,
    atr_value: float,
    distance_multiplier: float = 6.0,
    threshold_frac: float = 0.10,
    max_lookup_frac: float = 0.50,
) -> LiquidationZone | None:
    """Locate the nearest meaningful liquidation level on one side.

    Bid side walks levels below price (nearest first); ask side walks levels
    above price. The low threshold (``threshold_frac * side_total``) is tried
    first, then the high threshold (``max_lookup_frac * side_total``).

    Returns:
        The first qualifying level, or None when neither threshold is
        crossed within ``atr * distance_multiplier``
    """
    if side == SIDE_BID:
        ordered = sorted(
            (lvl for lvl in ladder if lvl.price < price),
            key=lambda lvl: lvl.price,
            reverse=True,
        )
    elif side == SIDE_ASK:
        ordered = sorted(
            (lvl for lvl in ladder if lvl.price > price),
            key=lambda lvl: lvl.price,
        )
    else:
        raise ValueError(f"side must be '{SIDE_BID}' or '{SIDE_ASK}', got {side!r}")

    max_reach = atr_value * distance_multiplier
    for frac in (threshold_frac, max_lookup_frac):
        zone = _walk(ordered, price, side_total * frac, max_reach)
        if zone is not None:
            return zone

    logger.debug("No %s liquidation zone within %.2f of %.2f", side, max_reach, price)
    return None


class LiquidationLocator:
    """Support/resistance liquidation zones for the combined book."""

    def __init__(self, config: EngineConfig):
        self.config = config

    def locate(
        self,
        bids: list[PriceLevel],
        asks: list[PriceLevel],
        price: float,
        atr_value: float,
        bid_total: float,
        ask_total: float,
    ) -> tuple[LiquidationZone | None, LiquidationZone | None]:
        """Return (support, resistance); either may be None."""
        cfg = self.config
        support = find_liquidation_zone(
            build_ladder(bids), price, SIDE_BID, bid_total, atr_value,
            distance_multiplier=cfg.distance_multiplier,
            threshold_frac=cfg.liq_threshold_frac,
            max_lookup_frac=cfg.liq_max_lookup_frac,
        )
        resistance = find_liquidation_zone(
            build_ladder(asks), price, SIDE_ASK, ask_total, atr_value,
            distance_multiplier=cfg.distance_multiplier,
            threshold_frac=cfg.liq_threshold_frac,
            max_lookup_frac=cfg.liq_max_lookup_frac,
        )
        return support, resistance

    def distance_pct(self, zone: LiquidationZone | None, atr_value: float) -> float:
        """Distance of *zone* as a percentage of the ATR reach window."""
        window = atr_value * self.config.distance_multiplier
        if zone is None or window <= 0:
            return self.config.proximity_unavailable_pct
        return zone.distance_from_price / window * 100
