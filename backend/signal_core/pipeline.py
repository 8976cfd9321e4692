"""Signal pipeline: raw market snapshot in, structured signal snapshot out.

Stages run strictly in order on one thread; each consumes the previous
stage's complete output. Only fatal conditions raise (see
``signal_core.errors``); missing optional inputs degrade to neutral readings.
"""

from __future__ import annotations

import logging

from signal_core.conviction import ConvictionEngine, ConvictionInputs
from signal_core.errors import InsufficientCandlesError, PriceUnavailableError
from signal_core.flow import compute_flow
from signal_core.liquidation import LiquidationLocator
from signal_core.liquidity import (
    aggregate_levels,
    build_side_clusters,
    cluster_size,
    dominance,
    extract_poi,
    top_cluster_as_pain,
)
from signal_core.models import (
    BiasSnapshot,
    EngineConfig,
    MarketSnapshot,
    MomentumSnapshot,
    SignalSnapshot,
    ZoneSnapshot,
)
from signal_core.momentum import compute_momentum, compute_trend
from signal_core.regime import classify_regime
from signal_core.volatility import VolatilityEngine

logger = logging.getLogger(__name__)


def resolve_price(snapshot: MarketSnapshot) -> float:
    """Current price: explicit override, else the first book's mid.

    Falls back to whichever best price is available when a book is one-sided.

    Raises:
        PriceUnavailableError: when no positive price can be found
    """
    if snapshot.price is not None and snapshot.price > 0:
        return snapshot.price

    for book in snapshot.books.values():
        bid, ask = book.best_bid, book.best_ask
        if bid and ask:
            return (bid + ask) / 2
        if bid or ask:
            return bid or ask

    raise PriceUnavailableError(f"Unable to determine current price for {snapshot.symbol}")


class SignalPipeline:
    """Run every stage for one symbol and assemble a SignalSnapshot.

    The pipeline owns a ConvictionEngine, and through it one smoothing state
    per symbol. Evaluate at most one tick per symbol at a time.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self.volatility = VolatilityEngine(self.config)
        self.locator = LiquidationLocator(self.config)
        self.conviction = ConvictionEngine(self.config)

    def evaluate(self, snapshot: MarketSnapshot) -> SignalSnapshot:
        """Evaluate one tick.

        Raises:
            PriceUnavailableError: no usable price
            InsufficientCandlesError: primary ATR cannot be computed
            EmptyLiquidityError: a combined book side has no clusters
        """
        cfg = self.config
        symbol = snapshot.symbol.upper()
        price = resolve_price(snapshot)

        # Volatility (primary is authoritative)
        primary_candles = snapshot.candles.get(cfg.primary_timeframe, [])
        primary = self.volatility.primary(primary_candles)
        if not primary.available or primary.atr is None:
            raise InsufficientCandlesError(
                f"{symbol}: need at least 2 {cfg.primary_timeframe} candles for ATR, "
                f"got {len(primary_candles)}"
            )
        atr_value = primary.atr
        secondary = self.volatility.all_secondary(snapshot.candles)
        size = cluster_size(atr_value, cfg.cluster_multiplier)

        # Liquidity aggregation / clustering
        bids = aggregate_levels(snapshot.combined_bids())
        asks = aggregate_levels(snapshot.combined_asks())
        bid_clusters = build_side_clusters(
            bids, size, atr_value, price, "bid",
            min_strength=cfg.min_strength, distance_multiplier=cfg.distance_multiplier,
        )
        ask_clusters = build_side_clusters(
            asks, size, atr_value, price, "ask",
            min_strength=cfg.min_strength, distance_multiplier=cfg.distance_multiplier,
        )
        exchange_clusters = [
            (
                build_side_clusters(
                    aggregate_levels(book.bids), size, atr_value, price, f"{name} bid",
                    min_strength=cfg.min_strength, distance_multiplier=cfg.distance_multiplier,
                    required=False,
                ),
                build_side_clusters(
                    aggregate_levels(book.asks), size, atr_value, price, f"{name} ask",
                    min_strength=cfg.min_strength, distance_multiplier=cfg.distance_multiplier,
                    required=False,
                ),
            )
            for name, book in snapshot.books.items()
        ]

        bid_poi = extract_poi(bid_clusters, cfg.coverage)
        ask_poi = extract_poi(ask_clusters, cfg.coverage)
        buy_pct, sell_pct = dominance(bid_poi, ask_poi)

        # Liquidation zones, falling back to the top cluster
        support, resistance = self.locator.locate(
            bids, asks, price, atr_value, bid_poi.total_notional, ask_poi.total_notional
        )
        max_pain_down = top_cluster_as_pain(bid_clusters, price)
        max_pain_up = top_cluster_as_pain(ask_clusters, price)
        support = support or max_pain_down
        resistance = resistance or max_pain_up

        # Trend, momentum, flow, regime
        trend = compute_trend(primary_candles, cfg.talr_min_bars)
        momentum = compute_momentum(primary_candles, price, cfg)
        flow = compute_flow(
            primary_candles, bids, asks, price, atr_value, exchange_clusters, size,
            cvd_lookback=cfg.cvd_lookback, cvd_scale=cfg.cvd_scale,
        )
        regime = classify_regime(atr_value, price, flow.lci, momentum.momentum_score, cfg)

        if not momentum.available:
            logger.warning("%s: momentum unavailable (%d candles), using neutral", symbol, len(primary_candles))
        if snapshot.futures is None:
            logger.debug("%s: no futures metrics, futures bias is zero", symbol)

        inputs = ConvictionInputs(
            buy_pct=buy_pct,
            sell_pct=sell_pct,
            talr=trend.talr,
            support_dist_pct=self.locator.distance_pct(support, atr_value),
            resistance_dist_pct=self.locator.distance_pct(resistance, atr_value),
            bid_total=bid_poi.total_notional,
            ask_total=ask_poi.total_notional,
            momentum_score=momentum.momentum_score,
            cvd_score=flow.cvd_score,
            lci_score=flow.lci_score,
            mela_score=flow.mela_score,
            regime=regime,
            futures=snapshot.futures,
            cac_modifier=snapshot.cac_modifier,
        )
        result = self.conviction.evaluate(symbol, inputs)

        logger.info(
            "%s: %s conviction=%d (buy=%d sell=%d) regime=%s price=%.2f atr=%.2f",
            symbol, result.signal.value, result.conviction, result.buy_score,
            result.sell_score, regime.value, price, atr_value,
        )

        zone_pct = self.locator.distance_pct
        futures = snapshot.futures

        def _sec(interval: str, attr: str) -> float | None:
            reading = secondary.get(interval)
            return getattr(reading, attr) if reading is not None else None

        return SignalSnapshot(
            symbol=symbol,
            signal=result.signal,
            conviction=result.conviction,
            buy_score=result.buy_score,
            sell_score=result.sell_score,
            raw_signal=result.raw_signal,
            suppressed=result.suppressed,
            price=price,
            buy_pct=buy_pct,
            sell_pct=sell_pct,
            bid_total_usd=bid_poi.total_notional,
            ask_total_usd=ask_poi.total_notional,
            bid_poi_count=len(bid_poi.clusters),
            ask_poi_count=len(ask_poi.clusters),
            cluster_size=size,
            atr_4h=atr_value,
            atr_1h=_sec("1h", "atr"),
            atr_15m=_sec("15m", "atr"),
            atr_5m=_sec("5m", "atr"),
            vol_1h=_sec("1h", "volatility"),
            vol_15m=_sec("15m", "volatility"),
            vol_5m=_sec("5m", "volatility"),
            nearest_support=ZoneSnapshot.from_zone(support, zone_pct(support, atr_value)),
            nearest_resistance=ZoneSnapshot.from_zone(resistance, zone_pct(resistance, atr_value)),
            max_pain_down=ZoneSnapshot.from_zone(max_pain_down, zone_pct(max_pain_down, atr_value)),
            max_pain_up=ZoneSnapshot.from_zone(max_pain_up, zone_pct(max_pain_up, atr_value)),
            talr=trend.talr,
            trend_slope_pct=trend.slope_pct,
            momentum=MomentumSnapshot.from_reading(momentum),
            cvd_score=flow.cvd_score,
            cvd_available=flow.cvd_available,
            lci_score=flow.lci_score,
            lci_concentration_pct=flow.lci * 100,
            mela_score=flow.mela_score,
            mela_agreement_pct=flow.mela * 100,
            mela_available=flow.mela_available,
            regime=regime,
            open_interest_usd=futures.open_interest_usd if futures else None,
            funding_rate=futures.funding_rate if futures else None,
            long_short_ratio=futures.long_short_ratio if futures else None,
            bias=BiasSnapshot.from_breakdown(result.bias),
        )
