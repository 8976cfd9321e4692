"""Market regime heuristic."""

from __future__ import annotations

import logging

from signal_core.models import EngineConfig, Regime

logger = logging.getLogger(__name__)


def classify_regime(
    atr_value: float,
    price: float,
    concentration: float | None,
    momentum_score: float | None,
    config: EngineConfig | None = None,
) -> Regime:
    """Classify the market as NORMAL or LIQUIDITY_STRESSED.

    Stressed when liquidity is packed around price while volatility is
    elevated, when it is packed very tightly, or when it is moderately packed
    under weak momentum. Any failure falls back to NORMAL so the pipeline is
    never blocked here.
    """
    cfg = config or EngineConfig()
    try:
        vol_ratio = atr_value / max(price, 1)
        conc = concentration if concentration is not None else 0.0

        if conc > cfg.regime_concentration_vol and vol_ratio > cfg.regime_vol_ratio:
            return Regime.LIQUIDITY_STRESSED
        if conc > cfg.regime_concentration_high:
            return Regime.LIQUIDITY_STRESSED
        if (
            momentum_score is not None
            and momentum_score < cfg.regime_momentum_ceiling
            and conc > cfg.regime_concentration_momentum
        ):
            return Regime.LIQUIDITY_STRESSED
        return Regime.NORMAL
    except (TypeError, ValueError, ArithmeticError) as e:
        logger.warning("Regime classification failed (%s), defaulting to NORMAL", e)
        return Regime.NORMAL
