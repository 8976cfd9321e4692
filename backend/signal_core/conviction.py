"""Conviction & signal engine.

Combines liquidity dominance, trend agreement, liquidation proximity, book
mass, futures positioning, momentum and flow metrics into independent buy
and sell scores (base 50 each), applies regime-aware suppression, derives a
BUY/SELL/HOLD call, then runs the anti-oscillation layer:

1. deadband: scores closer than ``dead_band_threshold`` force HOLD
2. momentum gate: BUY needs momentum >= threshold, SELL <= 100 - threshold
3. persistence: a directional call must repeat ``trend_persist_ticks``
   consecutive ticks, otherwise the previously emitted signal is held
4. smoothing: conviction is blended with the previous tick's conviction

The anti-oscillation layer is the only stateful step. Its memory is an
``EngineState`` per symbol, owned by ``ConvictionEngine``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from signal_core.models import (
    BiasBreakdown,
    ConvictionResult,
    EngineConfig,
    EngineState,
    FuturesMetrics,
    Regime,
    Signal,
)
from signal_core.utils import clamp, round_half_up

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConvictionInputs:
    """Everything the conviction engine consumes for one tick."""

    buy_pct: float
    sell_pct: float
    talr: float
    support_dist_pct: float
    resistance_dist_pct: float
    bid_total: float
    ask_total: float
    momentum_score: float
    cvd_score: float
    lci_score: float
    mela_score: float
    regime: Regime
    futures: FuturesMetrics | None = None
    cac_modifier: float | None = None


def default_cac_modifier(futures: FuturesMetrics | None) -> float:
    """Cross-asset proxy from the taker long/short ratio, in percent."""
    if futures is None or futures.long_short_ratio is None:
        return 0.0
    return (futures.long_short_ratio - 1) * 100


def futures_bias(futures: FuturesMetrics | None, config: EngineConfig) -> tuple[float, int]:
    """Directional pull of futures positioning, weighted by OI strength.

    Positive long/short skew is bullish, positive funding (crowded longs) is
    bearish. Strength grows with log10 of open interest, capped.

    Returns:
        (bias, strength)
    """
    if futures is None or futures.is_empty:
        return 0.0, 0

    oi_usd = futures.open_interest_usd or 0.0
    strength = min(
        config.futures_strength_max,
        round_half_up(math.log10(max(oi_usd, 0.0) + 1) * 3),
    )
    funding = futures.funding_rate or 0.0
    ratio = futures.long_short_ratio if futures.long_short_ratio is not None else 1.0

    raw = (ratio - 1) * config.long_short_scale - funding * config.funding_scale
    return raw * (strength / config.futures_strength_divisor), strength


def compute_biases(inputs: ConvictionInputs, config: EngineConfig) -> BiasBreakdown:
    """Derive every additive bias term independently."""
    buy_dominant = inputs.buy_pct >= inputs.sell_pct

    dominance_bias = inputs.buy_pct - inputs.sell_pct
    talr_bias = (50 - inputs.talr) / 2

    prox_buy = max(0.0, config.proximity_base - inputs.support_dist_pct)
    prox_sell = max(0.0, config.proximity_base - inputs.resistance_dist_pct)

    bid_mass = inputs.bid_total or 0.0
    ask_mass = inputs.ask_total or 1.0
    mass_bias = (bid_mass - ask_mass) / (bid_mass + ask_mass) * config.mass_scale

    fut_bias, fut_strength = futures_bias(inputs.futures, config)
    momentum_bias = (inputs.momentum_score - 50) / 50 * config.momentum_bias_max

    cvd_bias = (inputs.cvd_score - 50) / 50 * config.cvd_bias_max
    lci_signed = (inputs.lci_score - 50) if buy_dominant else (50 - inputs.lci_score)
    lci_bias = lci_signed / 50 * config.lci_bias_max
    mela_signed = (inputs.mela_score - 50) if buy_dominant else (50 - inputs.mela_score)
    mela_bias = mela_signed / 50 * config.mela_bias_max

    prox_factor = clamp(
        (config.proximity_base - inputs.support_dist_pct) / 4,
        -config.proximity_influence_max,
        config.proximity_influence_max,
    )

    cac = inputs.cac_modifier if inputs.cac_modifier is not None else default_cac_modifier(inputs.futures)

    return BiasBreakdown(
        dominance=dominance_bias,
        talr=talr_bias,
        proximity_buy=prox_buy,
        proximity_sell=prox_sell,
        mass=mass_bias,
        futures=fut_bias,
        futures_strength=fut_strength,
        momentum=momentum_bias,
        cvd=cvd_bias,
        lci=lci_bias,
        mela=mela_bias,
        proximity_factor=prox_factor,
        cross_asset=cac * config.cac_weight,
        cac_modifier=cac,
    )


def combine_scores(bias: BiasBreakdown, config: EngineConfig) -> tuple[int, int]:
    """Base-50 buy score and its mirrored sell score, clamped and rounded."""
    directional = (
        bias.dominance * config.dominance_weight
        + bias.talr * config.talr_weight
        + bias.mass * config.mass_weight
        + bias.futures
        + bias.momentum
        + bias.cvd + bias.lci + bias.mela
        + bias.proximity_factor
        + bias.cross_asset
    )
    buy = 50 + directional + bias.proximity_buy * config.proximity_weight
    sell = 50 - directional + bias.proximity_sell * config.proximity_weight
    return _score(buy), _score(sell)


def _score(value: float) -> int:
    return int(clamp(round_half_up(value)))


def apply_suppression(
    buy_score: int,
    sell_score: int,
    regime: Regime,
    cvd_score: float,
    cac_modifier: float,
    config: EngineConfig,
) -> tuple[int, int, int]:
    """Penalize BUY in a stressed, sell-pressured, macro-negative market.

    Below the buy-score cap the penalty scales with how far CVD sits under
    its threshold (at least ``suppression_min_penalty``) and half of it is
    credited to the sell score. At or above the cap a fixed partial penalty
    applies.

    Returns:
        (buy_score, sell_score, penalty applied to buy_score)
    """
    if not (
        config.suppress_in_stress
        and regime == Regime.LIQUIDITY_STRESSED
        and cvd_score < config.regime_cvd_threshold
        and cac_modifier < config.regime_cac_threshold
    ):
        return buy_score, sell_score, 0

    if buy_score < config.suppression_buy_score_cap:
        penalty = max(
            config.suppression_min_penalty,
            round_half_up((config.regime_cvd_threshold - cvd_score) / config.suppression_cvd_divisor),
        )
        credit = round_half_up(penalty / 2)
    else:
        penalty = config.suppression_partial_penalty
        credit = config.suppression_partial_credit

    new_buy = max(0, buy_score - penalty)
    new_sell = min(100, sell_score + credit)
    return _score(new_buy), _score(new_sell), buy_score - new_buy


def decide(buy_score: int, sell_score: int, config: EngineConfig | None = None) -> tuple[Signal, int]:
    """Plain decision rule.

    BUY when buy beats sell by more than the margin and reaches the minimum
    score; SELL mirrored; HOLD otherwise. Conviction is the winning score,
    or the rounded average of both scores for HOLD.
    """
    cfg = config or EngineConfig()
    if buy_score > sell_score + cfg.signal_margin and buy_score >= cfg.signal_min_score:
        return Signal.BUY, buy_score
    if sell_score > buy_score + cfg.signal_margin and sell_score >= cfg.signal_min_score:
        return Signal.SELL, sell_score
    return Signal.HOLD, round_half_up((buy_score + sell_score) / 2)


def _conviction_for(signal: Signal, buy_score: int, sell_score: int) -> int:
    if signal == Signal.BUY:
        return buy_score
    if signal == Signal.SELL:
        return sell_score
    return round_half_up((buy_score + sell_score) / 2)


def apply_anti_oscillation(
    raw_signal: Signal,
    buy_score: int,
    sell_score: int,
    momentum_score: float,
    state: EngineState,
    config: EngineConfig,
) -> tuple[Signal, int]:
    """Run deadband, momentum gate, persistence and smoothing.

    Reads and updates *state* in place.

    Returns:
        (emitted signal, smoothed conviction)
    """
    candidate = raw_signal

    if abs(buy_score - sell_score) < config.dead_band_threshold:
        candidate = Signal.HOLD

    if candidate == Signal.BUY and momentum_score < config.momentum_confirm_threshold:
        candidate = Signal.HOLD
    elif candidate == Signal.SELL and momentum_score > 100 - config.momentum_confirm_threshold:
        candidate = Signal.HOLD

    ticks = state.observe(candidate)
    if candidate.is_directional and ticks < config.trend_persist_ticks:
        emitted = state.last_signal
    else:
        emitted = candidate

    conviction = _conviction_for(emitted, buy_score, sell_score)
    if state.last_conviction is not None:
        alpha = config.smoothing_alpha
        conviction = round_half_up(alpha * state.last_conviction + (1 - alpha) * conviction)
    conviction = int(clamp(conviction))

    state.remember(emitted, buy_score, sell_score, conviction)
    return emitted, conviction


class ConvictionEngine:
    """Score, suppress, decide and smooth, with one EngineState per symbol.

    Evaluations for different symbols never share state. Callers must not
    run two evaluations for the same symbol at once.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self._states: dict[str, EngineState] = {}

    def get_state(self, symbol: str) -> EngineState:
        """Get or create the smoothing state for *symbol*."""
        key = symbol.upper()
        if key not in self._states:
            self._states[key] = EngineState()
        return self._states[key]

    def reset(self, symbol: str | None = None) -> None:
        """Forget smoothing state for one symbol, or for all of them."""
        if symbol is None:
            self._states.clear()
        else:
            self._states.pop(symbol.upper(), None)

    @property
    def symbols(self) -> list[str]:
        return sorted(self._states)

    def score(self, inputs: ConvictionInputs) -> tuple[int, int, BiasBreakdown]:
        """Stateless scoring including suppression.

        Returns:
            (buy_score, sell_score, bias breakdown)
        """
        bias = compute_biases(inputs, self.config)
        buy, sell = combine_scores(bias, self.config)
        buy, sell, penalty = apply_suppression(
            buy, sell, inputs.regime, inputs.cvd_score, bias.cac_modifier, self.config
        )
        bias.suppression = penalty
        return buy, sell, bias

    def evaluate(self, symbol: str, inputs: ConvictionInputs) -> ConvictionResult:
        """Produce the final signal for *symbol*, updating its state."""
        buy, sell, bias = self.score(inputs)
        raw_signal, raw_conviction = decide(buy, sell, self.config)

        if self.config.anti_oscillation:
            state = self.get_state(symbol)
            signal, conviction = apply_anti_oscillation(
                raw_signal, buy, sell, inputs.momentum_score, state, self.config
            )
        else:
            signal, conviction = raw_signal, raw_conviction

        if bias.suppression:
            logger.info(
                "%s: BUY suppressed by %d in %s regime (cvd=%s, cac=%.2f)",
                symbol, bias.suppression, inputs.regime.value, inputs.cvd_score, bias.cac_modifier,
            )
        if signal != raw_signal:
            logger.debug("%s: raw %s held as %s by anti-oscillation", symbol, raw_signal.value, signal.value)

        return ConvictionResult(
            signal=signal,
            conviction=conviction,
            buy_score=buy,
            sell_score=sell,
            raw_signal=raw_signal,
            raw_conviction=raw_conviction,
            regime=inputs.regime,
            bias=bias,
            suppressed=bias.suppression > 0,
        )
