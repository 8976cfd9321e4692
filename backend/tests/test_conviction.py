"""Tests for scoring, suppression, decision and anti-oscillation."""

import logging

import pytest

from signal_core.conviction import (
    ConvictionEngine,
    ConvictionInputs,
    apply_anti_oscillation,
    apply_suppression,
    combine_scores,
    compute_biases,
    decide,
    default_cac_modifier,
    futures_bias,
)
from signal_core.models import (
    BiasBreakdown,
    EngineConfig,
    EngineState,
    FuturesMetrics,
    Regime,
    Signal,
)


def make_inputs(**overrides) -> ConvictionInputs:
    """Neutral inputs (buy == sell == 50) with optional overrides."""
    values = dict(
        buy_pct=50.0,
        sell_pct=50.0,
        talr=50.0,
        support_dist_pct=40.0,
        resistance_dist_pct=40.0,
        bid_total=1_000_000.0,
        ask_total=1_000_000.0,
        momentum_score=50,
        cvd_score=50,
        lci_score=50,
        mela_score=50,
        regime=Regime.NORMAL,
    )
    values.update(overrides)
    return ConvictionInputs(**values)


def bullish_inputs(**overrides) -> ConvictionInputs:
    """Strong bid dominance with confirming momentum."""
    values = dict(buy_pct=80.0, sell_pct=20.0, momentum_score=70)
    values.update(overrides)
    return make_inputs(**values)


class TestDecide:
    """Tests for the plain decision rule."""

    def test_buy(self):
        assert decide(70, 55) == (Signal.BUY, 70)

    def test_buy_needs_minimum_score(self):
        signal, _ = decide(58, 52)
        assert signal == Signal.HOLD

    def test_balanced_hold(self):
        assert decide(50, 50) == (Signal.HOLD, 50)

    def test_sell(self):
        assert decide(40, 75) == (Signal.SELL, 75)

    def test_margin_is_strict(self):
        assert decide(68, 60)[0] == Signal.HOLD
        assert decide(69, 60)[0] == Signal.BUY

    def test_hold_conviction_rounds_half_up(self):
        assert decide(55, 50) == (Signal.HOLD, 53)

    def test_custom_config(self):
        config = EngineConfig(signal_margin=2, signal_min_score=55)
        assert decide(58, 52, config) == (Signal.BUY, 58)


class TestSuppression:
    """Tests for regime-aware BUY suppression."""

    def test_large_buy_gets_partial_penalty(self):
        buy, sell, penalty = apply_suppression(65, 40, Regime.LIQUIDITY_STRESSED, 20, -2.0, EngineConfig())

        assert buy == 57
        assert sell == 44
        assert penalty == 8

    def test_small_buy_gets_scaled_penalty(self):
        # max(15, round((40 - 20) / 5)) = 15, half credited to sell
        buy, sell, penalty = apply_suppression(50, 45, Regime.LIQUIDITY_STRESSED, 20, -2.0, EngineConfig())

        assert buy == 35
        assert sell == 53
        assert penalty == 15

    def test_buy_floors_at_zero(self):
        buy, sell, penalty = apply_suppression(10, 95, Regime.LIQUIDITY_STRESSED, 0, -5.0, EngineConfig())

        assert buy == 0
        assert sell == 100
        assert penalty == 10

    @pytest.mark.parametrize(
        "regime,cvd,cac",
        [
            (Regime.NORMAL, 20, -2.0),
            (Regime.LIQUIDITY_STRESSED, 45, -2.0),
            (Regime.LIQUIDITY_STRESSED, 20, 0.0),
        ],
    )
    def test_not_applied(self, regime, cvd, cac):
        assert apply_suppression(65, 40, regime, cvd, cac, EngineConfig()) == (65, 40, 0)

    @pytest.mark.parametrize(
        "buy,expected",
        [
            (55, (47, 44, 8)),
            (54, (39, 48, 15)),
        ],
    )
    def test_buy_score_cap_boundary(self, buy, expected):
        # At the cap the fixed -8/+4 applies; one below it the scaled penalty
        assert apply_suppression(buy, 40, Regime.LIQUIDITY_STRESSED, 20, -2.0, EngineConfig()) == expected

    @pytest.mark.parametrize(
        "cvd,cac,suppressed",
        [
            (40, -2.0, False),
            (39, -2.0, True),
            (20, -1.0, False),
            (20, -1.01, True),
        ],
    )
    def test_threshold_boundaries(self, cvd, cac, suppressed):
        _, _, penalty = apply_suppression(65, 40, Regime.LIQUIDITY_STRESSED, cvd, cac, EngineConfig())
        assert (penalty > 0) is suppressed

    def test_disabled(self):
        config = EngineConfig(suppress_in_stress=False)
        assert apply_suppression(65, 40, Regime.LIQUIDITY_STRESSED, 20, -2.0, config) == (65, 40, 0)


class TestBiases:
    """Tests for bias terms and score combination."""

    def test_neutral_inputs_score_fifty(self):
        config = EngineConfig()
        bias = compute_biases(make_inputs(), config)

        assert combine_scores(bias, config) == (50, 50)

    def test_dominance_moves_scores_in_mirror(self):
        config = EngineConfig()
        buy, sell = combine_scores(compute_biases(make_inputs(buy_pct=70.0, sell_pct=30.0), config), config)

        # 40 * 0.35 = 14
        assert buy == 64
        assert sell == 36

    def test_proximity_raises_both_sides(self):
        config = EngineConfig()
        bias = compute_biases(make_inputs(support_dist_pct=10.0, resistance_dist_pct=10.0), config)

        assert bias.proximity_buy == 30.0
        assert bias.proximity_sell == 30.0
        # Proximity factor tilts toward buy: (40 - 10) / 4 = 7.5
        assert bias.proximity_factor == 7.5

    def test_scores_are_clamped(self):
        config = EngineConfig()
        bias = BiasBreakdown(dominance=1000.0)
        assert combine_scores(bias, config) == (100, 0)

    def test_lci_and_mela_follow_dominant_side(self):
        config = EngineConfig()
        buy_side = compute_biases(make_inputs(buy_pct=60.0, sell_pct=40.0, lci_score=100, mela_score=100), config)
        sell_side = compute_biases(make_inputs(buy_pct=40.0, sell_pct=60.0, lci_score=100, mela_score=100), config)

        assert buy_side.lci == pytest.approx(5.0)
        assert buy_side.mela == pytest.approx(5.0)
        assert sell_side.lci == pytest.approx(-5.0)
        assert sell_side.mela == pytest.approx(-5.0)

    def test_explicit_cac_overrides_futures_proxy(self):
        config = EngineConfig()
        futures = FuturesMetrics(long_short_ratio=1.2)

        derived = compute_biases(make_inputs(futures=futures), config)
        explicit = compute_biases(make_inputs(futures=futures, cac_modifier=-3.0), config)

        assert derived.cac_modifier == pytest.approx(20.0)
        assert explicit.cac_modifier == -3.0
        assert explicit.cross_asset == pytest.approx(-0.6)


class TestFuturesBias:
    """Tests for futures positioning bias."""

    def test_no_futures(self):
        assert futures_bias(None, EngineConfig()) == (0.0, 0)
        assert futures_bias(FuturesMetrics(), EngineConfig()) == (0.0, 0)

    def test_strength_from_open_interest(self):
        # log10(1e9 + 1) * 3 = 27
        _, strength = futures_bias(FuturesMetrics(open_interest_usd=1e9), EngineConfig())
        assert strength == 27

    def test_strength_capped(self):
        _, strength = futures_bias(FuturesMetrics(open_interest_usd=1e15), EngineConfig())
        assert strength == 30

    def test_long_skew_is_bullish_funding_is_bearish(self):
        config = EngineConfig()
        long_bias, _ = futures_bias(FuturesMetrics(open_interest_usd=1e9, long_short_ratio=1.5), config)
        funding_bias, _ = futures_bias(FuturesMetrics(open_interest_usd=1e9, funding_rate=0.001), config)

        # (0.5 * 10) * 27 / 20
        assert long_bias == pytest.approx(6.75)
        assert funding_bias == pytest.approx(-1.35)

    def test_default_cac_modifier(self):
        assert default_cac_modifier(None) == 0.0
        assert default_cac_modifier(FuturesMetrics(long_short_ratio=0.98)) == pytest.approx(-2.0)


class TestAntiOscillation:
    """Tests for deadband, momentum gate, persistence and smoothing."""

    def test_deadband_holds_on_consecutive_ticks(self):
        config = EngineConfig()
        state = EngineState()

        for _ in range(2):
            raw, _ = decide(61, 50, config)
            assert raw == Signal.BUY
            signal, conviction = apply_anti_oscillation(raw, 61, 50, 70, state, config)
            assert signal == Signal.HOLD
            assert conviction == 56

    def test_persistence_requires_two_ticks(self):
        config = EngineConfig()
        state = EngineState()

        first, first_conviction = apply_anti_oscillation(Signal.BUY, 80, 40, 70, state, config)
        second, second_conviction = apply_anti_oscillation(Signal.BUY, 80, 40, 70, state, config)

        assert first == Signal.HOLD
        assert first_conviction == 60
        assert second == Signal.BUY
        # 0.35 * 60 + 0.65 * 80 = 73
        assert second_conviction == 73
        assert state.last_signal == Signal.BUY
        assert state.trend_persist_counter == 2

    def test_momentum_gate_blocks_buy(self):
        config = EngineConfig()
        state = EngineState()
        for _ in range(3):
            signal, _ = apply_anti_oscillation(Signal.BUY, 80, 40, 50, state, config)
            assert signal == Signal.HOLD
        assert state.trend_persist_counter == 0

    def test_momentum_gate_sell(self):
        config = EngineConfig()
        blocked = EngineState()
        confirmed = EngineState()

        for _ in range(2):
            held, _ = apply_anti_oscillation(Signal.SELL, 40, 80, 50, blocked, config)
            emitted, _ = apply_anti_oscillation(Signal.SELL, 40, 80, 40, confirmed, config)

        assert held == Signal.HOLD
        assert emitted == Signal.SELL

    def test_hold_resets_persistence(self):
        config = EngineConfig()
        state = EngineState()

        apply_anti_oscillation(Signal.BUY, 80, 40, 70, state, config)
        apply_anti_oscillation(Signal.BUY, 80, 40, 70, state, config)
        assert state.last_signal == Signal.BUY

        apply_anti_oscillation(Signal.HOLD, 55, 50, 70, state, config)
        assert state.trend_persist_counter == 0

        signal, _ = apply_anti_oscillation(Signal.BUY, 80, 40, 70, state, config)
        # One tick of agreement only: previous emitted signal (HOLD) is held
        assert signal == Signal.HOLD
        assert state.trend_persist_counter == 1

    def test_direction_flip_restarts_count(self):
        config = EngineConfig()
        state = EngineState()

        apply_anti_oscillation(Signal.BUY, 80, 40, 70, state, config)
        apply_anti_oscillation(Signal.BUY, 80, 40, 70, state, config)
        signal, _ = apply_anti_oscillation(Signal.SELL, 40, 80, 30, state, config)

        assert signal == Signal.BUY
        assert state.pending_signal == Signal.SELL
        assert state.trend_persist_counter == 1

    def test_first_tick_is_not_smoothed(self):
        config = EngineConfig(trend_persist_ticks=1)
        signal, conviction = apply_anti_oscillation(Signal.BUY, 80, 40, 70, EngineState(), config)
        assert signal == Signal.BUY
        assert conviction == 80


class TestConvictionEngine:
    """Tests for ConvictionEngine."""

    def test_neutral_hold(self):
        result = ConvictionEngine().evaluate("BTC", make_inputs())

        assert result.signal == Signal.HOLD
        assert result.conviction == 50
        assert result.buy_score == 50
        assert result.sell_score == 50
        assert result.suppressed is False

    def test_bullish_after_persistence(self):
        engine = ConvictionEngine()

        first = engine.evaluate("BTC", bullish_inputs())
        second = engine.evaluate("BTC", bullish_inputs())

        assert first.raw_signal == Signal.BUY
        assert first.signal == Signal.HOLD
        assert second.signal == Signal.BUY
        assert second.buy_score > second.sell_score

    def test_symbols_do_not_share_state(self):
        engine = ConvictionEngine()

        engine.evaluate("BTC", bullish_inputs())
        engine.evaluate("btc", bullish_inputs())
        eth = engine.evaluate("ETH", bullish_inputs())

        assert engine.get_state("BTC").last_signal == Signal.BUY
        assert eth.signal == Signal.HOLD
        assert engine.symbols == ["BTC", "ETH"]

    def test_reset(self):
        engine = ConvictionEngine()
        engine.evaluate("BTC", bullish_inputs())
        engine.evaluate("ETH", bullish_inputs())

        engine.reset("btc")
        assert engine.symbols == ["ETH"]
        engine.reset()
        assert engine.symbols == []

    def test_anti_oscillation_disabled_emits_raw(self):
        engine = ConvictionEngine(EngineConfig(anti_oscillation=False))

        result = engine.evaluate("BTC", bullish_inputs())

        assert result.signal == result.raw_signal == Signal.BUY
        assert result.conviction == result.raw_conviction
        assert engine.symbols == []

    def test_suppression_logged(self, caplog):
        engine = ConvictionEngine()
        inputs = make_inputs(
            buy_pct=60.0,
            sell_pct=40.0,
            regime=Regime.LIQUIDITY_STRESSED,
            cvd_score=20,
            cac_modifier=-5.0,
        )

        with caplog.at_level(logging.INFO):
            result = engine.evaluate("BTC", inputs)

        assert result.suppressed is True
        assert result.bias.suppression > 0
        assert "suppressed" in caplog.text

    def test_scores_within_bounds(self):
        engine = ConvictionEngine()
        extremes = [
            make_inputs(buy_pct=100.0, sell_pct=0.0, talr=0, momentum_score=100, cvd_score=100,
                        support_dist_pct=0.0, resistance_dist_pct=0.0, ask_total=0.0),
            make_inputs(buy_pct=0.0, sell_pct=100.0, talr=100, momentum_score=0, cvd_score=0,
                        support_dist_pct=999.0, resistance_dist_pct=999.0, bid_total=0.0,
                        regime=Regime.LIQUIDITY_STRESSED, cac_modifier=-50.0),
            make_inputs(futures=FuturesMetrics(open_interest_usd=1e12, funding_rate=-0.01, long_short_ratio=5.0)),
        ]
        for i, inputs in enumerate(extremes):
            result = engine.evaluate(f"SYM{i}", inputs)
            for score in (result.buy_score, result.sell_score, result.conviction, result.raw_conviction):
                assert 0 <= score <= 100
