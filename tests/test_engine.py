"""
StochDiv Engine Tests

Tests for the end-to-end detector:
1. Input handling - shape errors, empty input, flat market
2. Forward strategy - hand-built confirmation and early-signal scenarios
3. Event invariants - spacing, tolerance, gates and signal timing on synthetic data
4. Frame feature - StochDivergence output columns
5. Adapter - minimum series length, last-value summary
"""

from __future__ import annotations

import math

import numpy as np
import polars as pl
import pytest

from conftest import (
    flat_frame,
    generate_static_ohlcv,
    generate_test_ohlcv,
    make_oscillator,
)
from stochdiv import (
    FORWARD_PROFILE,
    Bar,
    InputShapeError,
    SignalType,
    StochDivOutput,
    StochDivergence,
    compute_stoch_divergence,
    compute_with_defaults,
    default_config,
    run_on_series,
)
from stochdiv.config import MIN_SERIES_LENGTH, PairingProfile
from stochdiv.divergence.engine import DivergenceResult, _run_forward
from stochdiv.divergence.models import DivergenceKind, Pivot


def columns(df: pl.DataFrame) -> tuple:
    return tuple(df[c].to_numpy() for c in ("open", "high", "low", "close", "volume"))


def run(df: pl.DataFrame, profile: str = "historical", **overrides) -> DivergenceResult:
    config = default_config(profile, **overrides)
    return compute_stoch_divergence(*columns(df), np.arange(len(df)), config)


# =============================================================================
# Input Handling
# =============================================================================


class TestInputHandling:
    """Shape validation and degenerate input."""

    def test_unequal_lengths_raise(self):
        with pytest.raises(InputShapeError) as exc:
            compute_stoch_divergence([1.0, 2.0], [1.0, 2.0], [1.0], [1.0, 2.0], [1.0, 2.0], [0, 1],
                                     default_config())
        assert exc.value.lengths["low"] == 1
        assert isinstance(exc.value, ValueError)

    def test_empty_input(self):
        result = compute_stoch_divergence([], [], [], [], [], [], default_config())
        assert result.events == ()
        assert len(result.k) == 0
        assert result.last_signal is SignalType.NONE

    @pytest.mark.parametrize("profile", ["historical", "forward"])
    def test_flat_market_has_no_events(self, profile):
        result = run(generate_static_ohlcv(200), profile)
        assert result.events == ()
        assert np.isnan(result.k).all()

    @pytest.mark.parametrize("profile", ["historical", "forward"])
    def test_shorter_than_warmup(self, profile):
        result = run(generate_test_ohlcv(10), profile)
        assert result.events == ()
        assert np.isnan(result.d).all()

    @pytest.mark.parametrize("profile", ["historical", "forward"])
    def test_identical_inputs_identical_output(self, test_data, profile):
        first = run(test_data, profile)
        second = run(test_data, profile)
        assert first.events == second.events
        np.testing.assert_array_equal(first.k, second.k)


# =============================================================================
# Forward Strategy Scenarios
# =============================================================================


def bearish_setup(cross: bool = True):
    k = [50.0] * 25
    d = [50.0] * 25
    k[9], k[10] = 82.0, 85.0
    k[20], k[21], k[22] = 70.0, 60.0, 40.0 if cross else 65.0
    d[21] = 55.0
    osc = make_oscillator(k, d)
    first = Pivot(bar=10, price=100.0, oscillator=85.0, known_at=11)
    second = Pivot(bar=20, price=100.5, oscillator=70.0, known_at=21)
    return osc, [first, second]


class TestForwardStrategy:
    """Bar-by-bar pending/confirm flow."""

    def test_confirmed_on_cross(self):
        osc, highs = bearish_setup()
        config = default_config("forward", enable_early=False)
        events = _run_forward(highs, [], flat_frame(25), osc, config)

        assert len(events) == 1
        event = events[0]
        assert event.kind is DivergenceKind.BEARISH
        assert not event.is_early
        assert (event.p1.bar, event.p2.bar, event.signal_bar) == (10, 20, 22)
        assert (event.strength.zone, event.strength.movement, event.strength.slope) == (2, 1, 3)
        assert event.strength.label == "strong"
        assert event.strength.k_slope == pytest.approx(-20.0)

    def test_event_context(self):
        osc, highs = bearish_setup()
        config = default_config("forward", enable_early=False)
        ctx = _run_forward(highs, [], flat_frame(25), osc, config)[0].context

        assert ctx.candle_bar == 20
        assert ctx.pattern.name == "Doji"
        assert ctx.pressure.buying == pytest.approx(50.0)
        assert ctx.volume_change_pct == 0.0
        assert ctx.zone_streak == 2
        assert ctx.cross_target is None

    def test_confirmed_without_cross(self):
        osc, highs = bearish_setup()
        instant = PairingProfile("instant", "forward", stoch_gate=0.0, max_bars_apart=None,
                                 wait_for_crossover=False)
        config = default_config(instant, enable_early=False)
        events = _run_forward(highs, [], flat_frame(25), osc, config)
        assert [e.signal_bar for e in events] == [21]

    def test_pending_never_confirmed(self):
        osc, highs = bearish_setup(cross=False)
        config = default_config("forward", enable_early=False)
        assert _run_forward(highs, [], flat_frame(25), osc, config) == []

    def test_early_signal_on_last_bar(self):
        k = [50.0] * 25
        k[10], k[24] = 85.0, 70.0
        osc = make_oscillator(k, [50.0] * 25)
        frame = flat_frame(25, price=99.0)
        frame.high[24] = 100.5
        highs = [Pivot(bar=10, price=100.0, oscillator=85.0, known_at=11)]

        events = _run_forward(highs, [], frame, osc, default_config("forward"))
        assert len(events) == 1
        event = events[0]
        assert event.is_early
        assert event.signal_bar == event.p2.bar == event.p2.known_at == 24
        assert event.context.cross_target == pytest.approx(50.0)
        assert event.context.volume_change_pct is None

        disabled = default_config("forward", enable_early=False)
        assert _run_forward(highs, [], frame, osc, disabled) == []

    def test_events_frame(self):
        osc, highs = bearish_setup()
        config = default_config("forward", enable_early=False)
        events = _run_forward(highs, [], flat_frame(25), osc, config)
        result = DivergenceResult(oscillator=osc, events=tuple(events), time=np.arange(25) * 60_000)

        frame = result.events_frame()
        assert frame.height == 1
        assert frame["signal_time"][0] == 22 * 60_000
        assert frame["p1_time"][0] == 10 * 60_000
        assert frame["kind"][0] == "bearish"
        assert frame["k_slope_angle"][0] == pytest.approx(math.degrees(math.atan(-20.0)))
        assert result.last_signal is SignalType.BEARISH


# =============================================================================
# Event Invariants
# =============================================================================


class TestEventInvariants:
    """Properties every produced event satisfies."""

    @pytest.mark.parametrize("profile", ["historical", "forward"])
    def test_pairing_constraints(self, test_data, profile):
        config = default_config(profile)
        for event in run(test_data, profile).events:
            assert event.bars_apart >= config.min_bars_between_pivots
            assert event.price_diff_pct <= config.price_tolerance + 1e-12
            assert 0 <= event.score <= 9
            assert 1 <= event.strength.signal_strength <= 10
            if event.kind is DivergenceKind.BEARISH:
                assert event.stoch_diff <= -config.profile.stoch_gate
                assert event.stoch_diff < 0
            else:
                assert event.stoch_diff >= config.profile.stoch_gate
                assert event.stoch_diff > 0

    def test_historical_timing_and_order(self, test_data):
        events = run(test_data, "historical").events
        for event in events:
            assert event.signal_bar == event.p2.known_at
            assert event.bars_apart <= 60
            assert not event.is_early
        kinds = [e.kind for e in events]
        assert kinds == sorted(kinds, key=lambda k: k is DivergenceKind.BULLISH)

    def test_forward_never_signals_before_knowledge(self, test_data):
        n = len(test_data)
        events = run(test_data, "forward").events
        bars = [e.signal_bar for e in events]
        assert bars == sorted(bars)
        for event in events:
            assert event.signal_bar >= event.p2.known_at
            if event.is_early:
                assert event.signal_bar == n - 1

    def test_prefix_does_not_change_confirmed_history(self, test_data):
        full = run(test_data, "forward", enable_early=False).events
        prefix = run(test_data.head(600), "forward", enable_early=False).events
        assert list(prefix) == [e for e in full if e.signal_bar < 600]


# =============================================================================
# Frame Feature
# =============================================================================


class TestStochDivergenceFeature:
    """StochDivergence.compute_pair output."""

    @pytest.mark.parametrize("params", StochDivergence.test_params)
    def test_compute_pair(self, test_data, params):
        feature = StochDivergence(**params)
        out = feature.compute_pair(test_data)
        length = params["stoch_length"]

        for col in (f"stoch_k_{length}", f"stoch_d_{length}", "stoch_div_bullish",
                    "stoch_div_bearish", "stoch_div_early", "stoch_div_strength"):
            assert col in out.columns
        assert out.height == test_data.height
        assert out["stoch_div_strength"].dtype == pl.Int8
        assert out["stoch_div_strength"].min() >= 0
        assert out["stoch_div_strength"].max() <= 9

        flagged = out.filter(pl.col("stoch_div_strength") > 0)
        assert (flagged["stoch_div_bullish"] | flagged["stoch_div_bearish"]).all()

    def test_warmup(self):
        assert StochDivergence().warmup == 16 + 5 + 1 + 7

    def test_detect_without_timestamp(self, test_data):
        result = StochDivergence().detect(test_data.drop("timestamp"))
        np.testing.assert_array_equal(result.time, np.arange(test_data.height))

    def test_unknown_profile(self):
        with pytest.raises(KeyError):
            StochDivergence(profile="intraday")

    def test_field_changes_take_effect(self, test_data):
        feature = StochDivergence()
        feature.profile = "forward"
        feature.stoch_length = 9
        assert feature.config.profile is FORWARD_PROFILE
        assert feature.config.stoch_length == 9
        assert feature.detect(test_data).events == run(test_data, "forward", stoch_length=9).events


# =============================================================================
# Adapter
# =============================================================================


def to_bars(df: pl.DataFrame) -> list[Bar]:
    return [
        Bar(t=i, o=r["open"], h=r["high"], l=r["low"], c=r["close"], v=r["volume"])
        for i, r in enumerate(df.iter_rows(named=True))
    ]


class TestAdapter:
    """Row-oriented entry points."""

    def test_short_series_is_not_scanned(self):
        bars = to_bars(generate_test_ohlcv(MIN_SERIES_LENGTH - 1))
        assert run_on_series(bars, default_config()) == StochDivOutput()

    def test_summary_matches_engine(self):
        df = generate_test_ohlcv(300)
        output = run_on_series(to_bars(df), default_config())
        result = compute_with_defaults(*columns(df), list(range(300)))

        assert output.stoch_k == result.oscillator.k_at(299)
        assert output.stoch_d == result.oscillator.d_at(299)
        assert output.signal is result.last_signal
        assert output.annotations == result.events
        assert output.last_event == (result.events[-1] if result.events else None)

    def test_flat_series_summary(self):
        output = run_on_series(to_bars(generate_static_ohlcv(100)), default_config("forward"))
        assert output.stoch_k is None and output.stoch_d is None
        assert output.signal is SignalType.NONE
        assert output.annotations == ()
