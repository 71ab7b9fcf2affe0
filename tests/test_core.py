"""
StochDiv Core Tests

Tests for configuration, errors and logging:
1. Config - defaults, overrides, validation, profiles
2. Errors - InputShapeError contents
3. Logging - silent by default, opt-in through loguru
"""

from __future__ import annotations

import pytest
from loguru import logger

from stochdiv import (
    DEFAULTS,
    FORWARD_PROFILE,
    HISTORICAL_PROFILE,
    InputShapeError,
    PairingProfile,
    StochDivConfig,
    compute_stoch_divergence,
    default_config,
    get_profile,
)


# =============================================================================
# Configuration
# =============================================================================


class TestConfig:
    """StochDivConfig and default_config."""

    def test_defaults(self):
        config = default_config()
        for name, value in DEFAULTS.items():
            assert getattr(config, name) == value
        assert config.profile is HISTORICAL_PROFILE

    def test_profile_by_name(self):
        assert default_config("forward").profile is FORWARD_PROFILE

    def test_overrides(self):
        config = default_config(stoch_length=14, oversold=25.0)
        assert config.stoch_length == 14
        assert config.oversold == 25.0
        assert config.smooth_k == DEFAULTS["smooth_k"]

    def test_warmup(self):
        assert default_config().warmup == 16

    def test_replace(self):
        config = default_config()
        changed = config.replace(pivot_right=2)
        assert changed.pivot_right == 2
        assert config.pivot_right == 1

    @pytest.mark.parametrize("overrides", [
        {"stoch_length": 0},
        {"smooth_d": 0},
        {"pivot_right": 0},
        {"min_bars_between_pivots": 0},
        {"oversold": 80.0, "overbought": 20.0},
        {"oversold": 50.0, "overbought": 50.0},
        {"price_tolerance": -0.01},
    ])
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ValueError):
            default_config(**overrides)

    def test_replace_validates(self):
        with pytest.raises(ValueError):
            default_config().replace(smooth_k=0)

    def test_profile_must_be_object(self):
        with pytest.raises(ValueError):
            StochDivConfig(profile="forward", **DEFAULTS)

    def test_config_is_frozen(self):
        with pytest.raises(AttributeError):
            default_config().stoch_length = 5


class TestProfiles:
    """Named pairing profiles."""

    def test_historical(self):
        assert HISTORICAL_PROFILE.stoch_gate == 10.0
        assert HISTORICAL_PROFILE.max_bars_apart == 60
        assert not HISTORICAL_PROFILE.wait_for_crossover

    def test_forward(self):
        assert FORWARD_PROFILE.stoch_gate == 0.0
        assert FORWARD_PROFILE.max_bars_apart is None
        assert FORWARD_PROFILE.wait_for_crossover

    def test_lookup(self):
        assert get_profile("historical") is HISTORICAL_PROFILE
        with pytest.raises(KeyError):
            get_profile("weekly")

    @pytest.mark.parametrize("kwargs", [
        {"strategy": "streaming"},
        {"stoch_gate": -1.0},
        {"max_bars_apart": 0},
    ])
    def test_invalid_profile(self, kwargs):
        params = {"name": "custom", "strategy": "forward", "stoch_gate": 0.0,
                  "max_bars_apart": None, "wait_for_crossover": True}
        params.update(kwargs)
        with pytest.raises(ValueError):
            PairingProfile(**params)


# =============================================================================
# Errors and Logging
# =============================================================================


def unequal_call():
    compute_stoch_divergence([1.0], [1.0, 2.0], [1.0], [1.0], [1.0], [0], default_config())


class TestErrors:
    """InputShapeError."""

    def test_lengths_reported(self):
        with pytest.raises(InputShapeError) as exc:
            unequal_call()
        assert exc.value.lengths == {"open": 1, "high": 2, "low": 1, "close": 1, "volume": 1, "time": 1}
        assert "high=2" in str(exc.value)


class TestLogging:
    """Library logging goes through loguru and is opt-in."""

    def test_silent_by_default(self):
        messages = []
        sink_id = logger.add(messages.append, level="DEBUG", format="{message}")
        try:
            with pytest.raises(InputShapeError):
                unequal_call()
        finally:
            logger.remove(sink_id)
        assert messages == []

    def test_warning_when_enabled(self):
        messages = []
        logger.enable("stochdiv")
        sink_id = logger.add(messages.append, level="WARNING", format="{message}")
        try:
            with pytest.raises(InputShapeError):
                unequal_call()
        finally:
            logger.remove(sink_id)
            logger.disable("stochdiv")
        assert any("unequal lengths" in m for m in messages)
