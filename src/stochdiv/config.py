# src/stochdiv/config.py
"""Engine configuration and named pairing profiles.

The engine takes a fully populated :class:`StochDivConfig`; it never fills
in defaults on its own. Callers that want the usual settings go through
:data:`DEFAULTS` / :func:`default_config`.

Two pairing policies exist and are kept apart as profiles:

- ``historical``: offline pairing over the complete pivot list. Nearest
  older pivot within 60 bars wins; the oscillator has to move by at least
  10 points.
- ``forward``: bar-by-bar state machine. Any oscillator disagreement
  counts, no look-back cap, confirmation waits for a %K/%D cross and an
  early (repainting) signal may be emitted on the last bar.
"""
from dataclasses import dataclass, replace as _replace
from typing import Any, Literal


@dataclass(frozen=True)
class PairingProfile:
    """Qualification policy for pairing two pivots into a divergence.

    Attributes:
        name: Profile name.
        strategy: ``"historical"`` (batch scan) or ``"forward"`` (state machine).
        stoch_gate: Minimum oscillator move between the pivots. Bearish pairs
            need ``diff < 0 and diff <= -stoch_gate``, bullish pairs
            ``diff > 0 and diff >= stoch_gate``.
        max_bars_apart: Look-back cap in bars, ``None`` for no cap.
        wait_for_crossover: Forward confirmation requires a %K/%D cross.
    """

    name: str
    strategy: Literal["historical", "forward"]
    stoch_gate: float
    max_bars_apart: int | None
    wait_for_crossover: bool

    def __post_init__(self) -> None:
        if self.strategy not in ("historical", "forward"):
            raise ValueError(
                f"strategy must be 'historical' or 'forward', got {self.strategy}"
            )
        if self.stoch_gate < 0:
            raise ValueError(f"stoch_gate must be >= 0, got {self.stoch_gate}")
        if self.max_bars_apart is not None and self.max_bars_apart < 1:
            raise ValueError(
                f"max_bars_apart must be >= 1 or None, got {self.max_bars_apart}"
            )


HISTORICAL_PROFILE = PairingProfile(
    name="historical",
    strategy="historical",
    stoch_gate=10.0,
    max_bars_apart=60,
    wait_for_crossover=False,
)

FORWARD_PROFILE = PairingProfile(
    name="forward",
    strategy="forward",
    stoch_gate=0.0,
    max_bars_apart=None,
    wait_for_crossover=True,
)

PROFILES: dict[str, PairingProfile] = {
    HISTORICAL_PROFILE.name: HISTORICAL_PROFILE,
    FORWARD_PROFILE.name: FORWARD_PROFILE,
}


def get_profile(name: str) -> PairingProfile:
    """Look up a named pairing profile. Raises KeyError for unknown names."""
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(
            f"Unknown pairing profile {name!r}, expected one of {sorted(PROFILES)}"
        ) from None


@dataclass(frozen=True)
class StochDivConfig:
    """Complete engine configuration. All fields are required.

    Attributes:
        stoch_length: Stochastic look-back for the raw value.
        smooth_k: SMA length applied to raw to get %K.
        smooth_d: SMA length applied to %K to get %D.
        oversold: Oversold level on the 0..100 scale.
        overbought: Overbought level on the 0..100 scale.
        pivot_left: Bars left of a pivot candidate.
        pivot_right: Bars right of a pivot candidate (confirmation delay).
        price_tolerance: Max relative price difference between paired pivots.
        min_bars_between_pivots: Min bar distance between paired pivots.
        enable_early: Emit early (repainting) events on the last bar.
        profile: Pairing policy.
        volume_lookback: Volume SMA length used for pattern scoring.
        trend_lookback: Prior-trend look-back used for pattern rules.
    """

    stoch_length: int
    smooth_k: int
    smooth_d: int
    oversold: float
    overbought: float
    pivot_left: int
    pivot_right: int
    price_tolerance: float
    min_bars_between_pivots: int
    enable_early: bool
    profile: PairingProfile
    volume_lookback: int
    trend_lookback: int

    def __post_init__(self) -> None:
        for name in ("stoch_length", "smooth_k", "smooth_d", "pivot_left",
                     "pivot_right", "min_bars_between_pivots",
                     "volume_lookback", "trend_lookback"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")
        if not self.oversold < self.overbought:
            raise ValueError(
                f"oversold must be below overbought, got {self.oversold} >= {self.overbought}"
            )
        if self.price_tolerance < 0:
            raise ValueError(
                f"price_tolerance must be >= 0, got {self.price_tolerance}"
            )
        if not isinstance(self.profile, PairingProfile):
            raise ValueError(
                f"profile must be a PairingProfile, got {type(self.profile).__name__}"
            )

    def replace(self, **changes: Any) -> "StochDivConfig":
        return _replace(self, **changes)

    @property
    def warmup(self) -> int:
        """Minimum bars needed for the first defined %D value."""
        return self.stoch_length + self.smooth_k + self.smooth_d - 2


DEFAULTS: dict[str, Any] = {
    # Indicator
    "stoch_length": 12,
    "smooth_k": 3,
    "smooth_d": 3,
    "oversold": 20.0,
    "overbought": 80.0,
    # Pivots / divergence
    "pivot_left": 5,
    "pivot_right": 1,
    "price_tolerance": 0.012,
    "min_bars_between_pivots": 7,
    "enable_early": True,
    # Candle context
    "volume_lookback": 20,
    "trend_lookback": 10,
}

MIN_SERIES_LENGTH = 50
"""Adapter refuses to run on shorter series."""


def default_config(profile: PairingProfile | str = HISTORICAL_PROFILE, **overrides: Any) -> StochDivConfig:
    """Build a config from :data:`DEFAULTS`, a profile and optional overrides."""
    if isinstance(profile, str):
        profile = get_profile(profile)
    params = {**DEFAULTS, **overrides}
    return StochDivConfig(profile=profile, **params)
