# src/stochdiv/divergence/models.py
"""Value objects shared by the divergence pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from stochdiv.patterns.candles import PatternMatch, Pressure

if TYPE_CHECKING:
    from stochdiv.divergence.strength import StrengthScore


class DivergenceKind(str, Enum):
    """Regular divergence direction.

    BEARISH: built from price highs (price flat/higher, oscillator lower).
    BULLISH: built from price lows (price flat/lower, oscillator higher).
    """

    BULLISH = "bullish"
    BEARISH = "bearish"


class SignalType(str, Enum):
    """Last-signal summary of a series."""

    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NONE = "None"

    @classmethod
    def from_kind(cls, kind: DivergenceKind | None) -> SignalType:
        if kind is DivergenceKind.BULLISH:
            return cls.BULLISH
        if kind is DivergenceKind.BEARISH:
            return cls.BEARISH
        return cls.NONE


@dataclass(frozen=True)
class Pivot:
    """Confirmed local extremum.

    Attributes:
        bar: Bar index of the extremum.
        price: High (for pivot highs) or low (for pivot lows) at ``bar``.
        oscillator: %K at ``bar``, ``None`` while %K is unavailable.
        known_at: First bar index at which the pivot is knowable.
    """

    bar: int
    price: float
    oscillator: float | None
    known_at: int


@dataclass(frozen=True)
class DivergenceCandidate:
    """Two pivots of the same kind, ``p1`` earlier than ``p2``."""

    kind: DivergenceKind
    p1: Pivot
    p2: Pivot

    @property
    def bars_apart(self) -> int:
        return self.p2.bar - self.p1.bar

    @property
    def price_diff_pct(self) -> float:
        """``|p2.price - p1.price| / p1.price``."""
        return abs(self.p2.price - self.p1.price) / self.p1.price

    @property
    def stoch_diff(self) -> float | None:
        """``p2.oscillator - p1.oscillator``, ``None`` if either is unavailable."""
        if self.p1.oscillator is None or self.p2.oscillator is None:
            return None
        return self.p2.oscillator - self.p1.oscillator


@dataclass(frozen=True)
class EventContext:
    """Candle and volume context attached to an event.

    Attributes:
        candle_bar: Bar the candle context was read from.
        pattern: First matching candlestick pattern, if any.
        pressure: Buying/selling pressure of the candle, ``None`` for a zero range.
        volume_change_pct: Volume change from p1 to p2 (confirmed events only).
        zone_streak: Consecutive bars in the extreme zone walking back from p1.
        cross_target: Raw stochastic needed for a %K/%D cross (early events only).
    """

    candle_bar: int
    pattern: PatternMatch | None = None
    pressure: Pressure | None = None
    volume_change_pct: float | None = None
    zone_streak: int = 0
    cross_target: float | None = None


@dataclass(frozen=True)
class DivergenceEvent:
    """Finalized divergence signal. Immutable once created."""

    kind: DivergenceKind
    is_early: bool
    p1: Pivot
    p2: Pivot
    signal_bar: int
    strength: StrengthScore
    context: EventContext | None = None

    @property
    def bars_apart(self) -> int:
        return self.p2.bar - self.p1.bar

    @property
    def price_diff_pct(self) -> float:
        return abs(self.p2.price - self.p1.price) / self.p1.price

    @property
    def stoch_diff(self) -> float | None:
        if self.p1.oscillator is None or self.p2.oscillator is None:
            return None
        return self.p2.oscillator - self.p1.oscillator

    @property
    def score(self) -> int:
        return self.strength.score

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-friendly representation."""
        out: dict[str, Any] = {
            "kind": self.kind.value,
            "is_early": self.is_early,
            "p1_bar": self.p1.bar,
            "p1_price": self.p1.price,
            "p1_stoch": self.p1.oscillator,
            "p2_bar": self.p2.bar,
            "p2_price": self.p2.price,
            "p2_stoch": self.p2.oscillator,
            "bars_apart": self.bars_apart,
            "price_diff_pct": self.price_diff_pct,
            "stoch_diff": self.stoch_diff,
            "signal_bar": self.signal_bar,
            "strength_score": self.strength.score,
            "strength_label": self.strength.label,
            "signal_strength": self.strength.signal_strength,
            "k_slope": self.strength.k_slope,
            "k_slope_angle": self.strength.angle_deg,
        }
        ctx = self.context
        if ctx is not None:
            out.update({
                "pattern": ctx.pattern.name if ctx.pattern else None,
                "pattern_direction": ctx.pattern.direction if ctx.pattern else None,
                "pattern_score": ctx.pattern.score if ctx.pattern else None,
                "buying_pct": ctx.pressure.buying if ctx.pressure else None,
                "selling_pct": ctx.pressure.selling if ctx.pressure else None,
                "volume_change_pct": ctx.volume_change_pct,
                "zone_streak": ctx.zone_streak,
                "cross_target": ctx.cross_target,
            })
        return out
