# src/stochdiv/divergence/strength.py
"""Divergence strength scoring.

Three contributions of 0-3 points each, summed to a 0-9 score:

1. Zone: how far p1's oscillator sat beyond overbought (bearish) or
   oversold (bullish). Beyond the level by more than 5 -> 3, beyond the
   level -> 2, within 10 of the level -> 1.
2. Movement: oscillator move from p1 to p2 in the divergence direction.
   More than 25 -> 3, more than 15 -> 2, more than 5 -> 1.
3. Slope: current %K slope in the signal direction.
   More than 7 -> 3, more than 3 -> 2, more than 1 -> 1.

Unavailable inputs contribute 0 points.
"""
import math
from dataclasses import dataclass

from stochdiv.divergence.models import DivergenceKind

STRENGTH_BANDS: list[tuple[int, str]] = [
    (8, "very strong"),
    (6, "strong"),
    (4, "medium-high"),
    (2, "medium"),
    (0, "weak"),
]

MOVEMENT_BUCKETS = (25.0, 15.0, 5.0)
SLOPE_BUCKETS = (7.0, 3.0, 1.0)


@dataclass(frozen=True)
class StrengthScore:
    """Bucketed divergence strength.

    Attributes:
        zone: Points for p1's distance beyond the extreme level.
        movement: Points for the oscillator move between the pivots.
        slope: Points for the %K slope at the evaluation bar.
        k_slope: The slope itself, ``None`` when unavailable.
    """

    zone: int
    movement: int
    slope: int
    k_slope: float | None

    @property
    def score(self) -> int:
        return self.zone + self.movement + self.slope

    @property
    def label(self) -> str:
        return strength_label(self.score)

    @property
    def signal_strength(self) -> int:
        return signal_strength(self.score)

    @property
    def angle_deg(self) -> float | None:
        return slope_angle(self.k_slope)


def _bucket(value: float | None, thresholds: tuple[float, float, float]) -> int:
    if value is None:
        return 0
    top, mid, low = thresholds
    if value > top:
        return 3
    if value > mid:
        return 2
    if value > low:
        return 1
    return 0


def _zone_points(kind: DivergenceKind, p1_stoch: float | None,
                 oversold: float, overbought: float) -> int:
    if p1_stoch is None:
        return 0
    if kind is DivergenceKind.BEARISH:
        if p1_stoch > overbought + 5:
            return 3
        if p1_stoch > overbought:
            return 2
        if p1_stoch > overbought - 10:
            return 1
        return 0
    if p1_stoch < oversold - 5:
        return 3
    if p1_stoch < oversold:
        return 2
    if p1_stoch < oversold + 10:
        return 1
    return 0


def score_divergence(
    kind: DivergenceKind,
    p1_stoch: float | None,
    p2_stoch: float | None,
    k_slope: float | None,
    oversold: float,
    overbought: float,
) -> StrengthScore:
    """Score a divergence.

    Args:
        kind: Divergence kind.
        p1_stoch: Oscillator value at the earlier pivot.
        p2_stoch: Oscillator value at the later pivot (or the current bar).
        k_slope: ``k[i] - k[i-1]`` at the evaluation bar.
        oversold: Oversold level.
        overbought: Overbought level.

    Returns:
        StrengthScore with a total in [0, 9].
    """
    move = None
    if p1_stoch is not None and p2_stoch is not None:
        move = p1_stoch - p2_stoch if kind is DivergenceKind.BEARISH else p2_stoch - p1_stoch

    directed_slope = None
    if k_slope is not None:
        directed_slope = -k_slope if kind is DivergenceKind.BEARISH else k_slope

    return StrengthScore(
        zone=_zone_points(kind, p1_stoch, oversold, overbought),
        movement=_bucket(move, MOVEMENT_BUCKETS),
        slope=_bucket(directed_slope, SLOPE_BUCKETS),
        k_slope=k_slope,
    )


def strength_label(score: int) -> str:
    """Qualitative band for a 0-9 score."""
    for floor, label in STRENGTH_BANDS:
        if score >= floor:
            return label
    return STRENGTH_BANDS[-1][1]


def signal_strength(score: int) -> int:
    """1-10 signal strength derived from the 0-9 score."""
    return min(10, max(1, round(score / 9 * 9) + 1))


def slope_angle(k_slope: float | None) -> float | None:
    """Slope expressed as an angle in degrees."""
    if k_slope is None:
        return None
    return math.degrees(math.atan(k_slope))
