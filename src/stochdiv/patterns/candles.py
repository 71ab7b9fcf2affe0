# src/stochdiv/patterns/candles.py
"""Candlestick context for divergence events.

Reversal patterns are an ordered rule table evaluated at one bar; the first
matching rule wins. A match carries a base score that is boosted when the
stochastic zone and the bar's volume agree with it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Sequence

import numpy as np

from stochdiv.overlap.rolling import moving_average

Direction = Literal["long", "short", "neutral"]


@dataclass(frozen=True)
class PatternMatch:
    """Matched candlestick pattern.

    Attributes:
        name: Pattern name.
        direction: Trade direction implied by the pattern.
        base_score: Score from the rule table.
        score: Base score plus zone/volume boosts, capped at 100.
        needs_confirmation: Pattern wants a follow-through bar.
    """

    name: str
    direction: Direction
    base_score: int
    score: int
    needs_confirmation: bool = False


@dataclass(frozen=True)
class Pressure:
    """Share of the bar range claimed by buyers/sellers, in percent."""

    buying: float
    selling: float


@dataclass(frozen=True)
class OhlcvFrame:
    """Aligned OHLCV arrays with per-bar candle geometry."""

    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    volume: np.ndarray

    @classmethod
    def from_sequences(
        cls,
        open: Sequence[float] | np.ndarray,
        high: Sequence[float] | np.ndarray,
        low: Sequence[float] | np.ndarray,
        close: Sequence[float] | np.ndarray,
        volume: Sequence[float] | np.ndarray,
    ) -> OhlcvFrame:
        return cls(
            open=np.asarray(open, dtype=np.float64),
            high=np.asarray(high, dtype=np.float64),
            low=np.asarray(low, dtype=np.float64),
            close=np.asarray(close, dtype=np.float64),
            volume=np.asarray(volume, dtype=np.float64),
        )

    def __len__(self) -> int:
        return len(self.close)

    def body(self, i: int) -> float:
        return abs(self.close[i] - self.open[i])

    def upper_shadow(self, i: int) -> float:
        return self.high[i] - max(self.open[i], self.close[i])

    def lower_shadow(self, i: int) -> float:
        return min(self.open[i], self.close[i]) - self.low[i]

    def range(self, i: int) -> float:
        return self.high[i] - self.low[i]

    def is_bull(self, i: int) -> bool:
        return self.close[i] > self.open[i]

    def is_bear(self, i: int) -> bool:
        return self.close[i] < self.open[i]

    def is_doji(self, i: int) -> bool:
        r = self.range(i)
        return r > 0 and self.body(i) <= r * 0.1

    def midpoint(self, i: int) -> float:
        return (self.open[i] + self.close[i]) / 2

    def prior_trend(self, i: int, lookback: int, up: bool) -> bool:
        """Compare the previous close with the close ``lookback`` bars back."""
        if i < 1:
            return False
        start = max(0, i - lookback)
        if up:
            return self.close[i - 1] > self.close[start]
        return self.close[i - 1] < self.close[start]


Predicate = Callable[[OhlcvFrame, int, int], bool]


@dataclass(frozen=True)
class CandleRule:
    """One row of the pattern table.

    Attributes:
        name: Pattern name.
        direction: Implied direction; ``None`` resolves it per match.
        base_score: Score before boosts.
        bars: Candles the rule inspects, including the current one.
        predicate: ``(frame, i, trend_lookback) -> bool``.
        needs_confirmation: Pattern wants a follow-through bar.
    """

    name: str
    direction: Direction | None
    base_score: int
    bars: int
    predicate: Predicate
    needs_confirmation: bool = False


def _hammer_shape(f: OhlcvFrame, i: int) -> bool:
    b = f.body(i)
    return b > 0 and f.lower_shadow(i) >= 2 * b and f.upper_shadow(i) < b


def _inverted_shape(f: OhlcvFrame, i: int) -> bool:
    b = f.body(i)
    return b > 0 and f.upper_shadow(i) >= 2 * b and f.lower_shadow(i) < b


def _three_white_soldiers(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=False)
            and f.is_bull(i - 2) and f.is_bull(i - 1) and f.is_bull(i)
            and c[i - 1] > c[i - 2] and c[i] > c[i - 1]
            and c[i - 2] > o[i - 1] > o[i - 2]
            and c[i - 1] > o[i] > o[i - 1])


def _three_black_crows(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=True)
            and f.is_bear(i - 2) and f.is_bear(i - 1) and f.is_bear(i)
            and c[i - 1] < c[i - 2] and c[i] < c[i - 1]
            and c[i - 2] < o[i - 1] < o[i - 2]
            and c[i - 1] < o[i] < o[i - 1])


def _morning_star(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=False)
            and f.is_bear(i - 2) and f.body(i - 2) > f.body(i - 1)
            and min(o[i - 1], c[i - 1]) < c[i - 2]
            and f.is_bull(i) and c[i] > f.midpoint(i - 2))


def _evening_star(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=True)
            and f.is_bull(i - 2) and f.body(i - 2) > f.body(i - 1)
            and max(o[i - 1], c[i - 1]) > c[i - 2]
            and f.is_bear(i) and c[i] < f.midpoint(i - 2))


def _bullish_engulfing(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=False) and f.is_bear(i - 1) and f.is_bull(i)
            and c[i] > o[i - 1] and o[i] < c[i - 1])


def _bearish_engulfing(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=True) and f.is_bull(i - 1) and f.is_bear(i)
            and c[i] < o[i - 1] and o[i] > c[i - 1])


def _piercing(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=False) and f.is_bear(i - 1) and f.is_bull(i)
            and o[i] < c[i - 1] and f.midpoint(i - 1) < c[i] < o[i - 1])


def _dark_cloud(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=True) and f.is_bull(i - 1) and f.is_bear(i)
            and o[i] > c[i - 1] and o[i - 1] < c[i] < f.midpoint(i - 1))


def _harami_cross(f: OhlcvFrame, i: int, lb: int) -> bool:
    trending = f.prior_trend(i, lb, up=True) or f.prior_trend(i, lb, up=False)
    return (trending and f.body(i - 1) > f.body(i) * 3 and f.is_doji(i)
            and f.high[i] < f.high[i - 1] and f.low[i] > f.low[i - 1])


def _bullish_harami(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=False) and f.is_bear(i - 1) and f.is_bull(i)
            and o[i] > c[i - 1] and c[i] < o[i - 1])


def _bearish_harami(f: OhlcvFrame, i: int, lb: int) -> bool:
    o, c = f.open, f.close
    return (f.prior_trend(i, lb, up=True) and f.is_bull(i - 1) and f.is_bear(i)
            and o[i] < c[i - 1] and c[i] > o[i - 1])


# Priority order matters: first match wins.
CANDLE_RULES: list[CandleRule] = [
    CandleRule("Three White Soldiers", "long", 90, 3, _three_white_soldiers),
    CandleRule("Three Black Crows", "short", 90, 3, _three_black_crows),
    CandleRule("Morning Star", "long", 85, 3, _morning_star),
    CandleRule("Evening Star", "short", 85, 3, _evening_star),
    CandleRule("Bullish Engulfing", "long", 75, 2, _bullish_engulfing),
    CandleRule("Bearish Engulfing", "short", 75, 2, _bearish_engulfing),
    CandleRule("Piercing Pattern", "long", 70, 2, _piercing),
    CandleRule("Dark Cloud Cover", "short", 70, 2, _dark_cloud),
    CandleRule("Harami Cross", None, 65, 2, _harami_cross, needs_confirmation=True),
    CandleRule("Bullish Harami", "long", 60, 2, _bullish_harami, needs_confirmation=True),
    CandleRule("Bearish Harami", "short", 60, 2, _bearish_harami, needs_confirmation=True),
    CandleRule("Hammer", "long", 50, 1,
               lambda f, i, lb: f.prior_trend(i, lb, up=False) and _hammer_shape(f, i)),
    CandleRule("Hanging Man", "short", 50, 1,
               lambda f, i, lb: f.prior_trend(i, lb, up=True) and _hammer_shape(f, i)),
    CandleRule("Inverted Hammer", "long", 45, 1,
               lambda f, i, lb: f.prior_trend(i, lb, up=False) and _inverted_shape(f, i),
               needs_confirmation=True),
    CandleRule("Shooting Star", "short", 45, 1,
               lambda f, i, lb: f.prior_trend(i, lb, up=True) and _inverted_shape(f, i)),
    CandleRule("Doji", "neutral", 30, 1, lambda f, i, lb: f.is_doji(i)),
]


def match_pattern(frame: OhlcvFrame, i: int, trend_lookback: int) -> CandleRule | None:
    """First rule of :data:`CANDLE_RULES` that matches at bar ``i``."""
    for rule in CANDLE_RULES:
        if i - rule.bars + 1 < 0:
            continue
        if rule.predicate(frame, i, trend_lookback):
            return rule
    return None


def detect_pattern(
    frame: OhlcvFrame,
    i: int,
    k_value: float | None,
    oversold: float,
    overbought: float,
    trend_lookback: int,
    volume_lookback: int,
) -> PatternMatch | None:
    """Detect and score the candlestick pattern at bar ``i``.

    Boosts on top of the base score: +15 when %K sits in the zone matching
    the pattern direction, +15 when volume exceeds 1.5x its SMA (+5 when it
    merely exceeds the SMA). Capped at 100.
    """
    rule = match_pattern(frame, i, trend_lookback)
    if rule is None:
        return None

    direction = rule.direction
    if direction is None:
        direction = "long" if frame.is_bear(i - 1) else "short"

    score = rule.base_score
    if k_value is not None:
        if (direction == "long" and k_value < oversold) or (
            direction == "short" and k_value > overbought
        ):
            score += 15

    avg_volume = moving_average(frame.volume, volume_lookback)[i]
    if not np.isnan(avg_volume):
        if frame.volume[i] > avg_volume * 1.5:
            score += 15
        elif frame.volume[i] > avg_volume:
            score += 5

    return PatternMatch(
        name=rule.name,
        direction=direction,
        base_score=rule.base_score,
        score=min(100, score),
        needs_confirmation=rule.needs_confirmation,
    )


def candle_pressure(frame: OhlcvFrame, i: int) -> Pressure | None:
    """Buying/selling pressure of bar ``i``; ``None`` for a zero range."""
    r = frame.range(i)
    if not r > 0:
        return None
    return Pressure(
        buying=float((frame.close[i] - frame.low[i]) / r * 100),
        selling=float((frame.high[i] - frame.close[i]) / r * 100),
    )


def volume_change_pct(frame: OhlcvFrame, bar1: int, bar2: int) -> float:
    """Percent volume change from ``bar1`` to ``bar2``; 0 when ``bar1`` has no volume."""
    v1 = frame.volume[bar1]
    v2 = frame.volume[bar2]
    if not v1 > 0:
        return 0.0
    return float((v2 - v1) / v1 * 100)
