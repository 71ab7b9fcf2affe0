# src/stochdiv/momentum/stochastic.py
"""Stochastic oscillator: raw value, %K and %D.

raw = 100 * (close - lowest_low) / (highest_high - lowest_low)
%K  = SMA(raw, smooth_k)
%D  = SMA(%K, smooth_d)

A zero or non-finite high/low range leaves raw undefined at that bar, so a
flat market yields no oscillator value instead of a division fault.

Reference: George Lane
"""
from dataclasses import dataclass
from typing import ClassVar, Sequence

import numpy as np
import polars as pl

from stochdiv.overlap.rolling import moving_average, rolling_max, rolling_min


def _first_valid(values: np.ndarray) -> int | None:
    idx = np.flatnonzero(~np.isnan(values))
    return int(idx[0]) if len(idx) else None


def _value_at(values: np.ndarray, i: int) -> float | None:
    if i < 0 or i >= len(values):
        return None
    v = values[i]
    return None if np.isnan(v) else float(v)


@dataclass(frozen=True)
class OscillatorSeries:
    """Stochastic series aligned with the bar series.

    Arrays hold NaN where a value is not available. Code outside this module
    reads single values through the ``*_at`` accessors, which return ``None``
    for unavailable values (including out-of-range indices).
    """

    raw: np.ndarray
    k: np.ndarray
    d: np.ndarray

    def __len__(self) -> int:
        return len(self.k)

    def raw_at(self, i: int) -> float | None:
        return _value_at(self.raw, i)

    def k_at(self, i: int) -> float | None:
        return _value_at(self.k, i)

    def d_at(self, i: int) -> float | None:
        return _value_at(self.d, i)

    @property
    def first_valid_k(self) -> int | None:
        """Index at which %K warm-up ends, ``None`` if %K is never defined."""
        return _first_valid(self.k)

    @property
    def first_valid_d(self) -> int | None:
        return _first_valid(self.d)

    def k_slope(self, i: int) -> float | None:
        """``k[i] - k[i-1]``, ``None`` if either side is unavailable."""
        cur = self.k_at(i)
        prev = self.k_at(i - 1)
        if cur is None or prev is None:
            return None
        return cur - prev


def stochastic(
    high: Sequence[float] | np.ndarray,
    low: Sequence[float] | np.ndarray,
    close: Sequence[float] | np.ndarray,
    k_length: int,
    smooth_k: int,
    smooth_d: int,
) -> OscillatorSeries:
    """Compute raw stochastic, %K and %D.

    Args:
        high: High prices.
        low: Low prices.
        close: Close prices.
        k_length: Look-back for the highest high / lowest low.
        smooth_k: SMA length for %K.
        smooth_d: SMA length for %D.

    Returns:
        OscillatorSeries with arrays of the input length.
    """
    high = np.asarray(high, dtype=np.float64)
    low = np.asarray(low, dtype=np.float64)
    close = np.asarray(close, dtype=np.float64)

    lowest = rolling_min(low, k_length)
    highest = rolling_max(high, k_length)
    denom = highest - lowest

    raw = np.full(len(close), np.nan)
    valid = np.isfinite(denom) & (denom != 0)
    raw[valid] = (close[valid] - lowest[valid]) / denom[valid] * 100

    k = moving_average(raw, smooth_k)
    d = moving_average(k, smooth_d)
    return OscillatorSeries(raw=raw, k=k, d=d)


def cross_over(prev_a: float | None, cur_a: float | None,
               prev_b: float | None, cur_b: float | None) -> bool:
    """``a`` crosses above ``b`` between two consecutive bars."""
    if None in (prev_a, cur_a, prev_b, cur_b):
        return False
    return prev_a <= prev_b and cur_a > cur_b


def cross_under(prev_a: float | None, cur_a: float | None,
                prev_b: float | None, cur_b: float | None) -> bool:
    """``a`` crosses below ``b`` between two consecutive bars."""
    if None in (prev_a, cur_a, prev_b, cur_b):
        return False
    return prev_a >= prev_b and cur_a < cur_b


def k_crosses_d(osc: OscillatorSeries, i: int, upward: bool) -> bool:
    """%K crosses %D at bar ``i`` (above when ``upward``, else below)."""
    if i < 1:
        return False
    args = (osc.k_at(i - 1), osc.k_at(i), osc.d_at(i - 1), osc.d_at(i))
    return cross_over(*args) if upward else cross_under(*args)


def required_raw_for_cross(osc: OscillatorSeries, i: int, smooth_k: int) -> float | None:
    """Raw stochastic value at bar ``i`` that would put %K exactly on %D.

    Inverts the last SMA step only: ``d[i] * smooth_k`` minus the previous
    ``smooth_k - 1`` raw values.
    """
    target = osc.d_at(i)
    if target is None:
        return None
    total = 0.0
    for j in range(1, smooth_k):
        prev = osc.raw_at(i - j)
        if prev is None:
            return None
        total += prev
    return target * smooth_k - total


@dataclass
class StochMom:
    """Stochastic Oscillator as a frame feature.

    Adds ``stoch_k_{k_period}`` and ``stoch_d_{k_period}`` columns to an
    OHLC DataFrame. Undefined values are written as nulls.

    Bounded [0, 100].
    """

    k_period: int = 12
    smooth_k: int = 3
    d_period: int = 3

    requires: ClassVar[list[str]] = ["high", "low", "close"]
    outputs: ClassVar[list[str]] = ["stoch_k_{k_period}", "stoch_d_{k_period}"]

    def compute(self, df: pl.DataFrame) -> OscillatorSeries:
        return stochastic(
            df["high"].to_numpy(),
            df["low"].to_numpy(),
            df["close"].to_numpy(),
            self.k_period,
            self.smooth_k,
            self.d_period,
        )

    def compute_pair(self, df: pl.DataFrame) -> pl.DataFrame:
        osc = self.compute(df)
        col_k, col_d = self.output_names()
        return df.with_columns([
            pl.Series(name=col_k, values=osc.k, nan_to_null=True),
            pl.Series(name=col_d, values=osc.d, nan_to_null=True),
        ])

    def output_names(self) -> tuple[str, str]:
        return f"stoch_k_{self.k_period}", f"stoch_d_{self.k_period}"

    test_params: ClassVar[list[dict]] = [
        {"k_period": 12, "smooth_k": 3, "d_period": 3},
        {"k_period": 14, "smooth_k": 3, "d_period": 3},
        {"k_period": 60, "smooth_k": 10, "d_period": 10},
    ]

    @property
    def warmup(self) -> int:
        """Minimum bars needed for the first defined %D."""
        return self.k_period + self.smooth_k + self.d_period - 2
