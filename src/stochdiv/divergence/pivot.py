# src/stochdiv/divergence/pivot.py
"""
Pivot Detection

Local extrema over a symmetric left/right window.

Policy: strict inequality over the full window. A candidate ``p`` is a pivot
high when no sample in ``[p - left, p + right]`` other than ``p`` is strictly
greater (strictly less for a pivot low). Equal neighbours do not
disqualify, so every bar of a plateau is reported. Windows that would leave
``[0, n)`` or that hold a NaN never qualify.

A pivot at ``p`` is knowable only at bar ``p + right``: the extremum cannot
be confirmed before the following ``right`` bars exist.
"""
from typing import Sequence

import numpy as np
from numba import njit

from stochdiv.divergence.models import Pivot
from stochdiv.momentum.stochastic import OscillatorSeries


@njit
def _pivot_flags(values: np.ndarray, left: int, right: int, is_high: bool) -> np.ndarray:
    """Flag pivot bars (at the pivot index, not the confirmation index)."""
    n = len(values)
    flags = np.zeros(n, dtype=np.bool_)

    for p in range(left, n - right):
        v = values[p]
        if np.isnan(v):
            continue
        ok = True
        for j in range(p - left, p + right + 1):
            if j == p:
                continue
            if np.isnan(values[j]):
                ok = False
                break
            if is_high:
                if values[j] > v:
                    ok = False
                    break
            else:
                if values[j] < v:
                    ok = False
                    break
        flags[p] = ok

    return flags


def _check_window(left: int, right: int) -> None:
    if left < 1 or right < 1:
        raise ValueError(f"left and right must be >= 1, got left={left}, right={right}")


def pivot_high(series: Sequence[float] | np.ndarray, left: int, right: int) -> np.ndarray:
    """Boolean mask of pivot highs, indexed by pivot bar."""
    _check_window(left, right)
    values = np.ascontiguousarray(series, dtype=np.float64)
    return _pivot_flags(values, left, right, True)


def pivot_low(series: Sequence[float] | np.ndarray, left: int, right: int) -> np.ndarray:
    """Boolean mask of pivot lows, indexed by pivot bar."""
    _check_window(left, right)
    values = np.ascontiguousarray(series, dtype=np.float64)
    return _pivot_flags(values, left, right, False)


def find_pivots(
    price: Sequence[float] | np.ndarray,
    osc: OscillatorSeries,
    left: int,
    right: int,
    highs: bool,
) -> list[Pivot]:
    """
    Collect confirmed pivots of one kind in bar order.

    Parameters
    ----------
    price : array-like
        Highs (for ``highs=True``) or lows.
    osc : OscillatorSeries
        Stochastic series; %K at the pivot bar is stored on the pivot.
    left, right : int
        Pivot window.
    highs : bool
        Pivot highs when True, pivot lows otherwise.

    Returns
    -------
    pivots : list of Pivot
        Ordered by bar; ``known_at = bar + right``.
    """
    price = np.asarray(price, dtype=np.float64)
    mask = pivot_high(price, left, right) if highs else pivot_low(price, left, right)
    return [
        Pivot(bar=int(p), price=float(price[p]), oscillator=osc.k_at(int(p)), known_at=int(p) + right)
        for p in np.flatnonzero(mask)
    ]


def pivots_by_confirmation(pivots: list[Pivot], n: int) -> list[Pivot | None]:
    """Map each bar index to the pivot that becomes knowable there."""
    out: list[Pivot | None] = [None] * n
    for pivot in pivots:
        if pivot.known_at < n:
            out[pivot.known_at] = pivot
    return out


def is_trailing_extreme(series: np.ndarray, i: int, length: int, highs: bool) -> bool:
    """Bar ``i`` holds the highest (lowest) value of the last ``length`` bars.

    The window is clipped at the start of the series.
    """
    start = max(0, i - length + 1)
    window = series[start:i + 1]
    if highs:
        return bool(series[i] == np.max(window))
    return bool(series[i] == np.min(window))
