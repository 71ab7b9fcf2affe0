# src/stochdiv/overlap/rolling.py
"""Trailing-window statistics over a numeric series.

All functions return arrays aligned with the input; positions where fewer
than ``window`` samples exist, or whose window holds a NaN, are NaN.
Nothing here raises for short input.
"""
from typing import Sequence

import numpy as np
from numba import njit


@njit
def _rolling_extreme(values: np.ndarray, window: int, is_max: bool) -> tuple[np.ndarray, np.ndarray]:
    """Rolling max/min via a monotonic deque kept in a flat index buffer.

    Entries that are equal to or worse than the incoming value are evicted
    from the tail, so on ties the most recent index sits at the head. NaN
    samples never enter the deque; a window holding any NaN is undefined.

    Args:
        values: Input array.
        window: Window length.
        is_max: True for maximum, False for minimum.

    Returns:
        Tuple of (extreme values, index of the extreme; -1 while undefined).
    """
    n = len(values)
    out = np.full(n, np.nan)
    where = np.full(n, -1, dtype=np.int64)
    dq = np.empty(n, dtype=np.int64)
    head = 0
    tail = 0
    missing = 0

    for i in range(n):
        v = values[i]
        if np.isnan(v):
            missing += 1
        if i >= window and np.isnan(values[i - window]):
            missing -= 1

        while tail > head and dq[head] <= i - window:
            head += 1
        if not np.isnan(v):
            if is_max:
                while tail > head and values[dq[tail - 1]] <= v:
                    tail -= 1
            else:
                while tail > head and values[dq[tail - 1]] >= v:
                    tail -= 1
            dq[tail] = i
            tail += 1

        if i >= window - 1 and missing == 0:
            out[i] = values[dq[head]]
            where[i] = dq[head]

    return out, where


@njit
def _moving_average(values: np.ndarray, window: int) -> np.ndarray:
    """Trailing mean with a running sum and a running count of NaNs.

    A window containing any NaN yields NaN; once the NaN leaves the window
    the mean is defined again.
    """
    n = len(values)
    out = np.full(n, np.nan)
    total = 0.0
    missing = 0

    for i in range(n):
        v = values[i]
        if np.isnan(v):
            missing += 1
        else:
            total += v

        if i >= window:
            old = values[i - window]
            if np.isnan(old):
                missing -= 1
            else:
                total -= old

        if i >= window - 1 and missing == 0:
            out[i] = total / window

    return out


def _prepare(series: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    return np.ascontiguousarray(series, dtype=np.float64)


def rolling_max(series: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """Maximum over ``[i - window + 1, i]`` for each index."""
    values = _prepare(series, window)
    return _rolling_extreme(values, window, True)[0]


def rolling_min(series: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """Minimum over ``[i - window + 1, i]`` for each index."""
    values = _prepare(series, window)
    return _rolling_extreme(values, window, False)[0]


def rolling_argmax(series: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """Index of the trailing maximum; the most recent index wins ties, -1 while undefined."""
    values = _prepare(series, window)
    return _rolling_extreme(values, window, True)[1]


def rolling_argmin(series: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """Index of the trailing minimum; the most recent index wins ties, -1 while undefined."""
    values = _prepare(series, window)
    return _rolling_extreme(values, window, False)[1]


def moving_average(series: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """Arithmetic mean over the trailing window, NaN until the window fills."""
    values = _prepare(series, window)
    return _moving_average(values, window)
