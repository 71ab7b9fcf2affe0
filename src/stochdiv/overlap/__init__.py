# src/stochdiv/overlap/__init__.py
"""Rolling window statistics."""

from stochdiv.overlap.rolling import (
    rolling_max,
    rolling_min,
    rolling_argmax,
    rolling_argmin,
    moving_average,
)

__all__ = [
    "rolling_max",
    "rolling_min",
    "rolling_argmax",
    "rolling_argmin",
    "moving_average",
]
