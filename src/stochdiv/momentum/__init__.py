# src/stochdiv/momentum/__init__.py
"""Momentum oscillators.

Modules:
    stochastic - Stochastic %K/%D, crossover helpers
"""

from stochdiv.momentum.stochastic import (
    OscillatorSeries,
    StochMom,
    stochastic,
    cross_over,
    cross_under,
    k_crosses_d,
    required_raw_for_cross,
)

__all__ = [
    "OscillatorSeries",
    "StochMom",
    "stochastic",
    "cross_over",
    "cross_under",
    "k_crosses_d",
    "required_raw_for_cross",
]
