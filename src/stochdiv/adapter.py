# src/stochdiv/adapter.py
"""Row-oriented adapter around the divergence engine.

Turns a list of OHLCV rows into the engine's column inputs and reduces the
result to the last oscillator values plus a single last-signal summary.
"""
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
from loguru import logger

from stochdiv.config import MIN_SERIES_LENGTH, StochDivConfig, default_config
from stochdiv.divergence.engine import DivergenceResult, compute_stoch_divergence
from stochdiv.divergence.models import DivergenceEvent, SignalType


@dataclass(frozen=True)
class Bar:
    """One OHLCV row; ``t`` is an epoch timestamp in milliseconds."""

    t: int
    o: float
    h: float
    l: float
    c: float
    v: float


@dataclass(frozen=True)
class StochDivOutput:
    """Summary of one series.

    Attributes:
        stoch_k: %K on the last bar, ``None`` if undefined.
        stoch_d: %D on the last bar, ``None`` if undefined.
        signal: Kind of the most recently produced event.
        annotations: All events in detection order.
    """

    stoch_k: float | None = None
    stoch_d: float | None = None
    signal: SignalType = SignalType.NONE
    annotations: tuple[DivergenceEvent, ...] = field(default_factory=tuple)

    @property
    def last_event(self) -> DivergenceEvent | None:
        return self.annotations[-1] if self.annotations else None


def run_on_series(series: Sequence[Bar], config: StochDivConfig) -> StochDivOutput:
    """Run the engine over OHLCV rows.

    Series shorter than ``MIN_SERIES_LENGTH`` bars are not scanned and
    produce an empty output.
    """
    if len(series) < MIN_SERIES_LENGTH:
        logger.debug("Skipping series of {} bars (minimum {})", len(series), MIN_SERIES_LENGTH)
        return StochDivOutput()

    result = compute_stoch_divergence(
        [r.o for r in series],
        [r.h for r in series],
        [r.l for r in series],
        [r.c for r in series],
        [r.v for r in series],
        [r.t for r in series],
        config,
    )
    return StochDivOutput(
        stoch_k=result.oscillator.k_at(len(series) - 1),
        stoch_d=result.oscillator.d_at(len(series) - 1),
        signal=result.last_signal,
        annotations=result.events,
    )


def compute_with_defaults(
    open: Sequence[float] | np.ndarray,
    high: Sequence[float] | np.ndarray,
    low: Sequence[float] | np.ndarray,
    close: Sequence[float] | np.ndarray,
    volume: Sequence[float] | np.ndarray,
    time: Sequence[int] | np.ndarray,
    profile: str = "historical",
) -> DivergenceResult:
    """Run the engine with the caller-side :data:`~stochdiv.config.DEFAULTS`."""
    return compute_stoch_divergence(open, high, low, close, volume, time, default_config(profile))
