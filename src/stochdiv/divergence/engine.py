# src/stochdiv/divergence/engine.py
"""
Stochastic Divergence Engine

Runs the full pipeline over one complete OHLCV series:

    OHLC -> raw/%K/%D -> pivots on highs and lows -> pairing -> scoring -> events

The pairing strategy comes from ``config.profile``. The engine is pure: no
clock, no randomness, no state kept between calls, so identical inputs give
identical output.
"""
from dataclasses import dataclass, field
from typing import Any, ClassVar, Sequence

import numpy as np
import polars as pl
from loguru import logger

from stochdiv.config import (
    DEFAULTS,
    StochDivConfig,
    get_profile,
)
from stochdiv.divergence.events import (
    assemble_event,
    build_context,
    score_candidate,
)
from stochdiv.divergence.models import (
    DivergenceCandidate,
    DivergenceEvent,
    DivergenceKind,
    Pivot,
    SignalType,
)
from stochdiv.divergence.pairing import (
    KindState,
    confirm_pending,
    early_candidate,
    pair_historical,
    register_pivot,
)
from stochdiv.divergence.pivot import find_pivots, pivots_by_confirmation
from stochdiv.errors import InputShapeError
from stochdiv.momentum.stochastic import OscillatorSeries, stochastic
from stochdiv.patterns.candles import OhlcvFrame

ArrayLike = Sequence[float] | np.ndarray


def _scalar(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


@dataclass(frozen=True)
class DivergenceResult:
    """Engine output: oscillator series and events in detection order."""

    oscillator: OscillatorSeries
    events: tuple[DivergenceEvent, ...]
    time: np.ndarray

    @property
    def k(self) -> np.ndarray:
        return self.oscillator.k

    @property
    def d(self) -> np.ndarray:
        return self.oscillator.d

    @property
    def last_signal(self) -> SignalType:
        """Kind of the most recently produced event."""
        if not self.events:
            return SignalType.NONE
        return SignalType.from_kind(self.events[-1].kind)

    def events_frame(self) -> pl.DataFrame:
        """Events as a DataFrame, with the input times of p1, p2 and the signal bar."""
        rows = []
        for event in self.events:
            row = event.to_dict()
            row["p1_time"] = _scalar(self.time[event.p1.bar])
            row["p2_time"] = _scalar(self.time[event.p2.bar])
            row["signal_time"] = _scalar(self.time[event.signal_bar])
            rows.append(row)
        return pl.DataFrame(rows)


def _empty_result() -> DivergenceResult:
    empty = np.array([], dtype=np.float64)
    return DivergenceResult(
        oscillator=OscillatorSeries(raw=empty, k=empty.copy(), d=empty.copy()),
        events=(),
        time=np.array([], dtype=np.int64),
    )


def _check_shapes(**series: Any) -> int:
    lengths = {name: len(values) for name, values in series.items()}
    if len(set(lengths.values())) > 1:
        logger.warning("Rejecting input with unequal lengths: {}", lengths)
        raise InputShapeError(lengths)
    return lengths["close"]


# =============================================================================
# Historical strategy
# =============================================================================


def _run_historical(
    highs: list[Pivot],
    lows: list[Pivot],
    frame: OhlcvFrame,
    osc: OscillatorSeries,
    config: StochDivConfig,
) -> list[DivergenceEvent]:
    events: list[DivergenceEvent] = []
    for pivots, kind in ((highs, DivergenceKind.BEARISH), (lows, DivergenceKind.BULLISH)):
        for candidate in pair_historical(pivots, kind, config):
            events.append(assemble_event(
                candidate,
                score_candidate(candidate, osc, candidate.p2.bar, config),
                signal_bar=candidate.p2.known_at,
                context=build_context(candidate, frame, osc, config, is_early=False),
            ))
    return events


# =============================================================================
# Forward strategy
# =============================================================================


@dataclass(frozen=True)
class ForwardState:
    """Per-kind state carried from one bar to the next."""

    bearish: KindState = field(default_factory=lambda: KindState(DivergenceKind.BEARISH))
    bullish: KindState = field(default_factory=lambda: KindState(DivergenceKind.BULLISH))

    def get(self, kind: DivergenceKind) -> KindState:
        return self.bearish if kind is DivergenceKind.BEARISH else self.bullish

    def with_kind(self, state: KindState) -> "ForwardState":
        if state.kind is DivergenceKind.BEARISH:
            return ForwardState(bearish=state, bullish=self.bullish)
        return ForwardState(bearish=self.bearish, bullish=state)


@dataclass(frozen=True)
class ForwardInputs:
    """Read-only per-series data used by every forward step."""

    frame: OhlcvFrame
    osc: OscillatorSeries
    config: StochDivConfig
    high_at: list[Pivot | None]
    low_at: list[Pivot | None]

    def price(self, kind: DivergenceKind) -> np.ndarray:
        return self.frame.high if kind is DivergenceKind.BEARISH else self.frame.low

    def pivot_known_at(self, kind: DivergenceKind, i: int) -> Pivot | None:
        table = self.high_at if kind is DivergenceKind.BEARISH else self.low_at
        return table[i]


def _event(inputs: ForwardInputs, candidate: DivergenceCandidate, i: int, is_early: bool) -> DivergenceEvent:
    return assemble_event(
        candidate,
        score_candidate(candidate, inputs.osc, i, inputs.config),
        signal_bar=i,
        is_early=is_early,
        context=build_context(candidate, inputs.frame, inputs.osc, inputs.config, is_early),
    )


def forward_step(
    state: ForwardState,
    i: int,
    inputs: ForwardInputs,
) -> tuple[ForwardState, list[DivergenceEvent]]:
    """Advance the forward state machine by one bar.

    Order within a bar: register newly knowable pivots, emit early signals
    (last bar only), then confirm pending candidates.
    """
    config = inputs.config
    events: list[DivergenceEvent] = []

    for kind in (DivergenceKind.BEARISH, DivergenceKind.BULLISH):
        pivot = inputs.pivot_known_at(kind, i)
        if pivot is not None:
            state = state.with_kind(register_pivot(state.get(kind), pivot, config))

    if config.enable_early and i == len(inputs.frame) - 1:
        for kind in (DivergenceKind.BEARISH, DivergenceKind.BULLISH):
            candidate = early_candidate(state.get(kind), i, inputs.price(kind), inputs.osc, config)
            if candidate is not None:
                events.append(_event(inputs, candidate, i, is_early=True))

    for kind in (DivergenceKind.BULLISH, DivergenceKind.BEARISH):
        kind_state, confirmed = confirm_pending(
            state.get(kind), i, inputs.osc, config.profile.wait_for_crossover
        )
        state = state.with_kind(kind_state)
        if confirmed is not None:
            events.append(_event(inputs, confirmed, i, is_early=False))

    return state, events


def _run_forward(
    highs: list[Pivot],
    lows: list[Pivot],
    frame: OhlcvFrame,
    osc: OscillatorSeries,
    config: StochDivConfig,
) -> list[DivergenceEvent]:
    n = len(frame)
    inputs = ForwardInputs(
        frame=frame,
        osc=osc,
        config=config,
        high_at=pivots_by_confirmation(highs, n),
        low_at=pivots_by_confirmation(lows, n),
    )
    state = ForwardState()
    events: list[DivergenceEvent] = []
    for i in range(n):
        state, produced = forward_step(state, i, inputs)
        events.extend(produced)
    return events


# =============================================================================
# Entry point
# =============================================================================


def compute_stoch_divergence(
    open: ArrayLike,
    high: ArrayLike,
    low: ArrayLike,
    close: ArrayLike,
    volume: ArrayLike,
    time: ArrayLike,
    config: StochDivConfig,
) -> DivergenceResult:
    """Detect stochastic/price divergences over one complete series.

    Parameters
    ----------
    open, high, low, close, volume : array-like
        OHLCV data, index-aligned.
    time : array-like
        Bar timestamps, passed through untouched.
    config : StochDivConfig
        Complete configuration; the engine applies no defaults.

    Returns
    -------
    result : DivergenceResult
        %K/%D series and events in detection order.

    Raises
    ------
    InputShapeError
        If the six sequences do not share one length.
    """
    n = _check_shapes(open=open, high=high, low=low, close=close, volume=volume, time=time)
    if n == 0:
        return _empty_result()

    frame = OhlcvFrame.from_sequences(open, high, low, close, volume)
    osc = stochastic(frame.high, frame.low, frame.close,
                     config.stoch_length, config.smooth_k, config.smooth_d)

    highs = find_pivots(frame.high, osc, config.pivot_left, config.pivot_right, highs=True)
    lows = find_pivots(frame.low, osc, config.pivot_left, config.pivot_right, highs=False)
    logger.debug(
        "Scanning {} bars with profile '{}': {} pivot highs, {} pivot lows",
        n, config.profile.name, len(highs), len(lows),
    )

    if config.profile.strategy == "historical":
        events = _run_historical(highs, lows, frame, osc, config)
    else:
        events = _run_forward(highs, lows, frame, osc, config)

    return DivergenceResult(oscillator=osc, events=tuple(events), time=np.asarray(time))


# =============================================================================
# Frame feature
# =============================================================================


@dataclass
class StochDivergence:
    """
    Stochastic Divergence Detector

    Identifies regular divergences between price pivots and the stochastic
    %K line and scores them.

    Divergence Types:
    -----------------
    1. Bullish: price lows flat or lower, %K higher
       - Strength increased when %K at the first low was below oversold
    2. Bearish: price highs flat or higher, %K lower
       - Strength increased when %K at the first high was above overbought

    Parameters
    ----------
    stoch_length : int, default 12
        Stochastic look-back
    smooth_k, smooth_d : int, default 3
        %K and %D smoothing
    pivot_left, pivot_right : int, default 5, 1
        Pivot window
    price_tolerance : float, default 0.012
        Max relative price difference between the two pivots (1.2%)
    min_bars_between_pivots : int, default 7
        Minimum bar spacing of the two pivots
    profile : str, default "historical"
        Pairing profile name ("historical" or "forward")

    Returns
    -------
    DataFrame with columns:
    - stoch_k_{stoch_length}, stoch_d_{stoch_length} : oscillator values
    - stoch_div_bullish, stoch_div_bearish : event produced at this bar
    - stoch_div_early : an early (repainting) event was produced at this bar
    - stoch_div_strength : 0-9 strength of the event at this bar

    Examples
    --------
    >>> div = StochDivergence(profile="forward")
    >>> df = div.compute_pair(df)
    >>> strong = df.filter(pl.col("stoch_div_strength") >= 6)
    """

    stoch_length: int = DEFAULTS["stoch_length"]
    smooth_k: int = DEFAULTS["smooth_k"]
    smooth_d: int = DEFAULTS["smooth_d"]
    oversold: float = DEFAULTS["oversold"]
    overbought: float = DEFAULTS["overbought"]
    pivot_left: int = DEFAULTS["pivot_left"]
    pivot_right: int = DEFAULTS["pivot_right"]
    price_tolerance: float = DEFAULTS["price_tolerance"]
    min_bars_between_pivots: int = DEFAULTS["min_bars_between_pivots"]
    enable_early: bool = DEFAULTS["enable_early"]
    volume_lookback: int = DEFAULTS["volume_lookback"]
    trend_lookback: int = DEFAULTS["trend_lookback"]
    profile: str = "historical"
    ts_col: str = "timestamp"

    requires: ClassVar[list[str]] = ["open", "high", "low", "close", "volume"]

    outputs: ClassVar[list[str]] = [
        "stoch_k_{stoch_length}",
        "stoch_d_{stoch_length}",
        "stoch_div_bullish",
        "stoch_div_bearish",
        "stoch_div_early",
        "stoch_div_strength",
    ]

    test_params: ClassVar[list[dict]] = [
        {"stoch_length": 12, "pivot_left": 5, "pivot_right": 1},
        {"stoch_length": 14, "pivot_left": 3, "pivot_right": 2, "profile": "forward"},
        {"stoch_length": 9, "min_bars_between_pivots": 10, "price_tolerance": 0.02},
    ]

    def __post_init__(self) -> None:
        self.build_config()

    def build_config(self) -> StochDivConfig:
        """Engine config from the current field values.

        Raises ValueError for invalid parameters and KeyError for an unknown
        profile name.
        """
        return StochDivConfig(
            stoch_length=self.stoch_length,
            smooth_k=self.smooth_k,
            smooth_d=self.smooth_d,
            oversold=self.oversold,
            overbought=self.overbought,
            pivot_left=self.pivot_left,
            pivot_right=self.pivot_right,
            price_tolerance=self.price_tolerance,
            min_bars_between_pivots=self.min_bars_between_pivots,
            enable_early=self.enable_early,
            profile=get_profile(self.profile),
            volume_lookback=self.volume_lookback,
            trend_lookback=self.trend_lookback,
        )

    @property
    def config(self) -> StochDivConfig:
        return self.build_config()

    def detect(self, df: pl.DataFrame) -> DivergenceResult:
        """Run the engine on a single-pair OHLCV DataFrame."""
        if self.ts_col in df.columns:
            time = df[self.ts_col].to_numpy()
        else:
            time = np.arange(len(df), dtype=np.int64)
        return compute_stoch_divergence(
            df["open"].to_numpy(),
            df["high"].to_numpy(),
            df["low"].to_numpy(),
            df["close"].to_numpy(),
            df["volume"].to_numpy(),
            time,
            self.config,
        )

    def compute_pair(self, df: pl.DataFrame) -> pl.DataFrame:
        """
        Compute the stochastic and mark divergence events.

        Parameters
        ----------
        df : pl.DataFrame
            Input dataframe with OHLCV data

        Returns
        -------
        df : pl.DataFrame
            Dataframe with oscillator and divergence columns added
        """
        result = self.detect(df)
        n = len(df)

        bullish = np.zeros(n, dtype=bool)
        bearish = np.zeros(n, dtype=bool)
        early = np.zeros(n, dtype=bool)
        strength = np.zeros(n, dtype=np.int8)

        for event in result.events:
            bar = event.signal_bar
            if event.kind is DivergenceKind.BULLISH:
                bullish[bar] = True
            else:
                bearish[bar] = True
            early[bar] |= event.is_early
            strength[bar] = max(strength[bar], event.score)

        return df.with_columns([
            pl.Series(f"stoch_k_{self.stoch_length}", result.k, nan_to_null=True),
            pl.Series(f"stoch_d_{self.stoch_length}", result.d, nan_to_null=True),
            pl.Series("stoch_div_bullish", bullish),
            pl.Series("stoch_div_bearish", bearish),
            pl.Series("stoch_div_early", early),
            pl.Series("stoch_div_strength", strength),
        ])

    @property
    def warmup(self) -> int:
        """Minimum bars needed before the first pivot can be paired."""
        return self.build_config().warmup + self.pivot_left + self.pivot_right + self.min_bars_between_pivots
