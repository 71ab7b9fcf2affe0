# src/stochdiv/divergence/events.py
"""Event assembly: candidate + score + optional context -> DivergenceEvent."""
from loguru import logger

from stochdiv.config import StochDivConfig
from stochdiv.divergence.models import (
    DivergenceCandidate,
    DivergenceEvent,
    DivergenceKind,
    EventContext,
)
from stochdiv.divergence.strength import StrengthScore, score_divergence
from stochdiv.momentum.stochastic import OscillatorSeries, required_raw_for_cross
from stochdiv.patterns.candles import (
    OhlcvFrame,
    candle_pressure,
    detect_pattern,
    volume_change_pct,
)

ZONE_STREAK_LIMIT = 100


def zone_streak(osc: OscillatorSeries, start: int, kind: DivergenceKind, config: StochDivConfig) -> int:
    """Consecutive bars, walking back from ``start``, with %K in the extreme zone.

    Overbought for bearish divergences, oversold for bullish ones. At most
    ``ZONE_STREAK_LIMIT + 1`` bars are inspected.
    """
    count = 0
    for b in range(start, max(0, start - ZONE_STREAK_LIMIT) - 1, -1):
        k = osc.k_at(b)
        if k is None:
            break
        in_zone = k > config.overbought if kind is DivergenceKind.BEARISH else k < config.oversold
        if not in_zone:
            break
        count += 1
    return count


def score_candidate(
    candidate: DivergenceCandidate,
    osc: OscillatorSeries,
    eval_bar: int,
    config: StochDivConfig,
) -> StrengthScore:
    """Score a candidate with the %K slope taken at ``eval_bar``."""
    return score_divergence(
        candidate.kind,
        candidate.p1.oscillator,
        candidate.p2.oscillator,
        osc.k_slope(eval_bar),
        config.oversold,
        config.overbought,
    )


def build_context(
    candidate: DivergenceCandidate,
    frame: OhlcvFrame,
    osc: OscillatorSeries,
    config: StochDivConfig,
    is_early: bool,
) -> EventContext:
    """Candle pattern, pressure and volume context read at ``p2``."""
    bar = candidate.p2.bar
    return EventContext(
        candle_bar=bar,
        pattern=detect_pattern(
            frame,
            bar,
            osc.k_at(bar),
            config.oversold,
            config.overbought,
            config.trend_lookback,
            config.volume_lookback,
        ),
        pressure=candle_pressure(frame, bar),
        volume_change_pct=None if is_early else volume_change_pct(frame, candidate.p1.bar, bar),
        zone_streak=zone_streak(osc, candidate.p1.bar, candidate.kind, config),
        cross_target=required_raw_for_cross(osc, bar, config.smooth_k) if is_early else None,
    )


def assemble_event(
    candidate: DivergenceCandidate,
    strength: StrengthScore,
    signal_bar: int,
    is_early: bool = False,
    context: EventContext | None = None,
) -> DivergenceEvent:
    """Package a confirmed or early candidate into its final record."""
    event = DivergenceEvent(
        kind=candidate.kind,
        is_early=is_early,
        p1=candidate.p1,
        p2=candidate.p2,
        signal_bar=signal_bar,
        strength=strength,
        context=context,
    )
    logger.debug(
        "{} divergence{} p1={} p2={} signal_bar={} score={}",
        event.kind.value, " (early)" if is_early else "",
        event.p1.bar, event.p2.bar, signal_bar, strength.score,
    )
    return event
