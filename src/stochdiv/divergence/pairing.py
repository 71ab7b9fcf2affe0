# src/stochdiv/divergence/pairing.py
"""
Divergence Pairing

Pairs pivots of one kind into divergence candidates.

Historical (batch) pairing:
    For every pivot ``p2`` scan older pivots backward. Pivots closer than
    ``min_bars_between_pivots`` are skipped, the scan stops past the profile's
    look-back cap, and the nearest older pivot passing the price and
    oscillator gates wins. Never repaints.

Forward pairing:
    Bars are processed in index order. Each kind keeps an explicit
    :class:`KindState` (last pivot, previous pivot, pending candidate). A new
    knowable pivot shifts last -> previous; a qualifying pair becomes the
    pending candidate, replacing any older one. A pending candidate is
    confirmed by a %K/%D cross in its favour (or immediately when the
    profile does not wait for a cross). On the final bar an early,
    repainting candidate may be produced from the still-unconfirmed extreme.
"""
from dataclasses import dataclass, replace

import numpy as np
from loguru import logger

from stochdiv.config import StochDivConfig
from stochdiv.divergence.models import DivergenceCandidate, DivergenceKind, Pivot
from stochdiv.divergence.pivot import is_trailing_extreme
from stochdiv.momentum.stochastic import OscillatorSeries, k_crosses_d


def price_within_tolerance(p1_price: float, p2_price: float, tolerance: float) -> bool:
    """``|p2 - p1| / p1 <= tolerance``; a zero or undefined base never qualifies."""
    if not p1_price or np.isnan(p1_price) or np.isnan(p2_price):
        return False
    return abs(p2_price - p1_price) / p1_price <= tolerance


def oscillator_diverges(
    kind: DivergenceKind,
    p1_osc: float | None,
    p2_osc: float | None,
    gate: float,
) -> bool:
    """Oscillator moved against price by at least ``gate`` points.

    Bearish needs a lower oscillator at p2, bullish a higher one. With a
    zero gate this is a strict sign test.
    """
    if p1_osc is None or p2_osc is None:
        return False
    diff = p2_osc - p1_osc
    if kind is DivergenceKind.BEARISH:
        return diff < 0 and diff <= -gate
    return diff > 0 and diff >= gate


def qualifies(candidate: DivergenceCandidate, config: StochDivConfig) -> bool:
    """Spacing, look-back cap, price and oscillator gates for one pair."""
    apart = candidate.bars_apart
    if apart < config.min_bars_between_pivots:
        return False
    cap = config.profile.max_bars_apart
    if cap is not None and apart > cap:
        return False
    if not price_within_tolerance(candidate.p1.price, candidate.p2.price, config.price_tolerance):
        return False
    return oscillator_diverges(
        candidate.kind, candidate.p1.oscillator, candidate.p2.oscillator, config.profile.stoch_gate
    )


# =============================================================================
# Historical pairing
# =============================================================================


def pair_historical(
    pivots: list[Pivot],
    kind: DivergenceKind,
    config: StochDivConfig,
) -> list[DivergenceCandidate]:
    """Pair every pivot with its nearest qualifying older pivot.

    Args:
        pivots: Confirmed pivots of one kind, in bar order.
        kind: Kind the pivots produce (bearish for highs, bullish for lows).
        config: Engine configuration; spacing, tolerance and profile gates.

    Returns:
        At most one candidate per ``p2``, in ``p2`` order.
    """
    min_bars = config.min_bars_between_pivots
    cap = config.profile.max_bars_apart
    candidates: list[DivergenceCandidate] = []

    for j in range(1, len(pivots)):
        p2 = pivots[j]
        for p1 in reversed(pivots[:j]):
            apart = p2.bar - p1.bar
            if apart < min_bars:
                continue
            if cap is not None and apart > cap:
                break
            candidate = DivergenceCandidate(kind=kind, p1=p1, p2=p2)
            if qualifies(candidate, config):
                candidates.append(candidate)
                break

    return candidates


# =============================================================================
# Forward pairing
# =============================================================================


@dataclass(frozen=True)
class KindState:
    """Forward-pass state for one divergence kind.

    Attributes:
        kind: Divergence kind tracked by this state.
        last: Most recently confirmed pivot.
        previous: Pivot confirmed before ``last``.
        pending: Qualifying pair awaiting confirmation.
    """

    kind: DivergenceKind
    last: Pivot | None = None
    previous: Pivot | None = None
    pending: DivergenceCandidate | None = None


def register_pivot(state: KindState, pivot: Pivot, config: StochDivConfig) -> KindState:
    """Shift a newly knowable pivot into the state and re-evaluate the pair.

    A qualifying (previous, last) pair becomes the pending candidate and
    overwrites any candidate already pending for this kind.
    """
    state = replace(state, previous=state.last, last=pivot)
    if state.previous is None:
        return state

    candidate = DivergenceCandidate(kind=state.kind, p1=state.previous, p2=state.last)
    if not qualifies(candidate, config):
        return state

    if state.pending is not None:
        logger.debug(
            "{} pending ({}, {}) replaced by ({}, {})",
            state.kind.value, state.pending.p1.bar, state.pending.p2.bar,
            candidate.p1.bar, candidate.p2.bar,
        )
    return replace(state, pending=candidate)


def confirm_pending(
    state: KindState,
    i: int,
    osc: OscillatorSeries,
    wait_for_crossover: bool,
) -> tuple[KindState, DivergenceCandidate | None]:
    """Confirm the pending candidate at bar ``i`` if its trigger fired.

    Bullish candidates need %K crossing above %D, bearish ones %K crossing
    below %D. The pending slot is cleared on confirmation.
    """
    pending = state.pending
    if pending is None or i < pending.p2.bar:
        return state, None
    if wait_for_crossover and not k_crosses_d(osc, i, upward=state.kind is DivergenceKind.BULLISH):
        return state, None
    return replace(state, pending=None), pending


def early_candidate(
    state: KindState,
    i: int,
    price: np.ndarray,
    osc: OscillatorSeries,
    config: StochDivConfig,
) -> DivergenceCandidate | None:
    """Provisional candidate from bar ``i`` against the last confirmed pivot.

    Bar ``i`` must hold the extreme of the trailing ``pivot_left + 1`` bars.
    The result repaints: the next bar may set a new extreme and remove it.
    """
    last = state.last
    if last is None:
        return None
    highs = state.kind is DivergenceKind.BEARISH
    if not is_trailing_extreme(price, i, config.pivot_left + 1, highs):
        return None

    current = Pivot(bar=i, price=float(price[i]), oscillator=osc.k_at(i), known_at=i)
    candidate = DivergenceCandidate(kind=state.kind, p1=last, p2=current)
    if not qualifies(candidate, config):
        return None
    return candidate
