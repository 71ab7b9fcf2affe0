"""
Divergence Detection Module

Stochastic/price divergence detection with strength scoring.

Pipeline:
- pivot: local highs/lows, knowable ``pivot_right`` bars after the pivot
- pairing: historical (batch) and forward (pending/confirm) pairing
- strength: 0-9 score from zone, movement and slope buckets
- events: final event records with candle context
- engine: entry point and the StochDivergence frame feature

Divergence Types:
- Bullish: price lows flat/lower, %K higher (reversal up)
- Bearish: price highs flat/higher, %K lower (reversal down)
"""

from stochdiv.divergence.models import (
    DivergenceCandidate,
    DivergenceEvent,
    DivergenceKind,
    EventContext,
    Pivot,
    SignalType,
)
from stochdiv.divergence.strength import StrengthScore, score_divergence
from stochdiv.divergence.engine import (
    DivergenceResult,
    StochDivergence,
    compute_stoch_divergence,
)

__all__ = [
    "DivergenceCandidate",
    "DivergenceEvent",
    "DivergenceKind",
    "EventContext",
    "Pivot",
    "SignalType",
    "StrengthScore",
    "score_divergence",
    "DivergenceResult",
    "StochDivergence",
    "compute_stoch_divergence",
]
