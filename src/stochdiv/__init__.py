from loguru import logger

from stochdiv.config import (
    DEFAULTS,
    FORWARD_PROFILE,
    HISTORICAL_PROFILE,
    PairingProfile,
    StochDivConfig,
    default_config,
    get_profile,
)
from stochdiv.errors import InputShapeError
from stochdiv.momentum import StochMom
from stochdiv.divergence import (
    DivergenceEvent,
    DivergenceKind,
    DivergenceResult,
    SignalType,
    StochDivergence,
    compute_stoch_divergence,
)
from stochdiv.adapter import Bar, StochDivOutput, compute_with_defaults, run_on_series

logger.disable("stochdiv")

__all__ = [
    "DEFAULTS",
    "FORWARD_PROFILE",
    "HISTORICAL_PROFILE",
    "PairingProfile",
    "StochDivConfig",
    "default_config",
    "get_profile",
    "InputShapeError",
    "StochMom",
    "DivergenceEvent",
    "DivergenceKind",
    "DivergenceResult",
    "SignalType",
    "StochDivergence",
    "compute_stoch_divergence",
    "Bar",
    "StochDivOutput",
    "compute_with_defaults",
    "run_on_series",
]
