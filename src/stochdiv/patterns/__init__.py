# src/stochdiv/patterns/__init__.py
"""Candlestick pattern and candle pressure context."""

from stochdiv.patterns.candles import (
    CANDLE_RULES,
    CandleRule,
    OhlcvFrame,
    PatternMatch,
    Pressure,
    candle_pressure,
    detect_pattern,
    match_pattern,
    volume_change_pct,
)

__all__ = [
    "CANDLE_RULES",
    "CandleRule",
    "OhlcvFrame",
    "PatternMatch",
    "Pressure",
    "candle_pressure",
    "detect_pattern",
    "match_pattern",
    "volume_change_pct",
]
