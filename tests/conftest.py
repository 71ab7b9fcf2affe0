"""
StochDiv Test Fixtures

Provides the synthetic OHLCV generator shared by all tests plus small
builders for hand-crafted oscillator scenarios.
Uses sine wave with noise and trend for realistic price movement.
"""

from __future__ import annotations

import numpy as np
import polars as pl
import pytest
from datetime import datetime, timedelta

from stochdiv.momentum.stochastic import OscillatorSeries
from stochdiv.patterns.candles import OhlcvFrame


# =============================================================================
# Constants
# =============================================================================

SEED = 42
DEFAULT_PAIR = "BTCUSDT"
DEFAULT_ROWS = 1000


# =============================================================================
# Single Test Data Generator
# =============================================================================

def generate_test_ohlcv(
    n_rows: int,
    base_price: float = 100.0,
    amplitude: float = 10.0,
    period_bars: int = 100,
    noise_level: float = 0.02,
    trend: float = 0.0001,
    pair: str = DEFAULT_PAIR,
    seed: int = SEED,
) -> pl.DataFrame:
    """
    Generate test OHLCV data: sine wave + noise + trend.

    Args:
        n_rows: Number of rows to generate
        base_price: Center price value (default $100)
        amplitude: Sine wave amplitude (default $10)
        period_bars: Bars per complete sine cycle (default 100)
        noise_level: Price noise as fraction (default 2%)
        trend: Linear trend per bar (default 0.01%)
        pair: Trading pair name
        seed: Random seed for reproducibility

    Returns:
        pl.DataFrame with columns: pair, timestamp, open, high, low, close, volume
    """
    rng = np.random.default_rng(seed)

    start = datetime(2024, 1, 1, 0, 0, 0)
    timestamps = [start + timedelta(minutes=i) for i in range(n_rows)]

    t = np.arange(n_rows)
    base_wave = base_price + amplitude * np.sin(2 * np.pi * t / period_bars) + base_price * trend * t
    close_prices = base_wave + rng.normal(0, base_price * noise_level, n_rows)

    open_prices = np.empty(n_rows)
    open_prices[0] = close_prices[0]
    open_prices[1:] = close_prices[:-1]

    intrabar_range = np.abs(close_prices - open_prices) + base_price * noise_level
    high_prices = np.maximum(open_prices, close_prices) + np.abs(rng.normal(0, intrabar_range * 0.5))
    low_prices = np.minimum(open_prices, close_prices) - np.abs(rng.normal(0, intrabar_range * 0.5))

    # Ensure all prices positive
    min_price = low_prices.min()
    if min_price < 0.01:
        shift = abs(min_price) + 1
        open_prices += shift
        high_prices += shift
        low_prices += shift
        close_prices += shift

    base_volume = 1000.0
    price_changes = np.abs(np.diff(close_prices, prepend=close_prices[0]))
    volume_multiplier = 1 + (price_changes / close_prices) * 5
    volumes = np.abs(rng.normal(base_volume, base_volume * 0.3, n_rows)) * volume_multiplier

    return pl.DataFrame({
        "pair": [pair] * n_rows,
        "timestamp": timestamps,
        "open": open_prices,
        "high": high_prices,
        "low": low_prices,
        "close": close_prices,
        "volume": volumes,
    })


def generate_static_ohlcv(n_rows: int, price: float = 100.0) -> pl.DataFrame:
    """Flat market: every bar opens, closes, tops and bottoms at ``price``."""
    start = datetime(2024, 1, 1, 0, 0, 0)
    return pl.DataFrame({
        "pair": [DEFAULT_PAIR] * n_rows,
        "timestamp": [start + timedelta(minutes=i) for i in range(n_rows)],
        "open": [price] * n_rows,
        "high": [price] * n_rows,
        "low": [price] * n_rows,
        "close": [price] * n_rows,
        "volume": [1000.0] * n_rows,
    })


# =============================================================================
# Scenario Builders
# =============================================================================

def flat_frame(n_rows: int, price: float = 100.0, spread: float = 1.0) -> OhlcvFrame:
    """Doji bars around ``price`` with constant volume."""
    close = np.full(n_rows, price)
    return OhlcvFrame(
        open=close.copy(),
        high=close + spread,
        low=close - spread,
        close=close,
        volume=np.full(n_rows, 1000.0),
    )


def make_oscillator(k: list[float], d: list[float] | None = None) -> OscillatorSeries:
    """Hand-made oscillator; raw mirrors %K."""
    k_arr = np.asarray(k, dtype=np.float64)
    d_arr = np.asarray(d if d is not None else k, dtype=np.float64)
    return OscillatorSeries(raw=k_arr.copy(), k=k_arr, d=d_arr)


# =============================================================================
# Pytest Fixtures
# =============================================================================

@pytest.fixture
def test_data() -> pl.DataFrame:
    """Standard test data for all tests."""
    return generate_test_ohlcv(n_rows=DEFAULT_ROWS)
