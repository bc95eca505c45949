"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta
from typing import List

import numpy as np
import pytest
from loguru import logger

from ai_trading.config.settings import Settings
from ai_trading.models.analysis import IndicatorSnapshot, TrendClassification
from ai_trading.models.market_data import AnalysisInput, PriceBar, WeeklyClose
from ai_trading.services.analysis_service import AnalysisService


def make_bars(
    closes: List[float],
    spread: float = 0.0,
    volume: float = 1_000_000,
) -> List[PriceBar]:
    """Bars around the given closes with highs/lows `spread` away."""
    base_date = datetime(2024, 1, 1)
    return [
        PriceBar(
            timestamp=base_date + timedelta(days=i),
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=volume,
        )
        for i, close in enumerate(closes)
    ]


def make_input(
    closes: List[float],
    spread: float = 0.0,
    current_price: float = None,
    current_volume: float = 1_000_000,
    daily_change_percent: float = 0.0,
    weekly: List[float] = None,
    symbol: str = "TEST",
) -> AnalysisInput:
    """AnalysisInput built from a close series."""
    return AnalysisInput(
        symbol=symbol,
        current_price=current_price if current_price is not None else closes[-1],
        current_volume=current_volume,
        daily_change_percent=daily_change_percent,
        daily_series=make_bars(closes, spread=spread),
        weekly_series=[WeeklyClose(close=c) for c in (weekly or [])],
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        supabase_url="",
        supabase_service_role_key="",
        log_level="DEBUG",
        random_seed=42,
        yf_min_request_delay=0.0,
        yf_initial_backoff=0.0,
    )


@pytest.fixture
def log_records():
    """Loguru records emitted while the test runs."""
    records = []
    handler_id = logger.add(
        lambda message: records.append(message.record), level="DEBUG", format="{message}"
    )
    yield records
    logger.remove(handler_id)


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random source."""
    return np.random.default_rng(1234)


@pytest.fixture
def analysis_service(test_settings: Settings) -> AnalysisService:
    """Analysis engine under test."""
    return AnalysisService(test_settings)


@pytest.fixture
def constant_closes() -> List[float]:
    """60 identical closes at 100."""
    return [100.0] * 60


@pytest.fixture
def rising_closes() -> List[float]:
    """200 closes rising linearly from 100 to 160."""
    return list(np.linspace(100.0, 160.0, 200))


@pytest.fixture
def noisy_closes() -> List[float]:
    """120 closes following a seeded random walk."""
    walk = np.random.default_rng(7).normal(0, 0.015, 120)
    return list(100.0 * np.cumprod(1 + walk))


@pytest.fixture
def constant_input(constant_closes: List[float]) -> AnalysisInput:
    """Flat price and flat volume."""
    return make_input(constant_closes)


@pytest.fixture
def rising_input(rising_closes: List[float]) -> AnalysisInput:
    """Steady uptrend with steady volume."""
    return make_input(rising_closes, spread=0.5, weekly=[150.0, 155.0, 160.0])


@pytest.fixture
def noisy_input(noisy_closes: List[float]) -> AnalysisInput:
    """Random-walk prices with a 1% high/low spread."""
    return make_input(noisy_closes, spread=1.0)


@pytest.fixture
def build_input():
    """Factory for AnalysisInput from a close series."""
    return make_input


@pytest.fixture
def build_bars():
    """Factory for PriceBar lists from a close series."""
    return make_bars


NEUTRAL_READINGS = dict(
    rsi=50.0,
    rsi_fast=50.0,
    macd=0.0,
    macd_signal=0.0,
    macd_histogram=0.0,
    sma20=100.0,
    sma50=100.0,
    sma200=100.0,
    ema12=100.0,
    ema26=100.0,
    bollinger_upper=102.0,
    bollinger_lower=98.0,
    bollinger_position=0.5,
    stochastic=50.0,
    williams_r=-50.0,
    cci=0.0,
    atr=0.0,
    adx=25.0,
    obv=0.0,
    volume_ratio=1.0,
    volume_trend=0.0,
    support=95.0,
    resistance=105.0,
    trend=TrendClassification.NEUTRAL,
    weekly_trend=0.0,
    current_price=100.0,
    price_change_percent=0.0,
)


@pytest.fixture
def build_snapshot():
    """Factory for an IndicatorSnapshot with neutral readings plus overrides."""

    def _build(**overrides) -> IndicatorSnapshot:
        return IndicatorSnapshot(**{**NEUTRAL_READINGS, **overrides})

    return _build
