"""Unit tests for technical indicators."""

import numpy as np
import pytest

from ai_trading.config.settings import Settings
from ai_trading.models.analysis import TrendClassification
from ai_trading.utils.technical_indicators import (
    TechnicalIndicatorCalculator,
    calculate_adx,
    calculate_atr,
    calculate_bollinger_bands,
    calculate_cci,
    calculate_ema,
    calculate_macd,
    calculate_obv,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    calculate_volume_ratio,
    calculate_volume_trend,
    calculate_williams_r,
    classify_trend,
    find_support_resistance,
    last_or,
)


class TestMovingAverages:
    """Test SMA and EMA."""

    def test_sma_tail_aligned(self):
        assert list(calculate_sma([1, 2, 3, 4, 5], 3)) == [2.0, 3.0, 4.0]

    def test_sma_short_input_is_empty(self):
        assert len(calculate_sma([1, 2], 3)) == 0

    def test_ema_seeded_with_first_value(self):
        # period 3 -> multiplier 0.5
        ema = calculate_ema([10.0, 20.0, 20.0], 3)
        assert list(ema) == [10.0, 15.0, 17.5]

    def test_ema_empty_input(self):
        assert len(calculate_ema([], 12)) == 0


class TestOscillators:
    """Test RSI, MACD, Bollinger, Stochastic, Williams %R and CCI."""

    def test_rsi_all_gains_is_100(self):
        rsi = calculate_rsi([float(i) for i in range(1, 20)], 14)
        assert np.all(rsi == 100.0)

    def test_rsi_flat_window_is_neutral(self):
        rsi = calculate_rsi([100.0] * 20, 14)
        assert np.all(rsi == 50.0)

    def test_rsi_balanced_moves(self):
        assert list(calculate_rsi([10.0, 11.0, 10.0], 2)) == [50.0]

    def test_rsi_needs_period_plus_one(self):
        assert len(calculate_rsi([1.0] * 14, 14)) == 0
        assert len(calculate_rsi([1.0] * 15, 14)) == 1

    def test_rsi_bounded(self, noisy_closes):
        rsi = calculate_rsi(noisy_closes, 14)
        assert len(rsi) == len(noisy_closes) - 14
        assert np.all((rsi >= 0) & (rsi <= 100))

    def test_macd_flat_series(self):
        macd, signal, histogram = calculate_macd([100.0] * 60)
        assert len(macd) == 60
        assert histogram[-1] == pytest.approx(0.0, abs=1e-9)
        assert signal[-1] == pytest.approx(0.0, abs=1e-9)

    def test_macd_histogram_is_difference(self, noisy_closes):
        macd, signal, histogram = calculate_macd(noisy_closes)
        np.testing.assert_allclose(histogram, macd - signal)

    def test_bollinger_ordering(self, noisy_closes):
        upper, middle, lower = calculate_bollinger_bands(noisy_closes, 20, 2.0)
        assert len(upper) == len(noisy_closes) - 19
        assert np.all(upper >= middle)
        assert np.all(middle >= lower)

    def test_bollinger_uses_population_std(self):
        upper, middle, lower = calculate_bollinger_bands([1.0, 3.0], 2, 1.0)
        assert middle[0] == 2.0
        assert upper[0] == 3.0
        assert lower[0] == 1.0

    def test_stochastic_zero_range_is_50(self):
        flat = [100.0] * 20
        assert np.all(calculate_stochastic(flat, flat, flat, 14) == 50.0)

    def test_stochastic_close_at_high(self):
        highs = [10.0] * 14
        lows = [5.0] * 14
        closes = [7.0] * 13 + [10.0]
        assert calculate_stochastic(highs, lows, closes, 14)[-1] == 100.0

    def test_williams_zero_range_is_minus_50(self):
        flat = [100.0] * 20
        assert np.all(calculate_williams_r(flat, flat, flat, 14) == -50.0)

    def test_williams_close_at_low(self):
        highs = [10.0] * 14
        lows = [5.0] * 14
        closes = [7.0] * 13 + [5.0]
        assert calculate_williams_r(highs, lows, closes, 14)[-1] == -100.0

    def test_cci_flat_is_zero(self):
        flat = [100.0] * 25
        assert np.all(calculate_cci(flat, flat, flat, 20) == 0.0)

    def test_short_inputs_are_empty(self):
        short = [1.0] * 5
        assert len(calculate_stochastic(short, short, short, 14)) == 0
        assert len(calculate_williams_r(short, short, short, 14)) == 0
        assert len(calculate_cci(short, short, short, 20)) == 0


class TestVolatilityAndTrendStrength:
    """Test ATR and ADX."""

    def test_atr_zero_true_range(self):
        flat = [100.0] * 20
        atr = calculate_atr(flat, flat, flat, 14)
        assert len(atr) == 6
        assert np.all(atr == 0.0)

    def test_atr_constant_range(self):
        closes = [100.0] * 20
        highs = [101.0] * 20
        lows = [99.0] * 20
        assert calculate_atr(highs, lows, closes, 14)[-1] == pytest.approx(2.0)

    def test_atr_needs_period_plus_one_bars(self):
        flat = [100.0] * 14
        assert len(calculate_atr(flat, flat, flat, 14)) == 0

    def test_adx_no_directional_movement(self):
        flat = [100.0] * 30
        assert np.all(calculate_adx(flat, flat, flat, 14) == 25.0)

    def test_adx_one_sided_movement(self):
        highs = [100.0 + i for i in range(30)]
        lows = [99.0 + i for i in range(30)]
        assert calculate_adx(highs, lows, highs, 14)[-1] == 100.0

    def test_adx_short_input_is_empty(self):
        short = [1.0] * 14
        assert len(calculate_adx(short, short, short, 14)) == 0


class TestVolume:
    """Test OBV, volume ratio and volume trend."""

    def test_obv_running_total(self):
        obv = calculate_obv([1.0, 2.0, 2.0, 1.0], [10.0, 20.0, 30.0, 40.0])
        assert list(obv) == [10.0, 30.0, 30.0, -10.0]

    def test_volume_ratio(self):
        assert calculate_volume_ratio(2000.0, [1000.0] * 20) == 2.0

    def test_volume_ratio_divides_by_full_period(self):
        # 10 bars of 1000 average to 500 over a 20-bar period
        assert calculate_volume_ratio(1000.0, [1000.0] * 10) == 2.0

    def test_volume_ratio_without_volume_history(self):
        assert calculate_volume_ratio(1000.0, []) == 1.0
        assert calculate_volume_ratio(1000.0, [0.0] * 20) == 1.0

    def test_volume_trend(self):
        assert calculate_volume_trend([100.0] * 5 + [200.0] * 5) == 1.0

    def test_volume_trend_degenerate(self):
        assert calculate_volume_trend([100.0] * 9) == 0.0
        assert calculate_volume_trend([0.0] * 5 + [200.0] * 5) == 0.0


class TestMarketStructure:
    """Test support/resistance and trend classification."""

    def test_support_resistance_from_pivots(self):
        highs = [100.0] * 30
        highs[10] = 120.0
        lows = [105.0] * 30
        lows[20] = 90.0
        closes = [110.0] * 30

        support, resistance = find_support_resistance(highs, lows, closes)

        assert resistance == 120.0
        assert support == 105.0

    def test_support_resistance_short_series_fallback(self):
        closes = [100.0] * 10
        support, resistance = find_support_resistance(closes, closes, closes)
        assert support == pytest.approx(95.0)
        assert resistance == pytest.approx(105.0)

    def test_support_resistance_no_pivots_beyond_price(self):
        flat = [100.0] * 30
        support, resistance = find_support_resistance(flat, flat, flat)
        assert support == pytest.approx(95.0)
        assert resistance == pytest.approx(105.0)

    @pytest.mark.parametrize(
        "price,sma20,sma50,sma200,expected",
        [
            (110, 105, 100, 95, TrendClassification.STRONG_UPTREND),
            (90, 95, 100, 105, TrendClassification.STRONG_DOWNTREND),
            (110, 100, 105, 120, TrendClassification.UPTREND),
            (90, 100, 95, 80, TrendClassification.DOWNTREND),
            (100, 100, 100, 100, TrendClassification.NEUTRAL),
            (100, 95, 105, 100, TrendClassification.NEUTRAL),
        ],
    )
    def test_classify_trend(self, price, sma20, sma50, sma200, expected):
        assert classify_trend(price, sma20, sma50, sma200) == expected

    def test_last_or_defaults(self):
        assert last_or(np.array([]), 50.0) == 50.0
        assert last_or(np.array([1.0, np.nan]), 50.0) == 50.0
        assert last_or(np.array([1.0, 0.0]), 50.0) == 0.0


class TestTechnicalIndicatorCalculator:
    """Test the indicator snapshot."""

    def test_flat_series_snapshot(self, test_settings: Settings, constant_input):
        snapshot = TechnicalIndicatorCalculator(test_settings).build_snapshot(
            constant_input
        )

        assert snapshot.rsi == 50.0
        assert snapshot.rsi_fast == 50.0
        assert snapshot.adx == 25.0
        assert snapshot.macd_histogram == pytest.approx(0.0, abs=1e-9)
        assert snapshot.trend == TrendClassification.NEUTRAL
        assert snapshot.bollinger_position == 0.5
        assert snapshot.stochastic == 50.0
        assert snapshot.williams_r == -50.0
        assert snapshot.cci == 0.0
        assert snapshot.atr == 0.0
        assert snapshot.volume_ratio == 1.0
        assert snapshot.volume_trend == 0.0
        assert snapshot.sma200 == 100.0
        assert snapshot.price_change_percent == 0.0

    def test_zero_true_range_window(self, test_settings: Settings, build_input):
        snapshot = TechnicalIndicatorCalculator(test_settings).build_snapshot(
            build_input([100.0] * 20)
        )

        assert snapshot.atr == 0.0
        assert snapshot.stochastic == 50.0
        assert snapshot.williams_r == -50.0

    def test_moving_average_fallbacks_use_live_price(
        self, test_settings: Settings, build_input
    ):
        snapshot = TechnicalIndicatorCalculator(test_settings).build_snapshot(
            build_input([100.0] * 30, current_price=101.0)
        )

        assert snapshot.sma50 == 101.0
        assert snapshot.sma200 == 101.0
        assert snapshot.sma20 == pytest.approx(100.0)
        assert snapshot.current_price == 101.0
        assert snapshot.price_change_percent == pytest.approx(1.0)

    def test_weekly_trend(self, test_settings: Settings, build_input):
        snapshot = TechnicalIndicatorCalculator(test_settings).build_snapshot(
            build_input([100.0] * 60, weekly=[100.0, 110.0])
        )
        assert snapshot.weekly_trend == pytest.approx(0.1)

    def test_rising_series_snapshot(self, test_settings: Settings, rising_input):
        snapshot = TechnicalIndicatorCalculator(test_settings).build_snapshot(
            rising_input
        )

        assert snapshot.trend == TrendClassification.STRONG_UPTREND
        assert snapshot.rsi == 100.0
        assert snapshot.macd > snapshot.macd_signal
        assert snapshot.sma20 > snapshot.sma50 > snapshot.sma200

    def test_all_fields_finite(self, test_settings: Settings, noisy_input):
        snapshot = TechnicalIndicatorCalculator(test_settings).build_snapshot(
            noisy_input
        )
        for name, value in snapshot.model_dump().items():
            if isinstance(value, float):
                assert np.isfinite(value), name
