"""Technical indicator calculations for the analysis engine.

Every series function takes plain sequences (oldest first) and returns a
numpy array aligned to the tail of its input. Short inputs yield an empty
array; the calculator substitutes a neutral default for the "current"
reading.
"""

from typing import Sequence, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ai_trading.config.settings import Settings
from ai_trading.models.analysis import IndicatorSnapshot, TrendClassification
from ai_trading.models.market_data import AnalysisInput
from ai_trading.utils.helpers import finite_or, safe_divide

_EMPTY = np.array([], dtype=float)


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def _windows(values: np.ndarray, period: int) -> np.ndarray:
    return sliding_window_view(values, period)


def last_or(series: np.ndarray, default: float) -> float:
    """Latest element of a series, or default when empty or non-finite."""
    if len(series) == 0:
        return default
    return finite_or(series[-1], default)


# Moving averages


def calculate_sma(values: Sequence[float], period: int) -> np.ndarray:
    """Simple moving average, length len - period + 1."""
    data = _as_array(values)
    if period <= 0 or len(data) < period:
        return _EMPTY
    return _windows(data, period).mean(axis=1)


def calculate_ema(values: Sequence[float], period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the first raw value.

    The first output equals values[0]; there is no SMA warm-up, so the
    output has the same length as the input.
    """
    data = _as_array(values)
    if len(data) == 0:
        return _EMPTY

    multiplier = 2 / (period + 1)
    ema = np.empty_like(data)
    ema[0] = data[0]
    for i in range(1, len(data)):
        ema[i] = data[i] * multiplier + ema[i - 1] * (1 - multiplier)
    return ema


# Oscillators


def calculate_rsi(closes: Sequence[float], period: int = 14) -> np.ndarray:
    """
    Relative Strength Index using simple rolling averages of gains and losses.

    Needs period + 1 closes. A window with no losses reads 100; a window
    with neither gains nor losses reads 50.
    """
    data = _as_array(closes)
    if len(data) < period + 1:
        return _EMPTY

    changes = np.diff(data)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    avg_gains = _windows(gains, period).mean(axis=1)
    avg_losses = _windows(losses, period).mean(axis=1)

    rsi = np.empty_like(avg_gains)
    for i, (avg_gain, avg_loss) in enumerate(zip(avg_gains, avg_losses)):
        if avg_loss == 0:
            rsi[i] = 100.0 if avg_gain > 0 else 50.0
        else:
            rsi[i] = 100 - 100 / (1 + avg_gain / avg_loss)
    return rsi


def calculate_macd(
    closes: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    MACD line, signal line and histogram.

    Both EMAs start at index 0 of the same input, so they subtract
    element-wise without re-alignment.
    """
    macd = calculate_ema(closes, fast_period) - calculate_ema(closes, slow_period)
    signal = calculate_ema(macd, signal_period)
    return macd, signal, macd - signal


def calculate_bollinger_bands(
    closes: Sequence[float], period: int = 20, num_std: float = 2.0
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Upper band, middle (SMA) and lower band using population std."""
    data = _as_array(closes)
    if len(data) < period:
        return _EMPTY, _EMPTY, _EMPTY

    windows = _windows(data, period)
    middle = windows.mean(axis=1)
    std = windows.std(axis=1, ddof=0)
    return middle + num_std * std, middle, middle - num_std * std


def calculate_stochastic(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> np.ndarray:
    """Stochastic %K; a zero-range window reads 50."""
    high_arr, low_arr, close_arr = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(high_arr) < period:
        return _EMPTY

    highest = _windows(high_arr, period).max(axis=1)
    lowest = _windows(low_arr, period).min(axis=1)
    current = close_arr[period - 1 :]

    values = np.empty_like(highest)
    for i in range(len(values)):
        price_range = highest[i] - lowest[i]
        values[i] = (
            50.0 if price_range == 0 else (current[i] - lowest[i]) / price_range * 100
        )
    return values


def calculate_williams_r(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> np.ndarray:
    """Williams %R; a zero-range window reads -50."""
    high_arr, low_arr, close_arr = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(high_arr) < period:
        return _EMPTY

    highest = _windows(high_arr, period).max(axis=1)
    lowest = _windows(low_arr, period).min(axis=1)
    current = close_arr[period - 1 :]

    values = np.empty_like(highest)
    for i in range(len(values)):
        price_range = highest[i] - lowest[i]
        values[i] = (
            -50.0
            if price_range == 0
            else (highest[i] - current[i]) / price_range * -100
        )
    return values


def calculate_cci(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 20,
) -> np.ndarray:
    """Commodity Channel Index; zero mean deviation reads 0."""
    high_arr = _as_array(highs)
    if len(high_arr) < period:
        return _EMPTY

    typical = (high_arr + _as_array(lows) + _as_array(closes)) / 3
    windows = _windows(typical, period)
    sma_tp = windows.mean(axis=1)
    mean_dev = np.abs(windows - sma_tp[:, None]).mean(axis=1)
    current = typical[period - 1 :]

    values = np.zeros_like(sma_tp)
    for i in range(len(values)):
        if mean_dev[i] != 0:
            values[i] = (current[i] - sma_tp[i]) / (0.015 * mean_dev[i])
    return values


# Volatility and trend strength


def calculate_true_range(
    highs: Sequence[float], lows: Sequence[float], closes: Sequence[float]
) -> np.ndarray:
    """True range from the second bar onwards."""
    high_arr, low_arr, close_arr = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(high_arr) < 2:
        return _EMPTY

    prev_close = close_arr[:-1]
    return np.maximum.reduce(
        [
            high_arr[1:] - low_arr[1:],
            np.abs(high_arr[1:] - prev_close),
            np.abs(low_arr[1:] - prev_close),
        ]
    )


def calculate_atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> np.ndarray:
    """Average True Range as an SMA of the true range."""
    return calculate_sma(calculate_true_range(highs, lows, closes), period)


def calculate_adx(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> np.ndarray:
    """
    Simplified ADX.

    Directional movement per bar is averaged over a plain rolling window and
    the reading is |DM+ - DM-| / (DM+ + DM-) * 100. This is not Wilder's
    smoothed ADX. A window with no directional movement reads 25.
    """
    high_arr, low_arr = _as_array(highs), _as_array(lows)
    if len(high_arr) < period + 1:
        return _EMPTY

    up_move = np.diff(high_arr)
    down_move = low_arr[:-1] - low_arr[1:]
    dm_plus = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    dm_minus = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    avg_plus = _windows(dm_plus, period).mean(axis=1)
    avg_minus = _windows(dm_minus, period).mean(axis=1)

    values = np.full_like(avg_plus, 25.0)
    for i in range(len(values)):
        total = avg_plus[i] + avg_minus[i]
        if total != 0:
            values[i] = abs(avg_plus[i] - avg_minus[i]) / total * 100
    return values


# Volume


def calculate_obv(closes: Sequence[float], volumes: Sequence[float]) -> np.ndarray:
    """On-Balance Volume seeded with the first volume."""
    close_arr, volume_arr = _as_array(closes), _as_array(volumes)
    if len(close_arr) == 0:
        return _EMPTY

    direction = np.sign(np.diff(close_arr))
    steps = np.concatenate(([volume_arr[0]], direction * volume_arr[1:]))
    return np.cumsum(steps)


def calculate_volume_ratio(
    current_volume: float, volumes: Sequence[float], period: int = 20
) -> float:
    """Current volume against the average of the last `period` volumes."""
    recent = _as_array(volumes)[-period:]
    average = recent.sum() / period
    ratio = safe_divide(current_volume, average, default=1.0)
    return finite_or(ratio, 1.0)


def calculate_volume_trend(volumes: Sequence[float]) -> float:
    """Relative change of the last 5 volumes against the 5 before them."""
    data = _as_array(volumes)
    if len(data) < 10:
        return 0.0

    recent = data[-5:].mean()
    previous = data[-10:-5].mean()
    return safe_divide(recent - previous, previous, default=0.0)


# Market structure


def find_support_resistance(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    lookback: int = 5,
) -> Tuple[float, float]:
    """
    Nearest pivot support and resistance around the latest close.

    A bar is a pivot high when no neighbour within `lookback` bars exceeds
    it (ties allowed), and symmetrically for pivot lows.

    Returns:
        (support, resistance)
    """
    high_arr, low_arr, close_arr = _as_array(highs), _as_array(lows), _as_array(closes)
    reference = float(close_arr[-1])
    fallback = (reference * 0.95, reference * 1.05)
    if len(high_arr) < 20:
        return fallback

    pivot_highs = []
    pivot_lows = []
    for i in range(lookback, len(high_arr) - lookback):
        high_window = high_arr[i - lookback : i + lookback + 1]
        low_window = low_arr[i - lookback : i + lookback + 1]
        if high_window.max() <= high_arr[i]:
            pivot_highs.append(float(high_arr[i]))
        if low_window.min() >= low_arr[i]:
            pivot_lows.append(float(low_arr[i]))

    above = [h for h in pivot_highs if h > reference]
    below = [low for low in pivot_lows if low < reference]
    resistance = min(above) if above else fallback[1]
    support = max(below) if below else fallback[0]
    return support, resistance


def classify_trend(
    price: float, sma20: float, sma50: float, sma200: float
) -> TrendClassification:
    """Classify the trend from price and moving-average ordering."""
    if price > sma20 > sma50 > sma200:
        return TrendClassification.STRONG_UPTREND
    if price < sma20 < sma50 < sma200:
        return TrendClassification.STRONG_DOWNTREND
    if price > sma20 and price > sma50:
        return TrendClassification.UPTREND
    if price < sma20 and price < sma50:
        return TrendClassification.DOWNTREND
    return TrendClassification.NEUTRAL


class TechnicalIndicatorCalculator:
    """Build the indicator snapshot for one analysis input."""

    def __init__(self, settings: Settings):
        """Initialize calculator with settings."""
        self.settings = settings

    def build_snapshot(self, analysis_input: AnalysisInput) -> IndicatorSnapshot:
        """
        Calculate every indicator and keep the reading as of the latest bar.

        Args:
            analysis_input: Symbol, live quote fields and price history

        Returns:
            Immutable indicator snapshot
        """
        s = self.settings
        price = analysis_input.current_price
        closes = analysis_input.closes
        highs = analysis_input.highs
        lows = analysis_input.lows
        volumes = analysis_input.volumes

        rsi = calculate_rsi(closes, s.rsi_period)
        rsi_fast = calculate_rsi(closes, s.rsi_fast_period)
        macd, macd_signal, histogram = calculate_macd(
            closes, s.macd_fast_period, s.macd_slow_period, s.macd_signal_period
        )

        sma20 = calculate_sma(closes, s.sma_short_period)
        sma50 = calculate_sma(closes, s.sma_medium_period)
        sma200 = calculate_sma(closes, s.sma_long_period)
        ema12 = calculate_ema(closes, s.ema_fast_period)
        ema26 = calculate_ema(closes, s.ema_slow_period)

        upper, _, lower = calculate_bollinger_bands(closes, s.bb_period, s.bb_std)
        bb_upper = last_or(upper, price * 1.02)
        bb_lower = last_or(lower, price * 0.98)
        bb_position = finite_or(
            safe_divide(price - bb_lower, bb_upper - bb_lower, default=float("nan")),
            0.5,
        )

        stochastic = calculate_stochastic(highs, lows, closes, s.stochastic_period)
        williams = calculate_williams_r(highs, lows, closes, s.williams_period)
        cci = calculate_cci(highs, lows, closes, s.cci_period)
        atr = calculate_atr(highs, lows, closes, s.atr_period)
        adx = calculate_adx(highs, lows, closes, s.adx_period)
        obv = calculate_obv(closes, volumes)

        if closes:
            support, resistance = find_support_resistance(
                highs, lows, closes, s.pivot_lookback
            )
            trend = classify_trend(
                closes[-1],
                last_or(sma20, closes[-1]),
                last_or(sma50, closes[-1]),
                last_or(sma200, closes[-1]),
            )
        else:
            support, resistance = price * 0.95, price * 1.05
            trend = TrendClassification.NEUTRAL

        weekly = analysis_input.weekly_closes
        weekly_trend = (
            safe_divide(weekly[-1] - weekly[-2], weekly[-2]) if len(weekly) > 1 else 0.0
        )
        price_change_percent = (
            safe_divide(price - closes[-2], closes[-2]) * 100 if len(closes) > 1 else 0.0
        )

        return IndicatorSnapshot(
            rsi=last_or(rsi, 50.0),
            rsi_fast=last_or(rsi_fast, 50.0),
            macd=last_or(macd, 0.0),
            macd_signal=last_or(macd_signal, 0.0),
            macd_histogram=last_or(histogram, 0.0),
            sma20=last_or(sma20, price),
            sma50=last_or(sma50, price),
            sma200=last_or(sma200, price),
            ema12=last_or(ema12, price),
            ema26=last_or(ema26, price),
            bollinger_upper=bb_upper,
            bollinger_lower=bb_lower,
            bollinger_position=bb_position,
            stochastic=last_or(stochastic, 50.0),
            williams_r=last_or(williams, -50.0),
            cci=last_or(cci, 0.0),
            atr=last_or(atr, 0.0),
            adx=last_or(adx, 25.0),
            obv=last_or(obv, 0.0),
            volume_ratio=calculate_volume_ratio(
                analysis_input.current_volume, volumes, s.volume_sma_period
            ),
            volume_trend=finite_or(calculate_volume_trend(volumes), 0.0),
            support=finite_or(support, price * 0.95),
            resistance=finite_or(resistance, price * 1.05),
            trend=trend,
            weekly_trend=finite_or(weekly_trend, 0.0),
            current_price=price,
            price_change_percent=finite_or(price_change_percent, 0.0),
        )
