"""Chart pattern detection over trailing price windows."""

from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from ai_trading.models.analysis import Pattern, PatternSignal, PatternType


def calculate_trend_line(values: Sequence[float]) -> Tuple[float, float]:
    """
    Least-squares line through values indexed 0..n-1.

    Returns:
        (slope, intercept)
    """
    y = np.asarray(values, dtype=float)
    n = len(y)
    x = np.arange(n, dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_xx = (x * x).sum()

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0, float(sum_y / n) if n else 0.0

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return float(slope), float(intercept)


class PatternService:
    """Detect chart patterns from closes, highs and lows."""

    DOUBLE_WINDOW = 10
    TRIANGLE_WINDOW = 15
    HEAD_SHOULDERS_WINDOW = 15
    BREAKOUT_WINDOW = 20
    MOMENTUM_WINDOW = 10

    DOUBLE_TOLERANCE = 0.02
    SHOULDER_TOLERANCE = 0.05
    BREAKOUT_MARGIN = 0.005
    MOMENTUM_THRESHOLD = 0.02

    def detect_patterns(
        self,
        closes: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
    ) -> List[Pattern]:
        """
        Run every detector and collect the patterns found.

        Each detector has its own minimum window and is skipped below it.
        Output order is double top, double bottom, triangle,
        head-and-shoulders, breakout, momentum.
        """
        candidates = [
            self.detect_double_top(highs),
            self.detect_double_bottom(lows),
            self.detect_triangle(highs, lows),
            self.detect_head_and_shoulders(highs),
            self.detect_breakout(closes, highs, lows),
            self.detect_momentum(closes),
        ]
        patterns = [p for p in candidates if p is not None]

        if patterns:
            logger.debug(
                f"Detected patterns: {', '.join(p.type.value for p in patterns)}"
            )
        return patterns

    def detect_double_top(self, highs: Sequence[float]) -> Optional[Pattern]:
        """Two recent peaks within 2% of each other."""
        if len(highs) < self.DOUBLE_WINDOW:
            return None

        recent = list(highs)[-self.DOUBLE_WINDOW :]
        peaks = [
            recent[i]
            for i in range(1, len(recent) - 1)
            if recent[i] > recent[i - 1] and recent[i] > recent[i + 1]
        ]
        if len(peaks) >= 2 and self._within(peaks[-2], peaks[-1], self.DOUBLE_TOLERANCE):
            return Pattern(
                type=PatternType.DOUBLE_TOP,
                strength=0.7,
                signal=PatternSignal.BEARISH,
            )
        return None

    def detect_double_bottom(self, lows: Sequence[float]) -> Optional[Pattern]:
        """Two recent troughs within 2% of each other."""
        if len(lows) < self.DOUBLE_WINDOW:
            return None

        recent = list(lows)[-self.DOUBLE_WINDOW :]
        troughs = [
            recent[i]
            for i in range(1, len(recent) - 1)
            if recent[i] < recent[i - 1] and recent[i] < recent[i + 1]
        ]
        if len(troughs) >= 2 and self._within(
            troughs[-2], troughs[-1], self.DOUBLE_TOLERANCE
        ):
            return Pattern(
                type=PatternType.DOUBLE_BOTTOM,
                strength=0.7,
                signal=PatternSignal.BULLISH,
            )
        return None

    def detect_triangle(
        self, highs: Sequence[float], lows: Sequence[float]
    ) -> Optional[Pattern]:
        """Falling highs and rising lows over the last 15 bars."""
        if len(highs) < self.TRIANGLE_WINDOW or len(lows) < self.TRIANGLE_WINDOW:
            return None

        high_slope, _ = calculate_trend_line(list(highs)[-self.TRIANGLE_WINDOW :])
        low_slope, _ = calculate_trend_line(list(lows)[-self.TRIANGLE_WINDOW :])

        if high_slope < 0 and low_slope > 0:
            return Pattern(
                type=PatternType.TRIANGLE,
                strength=0.6,
                signal=PatternSignal.CONSOLIDATION,
            )
        return None

    def detect_head_and_shoulders(self, highs: Sequence[float]) -> Optional[Pattern]:
        """
        Head above both shoulders, shoulders within 5% of each other.

        Peaks use a 5-point comparison; the last three peaks are taken as
        left shoulder, head and right shoulder.
        """
        if len(highs) < self.HEAD_SHOULDERS_WINDOW:
            return None

        recent = list(highs)[-self.HEAD_SHOULDERS_WINDOW :]
        peaks = [
            recent[i]
            for i in range(2, len(recent) - 2)
            if recent[i] > recent[i - 1]
            and recent[i] > recent[i + 1]
            and recent[i] > recent[i - 2]
            and recent[i] > recent[i + 2]
        ]
        if len(peaks) < 3:
            return None

        left, head, right = peaks[-3:]
        if (
            head > left
            and head > right
            and self._within(left, right, self.SHOULDER_TOLERANCE)
        ):
            return Pattern(
                type=PatternType.HEAD_SHOULDERS,
                strength=0.8,
                signal=PatternSignal.BEARISH,
            )
        return None

    def detect_breakout(
        self,
        closes: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
    ) -> Optional[Pattern]:
        """Latest close clears the 18-bar range that precedes the last 2 bars."""
        if min(len(closes), len(highs), len(lows)) < self.BREAKOUT_WINDOW:
            return None

        current = closes[-1]
        resistance = max(list(highs)[-self.BREAKOUT_WINDOW : -2])
        support = min(list(lows)[-self.BREAKOUT_WINDOW : -2])

        if current > resistance * (1 + self.BREAKOUT_MARGIN):
            return Pattern(
                type=PatternType.BREAKOUT_UP,
                strength=0.8,
                signal=PatternSignal.BULLISH,
            )
        if current < support * (1 - self.BREAKOUT_MARGIN):
            return Pattern(
                type=PatternType.BREAKDOWN,
                strength=0.8,
                signal=PatternSignal.BEARISH,
            )
        return None

    def detect_momentum(self, closes: Sequence[float]) -> Optional[Pattern]:
        """Average daily return over the last 10 closes beyond +/-2%."""
        if len(closes) < self.MOMENTUM_WINDOW:
            return None

        recent = np.asarray(list(closes)[-self.MOMENTUM_WINDOW :], dtype=float)
        average_return = float((np.diff(recent) / recent[:-1]).mean())

        if average_return > self.MOMENTUM_THRESHOLD:
            return Pattern(
                type=PatternType.STRONG_MOMENTUM_UP,
                strength=0.7,
                signal=PatternSignal.BULLISH,
            )
        if average_return < -self.MOMENTUM_THRESHOLD:
            return Pattern(
                type=PatternType.STRONG_MOMENTUM_DOWN,
                strength=0.7,
                signal=PatternSignal.BEARISH,
            )
        return None

    @staticmethod
    def _within(first: float, second: float, tolerance: float) -> bool:
        return abs(first - second) / first < tolerance
