"""Market sentiment aggregation."""

from typing import List

from ai_trading.models.analysis import (
    IndicatorSnapshot,
    MarketRegime,
    Pattern,
    PatternSignal,
    Sentiment,
    TrendClassification,
)
from ai_trading.utils.helpers import clamp

TREND_SENTIMENT = {
    TrendClassification.STRONG_UPTREND: 0.3,
    TrendClassification.UPTREND: 0.15,
    TrendClassification.NEUTRAL: 0.0,
    TrendClassification.DOWNTREND: -0.15,
    TrendClassification.STRONG_DOWNTREND: -0.3,
}


def signed_strength(pattern: Pattern) -> float:
    """Pattern strength signed by direction; consolidation counts as 0."""
    if pattern.signal == PatternSignal.BULLISH:
        return pattern.strength
    if pattern.signal == PatternSignal.BEARISH:
        return -pattern.strength
    return 0.0


class SentimentService:
    """Combine indicators, patterns and the daily move into a sentiment reading."""

    REGIME_THRESHOLD = 0.3
    TRENDING_ADX = 25.0
    HIGH_VOLUME_RATIO = 1.5

    def analyze(
        self,
        indicators: IndicatorSnapshot,
        patterns: List[Pattern],
        daily_change_percent: float,
    ) -> Sentiment:
        """
        Score sentiment and pick a market regime.

        Regime is chosen from the raw score before clamping, in priority
        order bullish, bearish, trending, ranging. Confidence is the
        magnitude of the raw score.
        """
        score = 0.0

        if indicators.rsi > 70:
            score -= 0.2
        elif indicators.rsi < 30:
            score += 0.2

        score += 0.15 if indicators.macd > indicators.macd_signal else -0.15
        score += TREND_SENTIMENT[indicators.trend]

        if indicators.volume_ratio > self.HIGH_VOLUME_RATIO:
            if daily_change_percent > 0:
                score += 0.1
            elif daily_change_percent < 0:
                score -= 0.1

        for pattern in patterns:
            score += signed_strength(pattern) * 0.1

        if score > self.REGIME_THRESHOLD:
            regime = MarketRegime.BULLISH
        elif score < -self.REGIME_THRESHOLD:
            regime = MarketRegime.BEARISH
        elif indicators.adx > self.TRENDING_ADX:
            regime = MarketRegime.TRENDING
        else:
            regime = MarketRegime.RANGING

        return Sentiment(
            score=clamp(score, -1.0, 1.0),
            regime=regime,
            confidence=abs(score),
        )
