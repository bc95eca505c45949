"""Ensemble prediction: sub-model scores, regime weighting and target price."""

from typing import Dict, List, Optional

import numpy as np
from loguru import logger

from ai_trading.config.settings import Settings
from ai_trading.core.exceptions import ConfigurationError
from ai_trading.models.analysis import (
    MAX_CONFIDENCE,
    IndicatorSnapshot,
    MarketRegime,
    Pattern,
    PatternSignal,
    PredictionResult,
    Sentiment,
    SignalType,
    TrendClassification,
)
from ai_trading.services.sentiment_service import signed_strength
from ai_trading.utils.helpers import clamp, round_half_up, safe_divide

DEFAULT_WEIGHTS = {
    "technical": 0.3,
    "pattern": 0.2,
    "momentum": 0.2,
    "mean_reversion": 0.15,
    "trend_following": 0.15,
}

REGIME_WEIGHTS = {
    MarketRegime.TRENDING: {
        "technical": 0.25,
        "pattern": 0.15,
        "momentum": 0.3,
        "mean_reversion": 0.1,
        "trend_following": 0.2,
    },
    MarketRegime.RANGING: {
        "technical": 0.2,
        "pattern": 0.25,
        "momentum": 0.15,
        "mean_reversion": 0.3,
        "trend_following": 0.1,
    },
}

TIMEFRAME_WEIGHTS = {"short_term": 0.5, "medium_term": 0.3, "long_term": 0.2}

# final = 0.7 * ensemble + 0.3 * timeframe + 0.1 * sentiment (sums to 1.1)
ENSEMBLE_WEIGHT = 0.7
TIMEFRAME_WEIGHT = 0.3
SENTIMENT_WEIGHT = 0.1

# targets never fall below 1% of the price or one cent
MIN_TARGET_FRACTION = 0.01
MIN_TARGET_PRICE = 0.01

TREND_FOLLOWING_SCORES = {
    TrendClassification.STRONG_UPTREND: 0.4,
    TrendClassification.UPTREND: 0.2,
    TrendClassification.NEUTRAL: 0.0,
    TrendClassification.DOWNTREND: -0.2,
    TrendClassification.STRONG_DOWNTREND: -0.4,
}


def _bounded(score: float) -> float:
    return clamp(score, -1.0, 1.0)


def floor_target(target: float, price: float) -> float:
    """Round a target to cents, keeping it strictly positive."""
    floor = max(price * MIN_TARGET_FRACTION, MIN_TARGET_PRICE)
    return max(round_half_up(target, 2), round_half_up(floor, 2))


def weights_for_regime(regime: MarketRegime) -> Dict[str, float]:
    """Model weights for a regime; bullish, bearish and neutral use the default."""
    return REGIME_WEIGHTS.get(regime, DEFAULT_WEIGHTS)


def technical_score(ind: IndicatorSnapshot) -> float:
    score = 0.0

    if ind.rsi < 30:
        score += 0.3
    elif ind.rsi > 70:
        score -= 0.3
    elif 45 < ind.rsi < 55:
        score += 0.1

    score += 0.25 if ind.macd > ind.macd_signal else -0.25

    if ind.current_price > ind.sma20 and ind.sma20 > ind.sma50:
        score += 0.2
    elif ind.current_price < ind.sma20 and ind.sma20 < ind.sma50:
        score -= 0.2

    if ind.bollinger_position < 0.2:
        score += 0.15
    elif ind.bollinger_position > 0.8:
        score -= 0.15

    return _bounded(score)


def pattern_score(patterns: List[Pattern]) -> float:
    return _bounded(sum(signed_strength(p) for p in patterns))


def momentum_score(ind: IndicatorSnapshot) -> float:
    score = 0.0

    if ind.price_change_percent > 2:
        score += 0.3
    elif ind.price_change_percent < -2:
        score -= 0.3

    if ind.volume_ratio > 1.5:
        score += 0.2 if ind.price_change_percent > 0 else -0.2

    if ind.adx > 25:
        score += 0.2 if "up" in ind.trend.value else -0.2

    return _bounded(score)


def mean_reversion_score(ind: IndicatorSnapshot) -> float:
    """
    Contrarian reading of stretched oscillators.

    An RSI above 80 adds and below 20 subtracts, which runs opposite to the
    Bollinger and Williams %R rules. Kept as calibrated.
    """
    score = 0.0

    if ind.rsi > 80:
        score += 0.4
    elif ind.rsi < 20:
        score -= 0.4

    if ind.bollinger_position > 0.9:
        score -= 0.3
    elif ind.bollinger_position < 0.1:
        score += 0.3

    if ind.williams_r > -20:
        score -= 0.2
    elif ind.williams_r < -80:
        score += 0.2

    return _bounded(score)


def trend_following_score(ind: IndicatorSnapshot) -> float:
    score = TREND_FOLLOWING_SCORES[ind.trend]
    score += 0.2 if ind.current_price > ind.sma200 else -0.2

    if ind.weekly_trend > 0.02:
        score += 0.1
    elif ind.weekly_trend < -0.02:
        score -= 0.1

    return _bounded(score)


def short_term_score(ind: IndicatorSnapshot, patterns: List[Pattern]) -> float:
    score = 0.0

    if ind.rsi_fast < 30:
        score += 0.3
    elif ind.rsi_fast > 70:
        score -= 0.3

    score += 0.2 if ind.macd_histogram > 0 else -0.2

    # "breakdown" does not match either keyword
    for pattern in patterns:
        if "momentum" in pattern.type.value or "breakout" in pattern.type.value:
            if pattern.signal == PatternSignal.BULLISH:
                score += 0.15
            elif pattern.signal == PatternSignal.BEARISH:
                score -= 0.15

    return _bounded(score)


def medium_term_score(ind: IndicatorSnapshot) -> float:
    score = 0.3 if ind.sma20 > ind.sma50 else -0.3

    distance = safe_divide(ind.current_price - ind.sma50, ind.sma50)
    if distance > 0.05:
        score += 0.2
    elif distance < -0.05:
        score -= 0.2

    if ind.stochastic < 20:
        score += 0.2
    elif ind.stochastic > 80:
        score -= 0.2

    return _bounded(score)


def long_term_score(ind: IndicatorSnapshot) -> float:
    score = 0.4 if ind.current_price > ind.sma200 else -0.4
    score += 0.3 if ind.sma50 > ind.sma200 else -0.3

    if "strong" in ind.trend.value:
        score += 0.2

    return _bounded(score)


class PredictionService:
    """Blend sub-model and timeframe scores into a signal with a target price."""

    def __init__(self, settings: Settings):
        """
        Initialize prediction service with settings.

        Raises:
            ConfigurationError: If thresholds or the confidence cap are invalid
        """
        if settings.sell_threshold >= settings.buy_threshold:
            raise ConfigurationError(
                f"sell_threshold ({settings.sell_threshold}) must be below "
                f"buy_threshold ({settings.buy_threshold})"
            )
        if not 0 < settings.max_confidence <= MAX_CONFIDENCE:
            raise ConfigurationError(
                f"max_confidence must be in (0, {MAX_CONFIDENCE}], "
                f"got {settings.max_confidence}"
            )
        self.settings = settings

    def predict(
        self,
        indicators: IndicatorSnapshot,
        patterns: List[Pattern],
        sentiment: Sentiment,
        rng: np.random.Generator,
    ) -> PredictionResult:
        """
        Compute the ensemble prediction.

        Args:
            indicators: Indicator snapshot
            patterns: Detected patterns
            sentiment: Sentiment reading; its regime selects the weights
            rng: Random source for the hold-branch target jitter

        Returns:
            Prediction with 2-decimal confidence and target price and a
            3-decimal final and ensemble score
        """
        model_scores = {
            "technical": technical_score(indicators),
            "pattern": pattern_score(patterns),
            "momentum": momentum_score(indicators),
            "mean_reversion": mean_reversion_score(indicators),
            "trend_following": trend_following_score(indicators),
        }
        timeframe_scores = {
            "short_term": short_term_score(indicators, patterns),
            "medium_term": medium_term_score(indicators),
            "long_term": long_term_score(indicators),
        }

        weights = weights_for_regime(sentiment.regime)
        ensemble = sum(model_scores[name] * weights[name] for name in weights)
        timeframe = sum(
            timeframe_scores[name] * weight
            for name, weight in TIMEFRAME_WEIGHTS.items()
        )
        final = (
            ensemble * ENSEMBLE_WEIGHT
            + timeframe * TIMEFRAME_WEIGHT
            + sentiment.score * SENTIMENT_WEIGHT
        )

        signal = self.select_signal(final)
        confidence = min(self.settings.max_confidence, abs(final) + 0.1)
        target = self.target_price(
            indicators.current_price, indicators.atr, signal, confidence, rng
        )

        logger.debug(
            f"Ensemble {ensemble:.3f}, timeframe {timeframe:.3f}, "
            f"final {final:.3f} -> {signal.value}"
        )

        return PredictionResult(
            signal=signal,
            confidence=round_half_up(confidence, 2),
            target_price=floor_target(target, indicators.current_price),
            final_score=round_half_up(final, 3),
            model_scores=model_scores,
            timeframe_scores=timeframe_scores,
            ensemble_score=round_half_up(ensemble, 3),
            market_regime=sentiment.regime,
        )

    def select_signal(self, final_score: float) -> SignalType:
        """Map the unrounded final score to a signal."""
        if final_score > self.settings.buy_threshold:
            return SignalType.BUY
        if final_score < self.settings.sell_threshold:
            return SignalType.SELL
        return SignalType.HOLD

    @staticmethod
    def target_price(
        price: float,
        atr: float,
        signal: SignalType,
        confidence: float,
        rng: Optional[np.random.Generator],
    ) -> float:
        """
        Project a target from a 2x ATR move.

        Hold targets are jittered by a uniform draw in [-0.5, 0.5) scaled to
        a quarter of the base move either way.
        """
        base_move = safe_divide(atr, price) * 2

        if signal == SignalType.BUY:
            return price * (1 + base_move * confidence)
        if signal == SignalType.SELL:
            return price * (1 - base_move * confidence)

        if rng is None:
            rng = np.random.default_rng()
        return price * (1 + rng.uniform(-0.5, 0.5) * base_move * 0.5)

    def simplified_prediction(
        self, current_price: float, rng: np.random.Generator
    ) -> PredictionResult:
        """Low-confidence hold with a target within +/-1.5% of the price."""
        band = self.settings.simplified_target_band
        target = current_price * (1 + rng.uniform(-0.5, 0.5) * band)

        return PredictionResult(
            signal=SignalType.HOLD,
            confidence=self.settings.simplified_confidence,
            target_price=floor_target(target, current_price),
            final_score=0.0,
            model_scores={},
            timeframe_scores={},
            ensemble_score=0.0,
            market_regime=MarketRegime.NEUTRAL,
            reasoning="Limited historical data - using market-neutral approach",
        )
