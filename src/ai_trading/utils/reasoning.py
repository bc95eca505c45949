"""Human-readable explanation of a prediction."""

from typing import List, Optional, Union

from ai_trading.models.analysis import (
    FallbackIndicators,
    IndicatorSnapshot,
    Pattern,
    PatternSignal,
    PredictionResult,
    SignalType,
    TrendClassification,
)
from ai_trading.utils.helpers import round_half_up

SIGNAL_LABELS = {
    SignalType.BUY: "Strong BUY signal",
    SignalType.SELL: "SELL signal",
    SignalType.HOLD: "HOLD signal",
}


def generate_reasoning(
    prediction: PredictionResult,
    indicators: Union[IndicatorSnapshot, FallbackIndicators],
    patterns: Optional[List[Pattern]] = None,
) -> str:
    """
    Build a comma-joined explanation for a prediction.

    Fallback indicator records only contribute the signal line and the
    market regime.
    """
    confidence_pct = int(round_half_up(prediction.confidence * 100, 0))
    reasons = [f"{SIGNAL_LABELS[prediction.signal]} ({confidence_pct}% confidence)"]

    if isinstance(indicators, IndicatorSnapshot):
        if indicators.rsi < 30:
            reasons.append("oversold conditions")
        elif indicators.rsi > 70:
            reasons.append("overbought conditions")

        if indicators.macd > indicators.macd_signal:
            reasons.append("bullish MACD crossover")
        else:
            reasons.append("bearish MACD momentum")

        if indicators.trend == TrendClassification.STRONG_UPTREND:
            reasons.append("strong uptrend confirmed")
        elif indicators.trend == TrendClassification.STRONG_DOWNTREND:
            reasons.append("strong downtrend in place")

        if indicators.volume_ratio > 1.5:
            reasons.append("high volume confirmation")

        if patterns:
            bullish = sum(1 for p in patterns if p.signal == PatternSignal.BULLISH)
            bearish = sum(1 for p in patterns if p.signal == PatternSignal.BEARISH)
            if bullish > bearish:
                reasons.append("bullish pattern detected")
            elif bearish > bullish:
                reasons.append("bearish pattern detected")

    reasons.append(f"{prediction.market_regime.value} market conditions")
    return ", ".join(reasons)
