"""Data models and schemas for the AI trading analysis service."""

from ai_trading.models.market_data import (
    AnalysisInput,
    PriceBar,
    Quote,
    SymbolMatch,
    WeeklyClose,
)
from ai_trading.models.analysis import (
    AnalysisResult,
    FallbackIndicators,
    IndicatorSnapshot,
    MarketRegime,
    Pattern,
    PatternSignal,
    PatternType,
    PredictionResult,
    RiskMetrics,
    Sentiment,
    SignalType,
    TradingSignal,
    TrendClassification,
)

__all__ = [
    "AnalysisInput",
    "PriceBar",
    "Quote",
    "SymbolMatch",
    "WeeklyClose",
    "AnalysisResult",
    "FallbackIndicators",
    "IndicatorSnapshot",
    "MarketRegime",
    "Pattern",
    "PatternSignal",
    "PatternType",
    "PredictionResult",
    "RiskMetrics",
    "Sentiment",
    "SignalType",
    "TradingSignal",
    "TrendClassification",
]
