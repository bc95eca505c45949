"""Analysis models for the indicator and signal-scoring engine."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TrendClassification(str, Enum):
    """Price position relative to the 20/50/200-day moving averages."""

    STRONG_UPTREND = "strong_uptrend"
    UPTREND = "uptrend"
    NEUTRAL = "neutral"
    DOWNTREND = "downtrend"
    STRONG_DOWNTREND = "strong_downtrend"


class PatternType(str, Enum):
    """Recognized chart shapes."""

    DOUBLE_TOP = "double_top"
    DOUBLE_BOTTOM = "double_bottom"
    TRIANGLE = "triangle"
    HEAD_SHOULDERS = "head_shoulders"
    BREAKOUT_UP = "breakout_up"
    BREAKDOWN = "breakdown"
    STRONG_MOMENTUM_UP = "strong_momentum_up"
    STRONG_MOMENTUM_DOWN = "strong_momentum_down"


class PatternSignal(str, Enum):
    """Directional reading of a pattern."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    CONSOLIDATION = "consolidation"


class MarketRegime(str, Enum):
    """Categorical market state used to reweight the ensemble."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    TRENDING = "trending"
    RANGING = "ranging"
    NEUTRAL = "neutral"


class SignalType(str, Enum):
    """Final trading signal."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class IndicatorSnapshot(BaseModel):
    """Indicator readings as of the latest daily sample."""

    model_config = ConfigDict(frozen=True)

    # Core oscillators
    rsi: float = Field(description="RSI (14-period)")
    rsi_fast: float = Field(description="RSI (9-period)")
    macd: float = Field(description="MACD line")
    macd_signal: float = Field(description="MACD signal line")
    macd_histogram: float = Field(description="MACD histogram")

    # Moving averages
    sma20: float = Field(description="20-day SMA")
    sma50: float = Field(description="50-day SMA")
    sma200: float = Field(description="200-day SMA")
    ema12: float = Field(description="12-day EMA")
    ema26: float = Field(description="26-day EMA")

    # Bollinger Bands
    bollinger_upper: float = Field(description="Upper Bollinger band")
    bollinger_lower: float = Field(description="Lower Bollinger band")
    bollinger_position: float = Field(
        description="Current price position inside the bands (0 = lower, 1 = upper)"
    )

    # Advanced oscillators
    stochastic: float = Field(description="Stochastic %K")
    williams_r: float = Field(description="Williams %R")
    cci: float = Field(description="Commodity Channel Index")

    # Volatility and trend strength
    atr: float = Field(description="Average True Range")
    adx: float = Field(description="Simplified Average Directional Index")

    # Volume
    obv: float = Field(description="On-Balance Volume")
    volume_ratio: float = Field(description="Current volume vs 20-day average")
    volume_trend: float = Field(description="Last 5 days vs prior 5 days volume")

    # Market structure
    support: float = Field(description="Nearest pivot low below price")
    resistance: float = Field(description="Nearest pivot high above price")
    trend: TrendClassification = Field(description="Moving-average trend")
    weekly_trend: float = Field(description="Latest week-over-week change")

    # Price action
    current_price: float = Field(description="Live price echoed from the input")
    price_change_percent: float = Field(
        description="Live price vs previous daily close (%)"
    )


class FallbackIndicators(BaseModel):
    """Indicator record used when history is too short for the full pipeline."""

    model_config = ConfigDict(frozen=True)

    current_price: float = Field(description="Live price echoed from the input")
    note: str = Field(
        default="Simplified analysis - insufficient data",
        description="Why the indicator set is limited",
    )


class Pattern(BaseModel):
    """Detected chart pattern."""

    model_config = ConfigDict(frozen=True)

    type: PatternType = Field(description="Pattern shape")
    strength: float = Field(ge=0.0, le=1.0, description="Pattern strength (0-1)")
    signal: PatternSignal = Field(description="Directional reading")


class Sentiment(BaseModel):
    """Aggregated market sentiment."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=-1.0, le=1.0, description="Clamped sentiment score")
    regime: MarketRegime = Field(description="Market regime")
    confidence: float = Field(ge=0.0, description="Magnitude of the raw score")


MAX_CONFIDENCE = 0.95


class PredictionResult(BaseModel):
    """Ensemble prediction."""

    model_config = ConfigDict(frozen=True)

    signal: SignalType = Field(description="Trading signal")
    confidence: float = Field(
        ge=0.0, le=MAX_CONFIDENCE, description="Signal confidence"
    )
    target_price: float = Field(gt=0, description="Projected price target")
    final_score: float = Field(description="Blended score (3 decimals)")
    model_scores: Dict[str, float] = Field(
        default_factory=dict, description="Sub-model scores in [-1, 1]"
    )
    timeframe_scores: Dict[str, float] = Field(
        default_factory=dict, description="Timeframe scores in [-1, 1]"
    )
    ensemble_score: float = Field(description="Regime-weighted model blend")
    market_regime: MarketRegime = Field(description="Regime echoed from sentiment")
    reasoning: Optional[str] = Field(None, description="Explanation, if any")


class RiskMetrics(BaseModel):
    """Risk measures derived from the daily return series."""

    model_config = ConfigDict(frozen=True)

    volatility: float = Field(description="Annualized volatility (%)")
    max_drawdown: float = Field(description="Largest peak-to-trough decline (%)")
    sharpe_ratio: float = Field(description="Mean daily return / annualized volatility")


class AnalysisResult(BaseModel):
    """Complete analysis result for one symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(description="Symbol identifier")
    timestamp: datetime = Field(description="Analysis timestamp")
    model_version: str = Field(description="Pipeline version that produced it")
    simplified: bool = Field(
        default=False, description="Whether the degenerate-input fallback was used"
    )
    message: str = Field(description="Human-readable status")
    technical_indicators: Union[IndicatorSnapshot, FallbackIndicators] = Field(
        description="Indicator snapshot, or the limited fallback record"
    )
    patterns: List[Pattern] = Field(default_factory=list, description="Chart patterns")
    sentiment: Optional[Sentiment] = Field(None, description="Market sentiment")
    prediction: PredictionResult = Field(description="Ensemble prediction")
    risk_metrics: Optional[RiskMetrics] = Field(None, description="Risk metrics")


class TradingSignal(BaseModel):
    """Actionable signal row derived from an analysis."""

    symbol: str = Field(description="Stock symbol")
    signal_type: SignalType = Field(description="Trading signal")
    target_price: float = Field(description="Projected price target")
    confidence_score: float = Field(ge=0.0, le=1.0, description="Signal confidence")
    risk_score: float = Field(ge=0.0, le=1.0, description="1 - confidence")
    reasoning: str = Field(description="Explanation of the signal")
    expires_at: datetime = Field(description="Expiry timestamp")
