"""Analysis engine: indicators, patterns, sentiment, prediction and risk."""

from datetime import datetime, timezone
from typing import Optional

import numpy as np
from loguru import logger

from ai_trading.config.settings import Settings
from ai_trading.core.exceptions import AnalysisError
from ai_trading.models.analysis import AnalysisResult, FallbackIndicators
from ai_trading.models.market_data import AnalysisInput
from ai_trading.services.pattern_service import PatternService
from ai_trading.services.prediction_service import PredictionService
from ai_trading.services.risk_service import RiskService
from ai_trading.services.sentiment_service import SentimentService
from ai_trading.utils.reasoning import generate_reasoning
from ai_trading.utils.technical_indicators import TechnicalIndicatorCalculator

ADVANCED_MODEL_VERSION = "v3.0-advanced"
SIMPLIFIED_MODEL_VERSION = "v3.0-simple"

ADVANCED_MESSAGE = "Advanced AI analysis completed successfully"
SIMPLIFIED_MESSAGE = (
    "Simplified analysis - insufficient historical data for advanced modeling"
)


class AnalysisService:
    """
    Pure analysis pipeline for one symbol.

    Stages run in sequence: indicator snapshot, pattern detection,
    sentiment, ensemble prediction, risk metrics. The service does no I/O
    and keeps no state between calls.
    """

    def __init__(self, settings: Settings):
        """Initialize analysis service."""
        self.settings = settings
        self.indicator_calculator = TechnicalIndicatorCalculator(settings)
        self.pattern_service = PatternService()
        self.sentiment_service = SentimentService()
        self.prediction_service = PredictionService(settings)
        self.risk_service = RiskService()

    def analyze(
        self,
        analysis_input: AnalysisInput,
        rng: Optional[np.random.Generator] = None,
    ) -> AnalysisResult:
        """
        Analyze a symbol's price history.

        Args:
            analysis_input: Live quote fields plus daily and weekly history
            rng: Random source for target jitter; defaults to a generator
                seeded from settings.random_seed

        Returns:
            Complete analysis result. Inputs with fewer daily bars than
            settings.min_history_bars get the simplified result.

        Raises:
            AnalysisError: If a stage fails unexpectedly
        """
        if rng is None:
            rng = np.random.default_rng(self.settings.random_seed)

        symbol = analysis_input.symbol
        if len(analysis_input.daily_series) < self.settings.min_history_bars:
            logger.warning(
                f"{symbol}: only {len(analysis_input.daily_series)} daily bars "
                f"(need {self.settings.min_history_bars}), using simplified analysis"
            )
            return self._simplified_result(analysis_input, rng)

        try:
            indicators = self.indicator_calculator.build_snapshot(analysis_input)
            logger.debug(
                f"{symbol}: RSI {indicators.rsi:.1f}, MACD {indicators.macd:.3f}, "
                f"ATR {indicators.atr:.2f}, trend {indicators.trend.value}"
            )

            patterns = self.pattern_service.detect_patterns(
                analysis_input.closes, analysis_input.highs, analysis_input.lows
            )
            detected = ", ".join(p.type.value for p in patterns) or "none"
            logger.debug(f"{symbol}: patterns {detected}")

            sentiment = self.sentiment_service.analyze(
                indicators, patterns, analysis_input.daily_change_percent
            )
            logger.debug(
                f"{symbol}: sentiment {sentiment.score:+.2f}, "
                f"regime {sentiment.regime.value}"
            )

            prediction = self.prediction_service.predict(
                indicators, patterns, sentiment, rng
            )

            risk_metrics = self.risk_service.calculate(analysis_input.closes)
            logger.debug(
                f"{symbol}: volatility {risk_metrics.volatility:.2f}%, "
                f"max drawdown {risk_metrics.max_drawdown:.2f}%"
            )
        except (ValueError, ArithmeticError) as e:
            logger.error(f"Analysis failed for {symbol}: {e}")
            raise AnalysisError(f"Analysis failed for {symbol}: {e}") from e

        prediction = prediction.model_copy(
            update={"reasoning": generate_reasoning(prediction, indicators, patterns)}
        )

        logger.info(
            f"{symbol}: {prediction.signal.value.upper()} "
            f"({prediction.confidence:.0%} confidence), "
            f"target ${prediction.target_price:.2f}, regime {sentiment.regime.value}"
        )

        return AnalysisResult(
            symbol=symbol,
            timestamp=datetime.now(timezone.utc),
            model_version=ADVANCED_MODEL_VERSION,
            simplified=False,
            message=ADVANCED_MESSAGE,
            technical_indicators=indicators,
            patterns=patterns,
            sentiment=sentiment,
            prediction=prediction,
            risk_metrics=risk_metrics,
        )

    def _simplified_result(
        self, analysis_input: AnalysisInput, rng: np.random.Generator
    ) -> AnalysisResult:
        prediction = self.prediction_service.simplified_prediction(
            analysis_input.current_price, rng
        )
        return AnalysisResult(
            symbol=analysis_input.symbol,
            timestamp=datetime.now(timezone.utc),
            model_version=SIMPLIFIED_MODEL_VERSION,
            simplified=True,
            message=SIMPLIFIED_MESSAGE,
            technical_indicators=FallbackIndicators(
                current_price=analysis_input.current_price
            ),
            patterns=[],
            sentiment=None,
            prediction=prediction,
            risk_metrics=None,
        )
