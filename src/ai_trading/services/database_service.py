"""Database service for persisting predictions, signals and quotes in Supabase."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from loguru import logger
from supabase import Client, create_client

from ai_trading.config.settings import Settings
from ai_trading.core.exceptions import DatabaseError
from ai_trading.models.analysis import AnalysisResult, IndicatorSnapshot, TradingSignal
from ai_trading.models.market_data import Quote

PREDICTIONS_TABLE = "ai_predictions"
SIGNALS_TABLE = "trading_signals"
PRICES_TABLE = "stock_prices"


def create_supabase_client(settings: Settings) -> Optional[Client]:
    """
    Build a Supabase client when credentials are configured.

    Returns:
        Client, or None when the database is not configured or unreachable
    """
    if not settings.is_database_enabled():
        logger.info("Supabase credentials not configured, persistence disabled")
        return None

    try:
        client = create_client(
            settings.supabase_url, settings.supabase_service_role_key
        )
        logger.info("Database service connected to Supabase")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        return None


class DatabaseService:
    """Persistence adapter around an injected Supabase client."""

    def __init__(self, client: Optional[Client], settings: Optional[Settings] = None):
        """Initialize database service with an existing client handle."""
        self.client = client
        self.prediction_ttl = timedelta(
            hours=settings.prediction_ttl_hours if settings else 24
        )

    def is_available(self) -> bool:
        """Check if database service is available."""
        return self.client is not None

    async def store_prediction(self, result: AnalysisResult) -> None:
        """
        Insert an analysis result into ai_predictions.

        Raises:
            DatabaseError: If the insert fails
        """
        if not self.is_available():
            logger.warning("Database not available, skipping prediction storage")
            return None

        row = self._prediction_to_db_format(result)
        try:
            self.client.table(PREDICTIONS_TABLE).insert(row).execute()
        except Exception as e:
            logger.error(f"Error storing prediction for {result.symbol}: {e}")
            raise DatabaseError(
                f"Failed to store prediction for {result.symbol}: {e}"
            ) from e

        logger.debug(f"Stored {result.model_version} prediction for {result.symbol}")
        return None

    async def store_trading_signals(self, signals: List[TradingSignal]) -> int:
        """
        Batch insert trading signals.

        Returns:
            Number of stored rows

        Raises:
            DatabaseError: If the insert fails
        """
        if not self.is_available():
            logger.warning("Database not available, skipping signal storage")
            return 0

        if not signals:
            return 0

        rows = [self._signal_to_db_format(signal) for signal in signals]
        try:
            response = self.client.table(SIGNALS_TABLE).insert(rows).execute()
        except Exception as e:
            logger.error(f"Error storing trading signals: {e}")
            raise DatabaseError(f"Failed to store trading signals: {e}") from e

        count = len(response.data) if response.data else 0
        logger.info(f"Stored {count} trading signals")
        return count

    async def store_quote(self, quote: Quote) -> None:
        """
        Upsert the latest quote into stock_prices keyed on symbol and date.

        Raises:
            DatabaseError: If the upsert fails
        """
        if not self.is_available():
            logger.warning("Database not available, skipping quote storage")
            return None

        row = {
            "symbol": quote.symbol,
            "date": (quote.timestamp or datetime.now(timezone.utc)).date().isoformat(),
            "open_price": quote.open,
            "high_price": quote.high,
            "low_price": quote.low,
            "close_price": quote.price,
            "adjusted_close": quote.price,
            "volume": int(quote.volume),
        }
        try:
            self.client.table(PRICES_TABLE).upsert(
                row, on_conflict="symbol,date"
            ).execute()
        except Exception as e:
            logger.error(f"Error storing quote for {quote.symbol}: {e}")
            raise DatabaseError(f"Failed to store quote for {quote.symbol}: {e}") from e
        return None

    async def get_latest_predictions(
        self, symbol: Optional[str] = None, limit: int = 50
    ) -> List[Dict[str, Any]]:
        """Stored predictions, newest first."""
        if not self.is_available():
            logger.warning("Database not available, no predictions to read")
            return []

        try:
            query = self.client.table(PREDICTIONS_TABLE).select("*")
            if symbol:
                query = query.eq("symbol", symbol.upper())
            response = query.order("created_at", desc=True).limit(limit).execute()
        except Exception as e:
            logger.error(f"Error fetching predictions: {e}")
            raise DatabaseError(f"Failed to fetch predictions: {e}") from e

        return response.data or []

    def _prediction_to_db_format(self, result: AnalysisResult) -> Dict[str, Any]:
        """Convert an analysis result to an ai_predictions row."""
        prediction = result.prediction
        return {
            "symbol": result.symbol,
            "prediction_date": result.timestamp.date().isoformat(),
            "predicted_price": prediction.target_price,
            "confidence_score": prediction.confidence,
            "signal_type": prediction.signal.value,
            "model_version": result.model_version,
            "technical_indicators": self._indicator_payload(result),
            "expires_at": (result.timestamp + self.prediction_ttl).isoformat(),
        }

    def _indicator_payload(self, result: AnalysisResult) -> Dict[str, Any]:
        indicators = result.technical_indicators
        if not isinstance(indicators, IndicatorSnapshot):
            return {"currentPrice": indicators.current_price, "note": indicators.note}

        risk = result.risk_metrics
        prediction = result.prediction
        return {
            # Core indicators
            "rsi": indicators.rsi,
            "macd": indicators.macd,
            "macdSignal": indicators.macd_signal,
            "sma20": indicators.sma20,
            "sma50": indicators.sma50,
            "sma200": indicators.sma200,
            # Advanced indicators
            "stochastic": indicators.stochastic,
            "williams": indicators.williams_r,
            "atr": indicators.atr,
            "adx": indicators.adx,
            "cci": indicators.cci,
            # Bollinger Bands
            "bbUpper": indicators.bollinger_upper,
            "bbLower": indicators.bollinger_lower,
            "bbPosition": indicators.bollinger_position,
            # Volume
            "volumeRatio": indicators.volume_ratio,
            "volumeTrend": indicators.volume_trend,
            "obv": indicators.obv,
            # Market structure
            "support": indicators.support,
            "resistance": indicators.resistance,
            "trend": indicators.trend.value,
            "patterns": [p.model_dump(mode="json") for p in result.patterns],
            # Risk
            "volatility": risk.volatility if risk else None,
            "sharpeRatio": risk.sharpe_ratio if risk else None,
            "maxDrawdown": risk.max_drawdown if risk else None,
            # Prediction metadata
            "modelEnsemble": dict(prediction.model_scores),
            "timeframeAnalysis": dict(prediction.timeframe_scores),
            "marketRegime": prediction.market_regime.value,
            "currentPrice": indicators.current_price,
            "analysisTimestamp": result.timestamp.isoformat(),
        }

    def _signal_to_db_format(self, signal: TradingSignal) -> Dict[str, Any]:
        """Convert a trading signal to a trading_signals row."""
        return {
            "symbol": signal.symbol,
            "signal_type": signal.signal_type.value,
            "target_price": signal.target_price,
            "confidence_score": signal.confidence_score,
            "risk_score": signal.risk_score,
            "reasoning": signal.reasoning,
            "expires_at": signal.expires_at.isoformat(),
        }
