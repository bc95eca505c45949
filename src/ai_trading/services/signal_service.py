"""Orchestrates data fetching, analysis and persistence per symbol."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import numpy as np
from loguru import logger

from ai_trading.config.settings import Settings
from ai_trading.core.exceptions import AITradingError, DatabaseError, DataServiceError
from ai_trading.models.analysis import AnalysisResult, SignalType, TradingSignal
from ai_trading.models.market_data import AnalysisInput, Quote, WeeklyClose
from ai_trading.services.analysis_service import AnalysisService
from ai_trading.services.data_service import DataService
from ai_trading.services.database_service import DatabaseService
from ai_trading.utils.reasoning import generate_reasoning


class SignalService:
    """Fetch market data, run the analysis engine and store the outcome."""

    def __init__(
        self,
        settings: Settings,
        data_service: DataService,
        analysis_service: AnalysisService,
        database_service: Optional[DatabaseService] = None,
    ):
        """Initialize signal service with its collaborators."""
        self.settings = settings
        self.data_service = data_service
        self.analysis_service = analysis_service
        self.database_service = database_service

    def _database_available(self) -> bool:
        return self.database_service is not None and self.database_service.is_available()

    async def analyze_stock(
        self,
        symbol: str,
        store: bool = True,
        rng: Optional[np.random.Generator] = None,
    ) -> AnalysisResult:
        """
        Analyze one symbol end to end.

        Weekly closes are optional: a failed weekly fetch is logged and the
        analysis runs without them. A failed quote upsert is logged too.

        Args:
            symbol: Stock symbol
            store: Persist the quote and the prediction when a database is set
            rng: Random source passed through to the engine

        Returns:
            Analysis result

        Raises:
            DataServiceError: If the symbol is unknown or data cannot be fetched
            DatabaseError: If storing a full analysis fails
        """
        symbol = symbol.upper().strip()
        with logger.contextualize(symbol=symbol):
            return await self._analyze(symbol, store, rng)

    async def _analyze(
        self, symbol: str, store: bool, rng: Optional[np.random.Generator]
    ) -> AnalysisResult:
        logger.info(f"Starting analysis for {symbol}")

        quote = await self.data_service.get_quote(symbol)
        daily_series, weekly_series = await asyncio.gather(
            self.data_service.get_price_history(symbol),
            self._weekly_closes(symbol),
        )
        logger.debug(
            f"{symbol}: price ${quote.price:.2f}, {len(daily_series)} daily bars, "
            f"{len(weekly_series)} weekly closes"
        )

        analysis_input = AnalysisInput(
            symbol=symbol,
            current_price=quote.price,
            current_volume=quote.volume,
            daily_change_percent=quote.change_percent,
            daily_series=daily_series,
            weekly_series=weekly_series,
        )
        result = self.analysis_service.analyze(analysis_input, rng=rng)

        if store and self._database_available():
            await self._store(result, quote)

        return result

    async def _weekly_closes(self, symbol: str) -> List[WeeklyClose]:
        try:
            return await self.data_service.get_weekly_closes(symbol)
        except DataServiceError as e:
            logger.warning(f"No weekly closes for {symbol}, continuing without: {e}")
            return []

    async def _store(self, result: AnalysisResult, quote: Quote) -> None:
        try:
            await self.database_service.store_quote(quote)
        except DatabaseError as e:
            logger.error(f"Error storing quote for {result.symbol}: {e}")

        try:
            await self.database_service.store_prediction(result)
        except DatabaseError as e:
            if not result.simplified:
                raise
            logger.error(f"Error storing simplified prediction for {result.symbol}: {e}")

    async def generate_trading_signals(
        self,
        symbols: Optional[List[str]] = None,
        store: bool = True,
    ) -> List[TradingSignal]:
        """
        Analyze each symbol and turn the result into a trading signal.

        Symbols that fail are logged and skipped. A failed batch insert is
        logged and the signals are still returned.
        """
        symbols = symbols or self.settings.default_symbols
        logger.info(f"Generating trading signals for {len(symbols)} symbols")

        signals = []
        for symbol in symbols:
            try:
                result = await self.analyze_stock(symbol, store=store)
            except AITradingError as e:
                logger.error(f"Error analyzing {symbol}: {e}")
                continue
            signals.append(self.to_trading_signal(result))

        if signals and store and self._database_available():
            try:
                await self.database_service.store_trading_signals(signals)
            except DatabaseError as e:
                logger.error(f"Error storing {len(signals)} trading signals: {e}")

        logger.info(f"Generated {len(signals)} trading signals")
        return signals

    async def scan_opportunities(
        self,
        symbols: Optional[List[str]] = None,
        min_confidence: float = 0.5,
    ) -> List[AnalysisResult]:
        """
        Find actionable setups among symbols.

        Returns:
            Non-hold results at or above min_confidence, most confident first
        """
        symbols = symbols or self.settings.default_symbols
        logger.info(f"Scanning {len(symbols)} symbols for opportunities")

        opportunities = []
        for symbol in symbols:
            try:
                result = await self.analyze_stock(symbol, store=False)
            except AITradingError as e:
                logger.error(f"Error scanning {symbol}: {e}")
                continue

            prediction = result.prediction
            if (
                prediction.signal != SignalType.HOLD
                and prediction.confidence >= min_confidence
            ):
                opportunities.append(result)

        opportunities.sort(key=lambda r: r.prediction.confidence, reverse=True)
        logger.info(f"Found {len(opportunities)} opportunities")
        return opportunities

    def to_trading_signal(self, result: AnalysisResult) -> TradingSignal:
        """Convert an analysis result into a trading signal row."""
        prediction = result.prediction
        return TradingSignal(
            symbol=result.symbol,
            signal_type=prediction.signal,
            target_price=prediction.target_price,
            confidence_score=prediction.confidence,
            risk_score=round(1 - prediction.confidence, 2),
            reasoning=generate_reasoning(
                prediction, result.technical_indicators, result.patterns
            ),
            expires_at=datetime.now(timezone.utc)
            + timedelta(hours=self.settings.signal_ttl_hours),
        )
