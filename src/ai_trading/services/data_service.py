"""Data service for fetching quotes and price history from yfinance."""

import asyncio
import math
from datetime import datetime
from typing import List, Optional

import pandas as pd
import yfinance as yf
from loguru import logger

from ai_trading.config.settings import Settings
from ai_trading.core.exceptions import DataServiceError
from ai_trading.models.market_data import PriceBar, Quote, SymbolMatch, WeeklyClose
from ai_trading.utils.helpers import calculate_percentage_change
from ai_trading.utils.rate_limiter import (
    RateLimiter,
    RateLimiterConfig,
    rate_limited_call,
)

MARKET_SUMMARY_SYMBOLS = ["^GSPC", "^DJI", "^IXIC", "SPY", "QQQ", "IWM"]


def _valid_price(value) -> bool:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return False
    return not math.isnan(price) and not math.isinf(price) and price > 0


def _volume(value) -> float:
    if value is None or pd.isna(value):
        return 0.0
    return max(float(value), 0.0)


def _timestamp(index) -> Optional[datetime]:
    if isinstance(index, pd.Timestamp):
        return index.to_pydatetime()
    if isinstance(index, datetime):
        return index
    return None


class DataService:
    """Service for fetching market data from yfinance."""

    def __init__(self, settings: Settings):
        """Initialize data service."""
        self.settings = settings
        self.rate_limiter = RateLimiter(RateLimiterConfig.from_settings(settings))

    async def _run(self, func, *args, **kwargs):
        return await rate_limited_call(
            func, *args, rate_limiter=self.rate_limiter, **kwargs
        )

    def _history(self, symbol: str, period: str, interval: str) -> pd.DataFrame:
        ticker = yf.Ticker(symbol)
        return ticker.history(period=period, interval=interval)

    def _info(self, symbol: str) -> dict:
        return yf.Ticker(symbol).info or {}

    def _search(self, query: str, limit: int) -> list:
        return yf.Search(query, max_results=limit).quotes or []

    async def get_quote(self, symbol: str) -> Quote:
        """
        Fetch the latest quote for a symbol.

        Raises:
            DataServiceError: If the symbol has no recent trading data
        """
        try:
            hist = await self._run(self._history, symbol, "5d", "1d")
        except Exception as e:
            logger.error(f"Error fetching quote for {symbol}: {e}")
            raise DataServiceError(
                f"Failed to fetch quote for {symbol}: {e}"
            ) from e

        if hist is None or hist.empty:
            raise DataServiceError(
                f"Invalid or unknown stock symbol: {symbol}", error_code="INVALID_SYMBOL"
            )

        latest = hist.iloc[-1]
        price = float(latest["Close"])
        if not _valid_price(price):
            raise DataServiceError(
                f"Invalid or unknown stock symbol: {symbol}", error_code="INVALID_SYMBOL"
            )

        previous_close = float(hist.iloc[-2]["Close"]) if len(hist) > 1 else None
        change = price - previous_close if previous_close else 0.0
        change_percent = (
            calculate_percentage_change(price, previous_close) if previous_close else 0.0
        )

        return Quote(
            symbol=symbol,
            price=price,
            previous_close=previous_close,
            change=change,
            change_percent=change_percent,
            volume=_volume(latest.get("Volume")),
            open=float(latest["Open"]) if _valid_price(latest.get("Open")) else None,
            high=float(latest["High"]) if _valid_price(latest.get("High")) else None,
            low=float(latest["Low"]) if _valid_price(latest.get("Low")) else None,
            timestamp=_timestamp(hist.index[-1]),
        )

    async def get_price_history(
        self,
        symbol: str,
        period: Optional[str] = None,
        interval: Optional[str] = None,
    ) -> List[PriceBar]:
        """
        Fetch daily OHLCV bars, oldest first.

        Rows with missing or non-positive prices are dropped.

        Raises:
            DataServiceError: If the fetch fails
        """
        period = period or self.settings.daily_history_period
        interval = interval or self.settings.daily_history_interval

        try:
            hist = await self._run(self._history, symbol, period, interval)
        except Exception as e:
            logger.error(f"Error fetching history for {symbol}: {e}")
            raise DataServiceError(
                f"Failed to fetch history for {symbol}: {e}"
            ) from e

        if hist is None or hist.empty:
            return []
        return self._convert_df_to_bars(hist)

    async def get_weekly_closes(self, symbol: str) -> List[WeeklyClose]:
        """Fetch weekly closes used for trend confirmation."""
        try:
            hist = await self._run(
                self._history,
                symbol,
                self.settings.weekly_history_period,
                self.settings.weekly_history_interval,
            )
        except Exception as e:
            logger.error(f"Error fetching weekly history for {symbol}: {e}")
            raise DataServiceError(
                f"Failed to fetch weekly history for {symbol}: {e}"
            ) from e

        if hist is None or hist.empty:
            return []

        closes = []
        for index, row in hist.iterrows():
            if _valid_price(row.get("Close")):
                closes.append(
                    WeeklyClose(timestamp=_timestamp(index), close=float(row["Close"]))
                )
        return closes

    async def get_market_summary(self) -> List[Quote]:
        """
        Quotes for the major indices and index ETFs, with name and market cap.

        Symbols whose quote fails are skipped. A missing profile only leaves
        name and market cap empty.
        """
        results = await asyncio.gather(
            *(self.get_quote(symbol) for symbol in MARKET_SUMMARY_SYMBOLS),
            return_exceptions=True,
        )

        quotes = []
        for symbol, result in zip(MARKET_SUMMARY_SYMBOLS, results):
            if isinstance(result, Exception):
                logger.warning(f"Skipping {symbol} in market summary: {result}")
                continue
            quotes.append(result)

        return list(await asyncio.gather(*(self._with_profile(q) for q in quotes)))

    async def _with_profile(self, quote: Quote) -> Quote:
        try:
            info = await self._run(self._info, quote.symbol)
        except Exception as e:
            logger.warning(f"No profile for {quote.symbol}: {e}")
            return quote

        market_cap = info.get("marketCap")
        return quote.model_copy(
            update={
                "name": info.get("longName") or info.get("shortName"),
                "market_cap": float(market_cap) if _valid_price(market_cap) else None,
            }
        )

    async def search_symbols(
        self, query: str, limit: Optional[int] = None
    ) -> List[SymbolMatch]:
        """
        Look up symbols by ticker or company name.

        Args:
            query: Free-text search, e.g. "apple" or "AAPL"
            limit: Maximum matches; defaults to settings.search_result_limit

        Raises:
            DataServiceError: If the query is blank or the search fails
        """
        query = query.strip()
        if not query:
            raise DataServiceError("Search query is required", error_code="EMPTY_QUERY")
        limit = limit or self.settings.search_result_limit

        try:
            results = await self._run(self._search, query, limit)
        except Exception as e:
            logger.error(f"Error searching symbols for '{query}': {e}")
            raise DataServiceError(f"Failed to search symbols for '{query}': {e}") from e

        matches = [
            SymbolMatch(
                symbol=item["symbol"],
                name=item.get("longname") or item.get("shortname"),
                exchange=item.get("exchange"),
                type=item.get("typeDisp"),
            )
            for item in results[:limit]
            if item.get("symbol")
        ]
        logger.debug(f"Search '{query}' matched {len(matches)} symbols")
        return matches

    def _convert_df_to_bars(self, df: pd.DataFrame) -> List[PriceBar]:
        """Convert a yfinance DataFrame to a list of PriceBar."""
        bars = []
        for index, row in df.iterrows():
            if not all(_valid_price(row.get(col)) for col in ("High", "Low", "Close")):
                logger.debug(f"Skipping invalid row at {index}")
                continue

            bars.append(
                PriceBar(
                    timestamp=_timestamp(index),
                    open=float(row["Open"]) if _valid_price(row.get("Open")) else None,
                    high=float(row["High"]),
                    low=float(row["Low"]),
                    close=float(row["Close"]),
                    volume=_volume(row.get("Volume")),
                )
            )
        return bars
