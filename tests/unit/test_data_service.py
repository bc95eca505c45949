"""Unit tests for the yfinance adapter."""

from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from ai_trading.core.exceptions import DataServiceError
from ai_trading.services.data_service import MARKET_SUMMARY_SYMBOLS, DataService


def _frame(closes, volumes=None):
    index = pd.date_range("2024-01-01", periods=len(closes), freq="D")
    closes = np.asarray(closes, dtype=float)
    return pd.DataFrame(
        {
            "Open": closes,
            "High": closes + 1,
            "Low": closes - 1,
            "Close": closes,
            "Volume": volumes if volumes is not None else [1000.0] * len(closes),
        },
        index=index,
    )


@pytest.fixture
def data_service(test_settings) -> DataService:
    return DataService(test_settings)


class TestGetQuote:
    """Test quote extraction."""

    @pytest.mark.asyncio
    async def test_quote_from_last_two_sessions(self, data_service):
        data_service._history = MagicMock(
            return_value=_frame([100.0, 102.0], volumes=[500.0, float("nan")])
        )

        quote = await data_service.get_quote("AAPL")

        assert quote.symbol == "AAPL"
        assert quote.price == 102.0
        assert quote.previous_close == 100.0
        assert quote.change == pytest.approx(2.0)
        assert quote.change_percent == pytest.approx(2.0)
        assert quote.volume == 0.0
        assert quote.high == 103.0
        data_service._history.assert_called_once_with("AAPL", "5d", "1d")

    @pytest.mark.asyncio
    async def test_single_session(self, data_service):
        data_service._history = MagicMock(return_value=_frame([50.0]))

        quote = await data_service.get_quote("NEW")

        assert quote.previous_close is None
        assert quote.change_percent == 0.0

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, data_service):
        data_service._history = MagicMock(return_value=pd.DataFrame())

        with pytest.raises(DataServiceError) as exc_info:
            await data_service.get_quote("ZZZZ")
        assert exc_info.value.message == "Invalid or unknown stock symbol: ZZZZ"
        assert exc_info.value.error_code == "INVALID_SYMBOL"

    @pytest.mark.asyncio
    async def test_provider_failure_wrapped(self, data_service):
        data_service._history = MagicMock(side_effect=RuntimeError("connection reset"))

        with pytest.raises(DataServiceError):
            await data_service.get_quote("AAPL")


class TestHistory:
    """Test bar conversion."""

    @pytest.mark.asyncio
    async def test_invalid_rows_dropped(self, data_service):
        frame = _frame([100.0, 101.0, 102.0, 103.0])
        frame.iloc[1, frame.columns.get_loc("Close")] = float("nan")
        frame.iloc[2, frame.columns.get_loc("Low")] = 0.0
        data_service._history = MagicMock(return_value=frame)

        bars = await data_service.get_price_history("AAPL")

        assert [bar.close for bar in bars] == [100.0, 103.0]
        assert bars[0].timestamp.year == 2024
        data_service._history.assert_called_once_with("AAPL", "6mo", "1d")

    @pytest.mark.asyncio
    async def test_empty_history(self, data_service):
        data_service._history = MagicMock(return_value=pd.DataFrame())
        assert await data_service.get_price_history("AAPL") == []

    @pytest.mark.asyncio
    async def test_weekly_closes(self, data_service):
        data_service._history = MagicMock(return_value=_frame([150.0, 155.0, 160.0]))

        weekly = await data_service.get_weekly_closes("AAPL")

        assert [w.close for w in weekly] == [150.0, 155.0, 160.0]
        data_service._history.assert_called_once_with("AAPL", "3mo", "1wk")


class TestMarketSummary:
    """Test the index overview."""

    @pytest.mark.asyncio
    async def test_failures_skipped(self, data_service):
        def history(symbol, period, interval):
            if symbol == "^DJI":
                raise RuntimeError("timeout")
            return _frame([100.0, 101.0])

        data_service._history = MagicMock(side_effect=history)
        data_service._info = MagicMock(return_value={})

        quotes = await data_service.get_market_summary()

        assert [q.symbol for q in quotes] == [
            s for s in MARKET_SUMMARY_SYMBOLS if s != "^DJI"
        ]

    @pytest.mark.asyncio
    async def test_names_and_market_cap_attached(self, data_service):
        def info(symbol):
            if symbol == "QQQ":
                raise RuntimeError("quoteSummary unavailable")
            if symbol == "SPY":
                return {"shortName": "SPDR S&P 500", "marketCap": 5.2e11}
            return {"longName": f"{symbol} Index", "shortName": symbol}

        data_service._history = MagicMock(return_value=_frame([100.0, 101.0]))
        data_service._info = MagicMock(side_effect=info)

        quotes = {q.symbol: q for q in await data_service.get_market_summary()}

        assert list(quotes) == MARKET_SUMMARY_SYMBOLS
        assert quotes["^GSPC"].name == "^GSPC Index"
        assert quotes["^GSPC"].market_cap is None
        assert quotes["SPY"].name == "SPDR S&P 500"
        assert quotes["SPY"].market_cap == 5.2e11
        assert quotes["QQQ"].name is None
        assert quotes["QQQ"].price == 101.0


class TestSearchSymbols:
    """Test symbol lookup."""

    @pytest.mark.asyncio
    async def test_matches_mapped(self, data_service):
        data_service._search = MagicMock(
            return_value=[
                {
                    "symbol": "AAPL",
                    "shortname": "Apple Inc.",
                    "longname": "Apple Inc.",
                    "exchange": "NMS",
                    "typeDisp": "Equity",
                },
                {"symbol": "APLE", "shortname": "Apple Hospitality", "exchange": "NYQ"},
                {"shortname": "no symbol"},
            ]
        )

        matches = await data_service.search_symbols(" apple ")

        assert [m.symbol for m in matches] == ["AAPL", "APLE"]
        assert matches[0].name == "Apple Inc."
        assert matches[0].type == "Equity"
        assert matches[1].name == "Apple Hospitality"
        assert matches[1].type is None
        data_service._search.assert_called_once_with("apple", 10)

    @pytest.mark.asyncio
    async def test_results_capped_at_limit(self, data_service):
        data_service._search = MagicMock(
            return_value=[{"symbol": f"S{i}"} for i in range(15)]
        )

        matches = await data_service.search_symbols("s", limit=3)

        assert [m.symbol for m in matches] == ["S0", "S1", "S2"]

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self, data_service):
        data_service._search = MagicMock()

        with pytest.raises(DataServiceError) as exc_info:
            await data_service.search_symbols("  ")
        assert exc_info.value.error_code == "EMPTY_QUERY"
        data_service._search.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_failure_wrapped(self, data_service):
        data_service._search = MagicMock(side_effect=RuntimeError("timeout"))

        with pytest.raises(DataServiceError):
            await data_service.search_symbols("apple")


class TestRateLimiting:
    """Test retries on provider throttling."""

    @pytest.mark.asyncio
    async def test_throttled_request_retried(self, data_service):
        data_service._history = MagicMock(
            side_effect=[
                RuntimeError("Too Many Requests. Rate limited. Try after a while."),
                _frame([100.0, 102.0]),
            ]
        )

        quote = await data_service.get_quote("AAPL")

        assert quote.price == 102.0
        assert data_service._history.call_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, data_service, test_settings):
        data_service._history = MagicMock(side_effect=RuntimeError("429 Too Many Requests"))

        with pytest.raises(DataServiceError):
            await data_service.get_quote("AAPL")
        assert data_service._history.call_count == test_settings.yf_max_retries + 1

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self, data_service):
        data_service._history = MagicMock(side_effect=RuntimeError("connection reset"))

        with pytest.raises(DataServiceError):
            await data_service.get_quote("AAPL")
        assert data_service._history.call_count == 1
