"""Market data models for the AI trading analysis service."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PriceBar(BaseModel):
    """
    Daily OHLCV sample.

    Input contract (not enforced): high >= max(open, close, low) and
    low <= min(open, close, high). Inconsistent bars are tolerated.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: Optional[datetime] = Field(None, description="Bar timestamp")
    open: Optional[float] = Field(
        None, gt=0, allow_inf_nan=False, description="Opening price"
    )
    high: float = Field(gt=0, allow_inf_nan=False, description="High price")
    low: float = Field(gt=0, allow_inf_nan=False, description="Low price")
    close: float = Field(gt=0, allow_inf_nan=False, description="Closing price")
    volume: float = Field(ge=0, allow_inf_nan=False, description="Trading volume")


class WeeklyClose(BaseModel):
    """Weekly closing price used for trend confirmation."""

    model_config = ConfigDict(frozen=True)

    timestamp: Optional[datetime] = Field(None, description="Week timestamp")
    close: float = Field(gt=0, allow_inf_nan=False, description="Closing price")


class Quote(BaseModel):
    """Latest quote for a symbol."""

    symbol: str = Field(description="Stock symbol")
    price: float = Field(gt=0, description="Last traded price")
    previous_close: Optional[float] = Field(None, description="Previous close")
    change: float = Field(default=0.0, description="Price change vs previous close")
    change_percent: float = Field(
        default=0.0, description="Percent change vs previous close"
    )
    volume: float = Field(default=0.0, ge=0, description="Session volume")
    open: Optional[float] = Field(None, description="Session open")
    high: Optional[float] = Field(None, description="Session high")
    low: Optional[float] = Field(None, description="Session low")
    timestamp: Optional[datetime] = Field(None, description="Quote timestamp")
    name: Optional[str] = Field(None, description="Company or index name")
    market_cap: Optional[float] = Field(None, description="Market capitalisation")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Normalize symbol to upper case."""
        return v.upper().strip()


class SymbolMatch(BaseModel):
    """One result of a symbol search."""

    symbol: str = Field(description="Ticker symbol")
    name: Optional[str] = Field(None, description="Long or short company name")
    exchange: Optional[str] = Field(None, description="Listing exchange code")
    type: Optional[str] = Field(None, description="Instrument type, e.g. Equity or ETF")


class AnalysisInput(BaseModel):
    """Everything the analysis engine needs for one symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(description="Opaque symbol identifier")
    current_price: float = Field(
        gt=0, allow_inf_nan=False, description="Live price of the symbol"
    )
    current_volume: float = Field(
        default=0.0, ge=0, allow_inf_nan=False, description="Live session volume"
    )
    daily_change_percent: float = Field(
        default=0.0, allow_inf_nan=False, description="Percent change on the day"
    )
    daily_series: List[PriceBar] = Field(
        default_factory=list, description="Daily bars, oldest first"
    )
    weekly_series: List[WeeklyClose] = Field(
        default_factory=list, description="Weekly closes, oldest first"
    )

    @property
    def closes(self) -> List[float]:
        """Daily closing prices."""
        return [bar.close for bar in self.daily_series]

    @property
    def highs(self) -> List[float]:
        """Daily highs."""
        return [bar.high for bar in self.daily_series]

    @property
    def lows(self) -> List[float]:
        """Daily lows."""
        return [bar.low for bar in self.daily_series]

    @property
    def volumes(self) -> List[float]:
        """Daily volumes."""
        return [bar.volume for bar in self.daily_series]

    @property
    def weekly_closes(self) -> List[float]:
        """Weekly closing prices."""
        return [bar.close for bar in self.weekly_series]
