"""Configuration settings for the AI trading analysis service."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def find_env_file() -> str:
    """Locate a .env file in the working directory or up to two levels above it."""
    cwd = Path.cwd()
    for candidate in (cwd, *cwd.parents[:2]):
        env_path = candidate / ".env"
        if env_path.exists():
            return str(env_path)
    return ".env"


class Settings(BaseSettings):
    """Engine, data-source and persistence settings read from the environment."""

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Supabase
    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices(
            "supabase_url", "SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"
        ),
        description="Supabase project URL",
    )
    supabase_anon_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "supabase_anon_key", "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"
        ),
        description="Supabase anonymous key",
    )
    supabase_service_role_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "supabase_service_role_key",
            "SUPABASE_SERVICE_ROLE_KEY",
            "NEXT_PUBLIC_SUPABASE_SERVICE_ROLE_KEY",
        ),
        description="Supabase service role key",
    )

    # Market Data
    daily_history_period: str = Field(
        default="6mo", description="History window for daily bars"
    )
    daily_history_interval: str = Field(default="1d", description="Daily bar interval")
    weekly_history_period: str = Field(
        default="3mo", description="History window for weekly bars"
    )
    weekly_history_interval: str = Field(
        default="1wk", description="Weekly bar interval"
    )
    default_symbols: list[str] = Field(
        default=["AAPL", "MSFT", "GOOGL", "TSLA", "NVDA", "META"],
        description="Watch list used when no symbols are given",
    )

    # Technical Indicator Periods
    rsi_period: int = Field(default=14, description="RSI period")
    rsi_fast_period: int = Field(default=9, description="Fast RSI period")
    macd_fast_period: int = Field(default=12, description="MACD fast EMA period")
    macd_slow_period: int = Field(default=26, description="MACD slow EMA period")
    macd_signal_period: int = Field(default=9, description="MACD signal EMA period")
    sma_short_period: int = Field(default=20, description="Short SMA period")
    sma_medium_period: int = Field(default=50, description="Medium SMA period")
    sma_long_period: int = Field(default=200, description="Long SMA period")
    ema_fast_period: int = Field(default=12, description="Fast EMA period")
    ema_slow_period: int = Field(default=26, description="Slow EMA period")
    bb_period: int = Field(default=20, description="Bollinger Bands period")
    bb_std: float = Field(default=2.0, description="Bollinger Bands deviation")
    stochastic_period: int = Field(default=14, description="Stochastic %K period")
    williams_period: int = Field(default=14, description="Williams %R period")
    cci_period: int = Field(default=20, description="CCI period")
    atr_period: int = Field(default=14, description="ATR period")
    adx_period: int = Field(default=14, description="ADX period")
    volume_sma_period: int = Field(default=20, description="Volume average period")
    pivot_lookback: int = Field(
        default=5, description="Bars on each side of a support/resistance pivot"
    )

    # Prediction
    min_history_bars: int = Field(
        default=50, description="Daily bars required for the full pipeline"
    )
    buy_threshold: float = Field(default=0.15, description="Final score for BUY")
    sell_threshold: float = Field(default=-0.15, description="Final score for SELL")
    max_confidence: float = Field(default=0.95, description="Confidence ceiling")
    simplified_confidence: float = Field(
        default=0.3, description="Confidence of the simplified prediction"
    )
    simplified_target_band: float = Field(
        default=0.03, description="Full width of the simplified target jitter"
    )
    random_seed: int | None = Field(
        default=None, description="Seed for hold-branch target jitter"
    )

    # Persistence
    prediction_ttl_hours: int = Field(
        default=24, description="Hours until a stored prediction expires"
    )
    signal_ttl_hours: int = Field(
        default=8, description="Hours until a stored trading signal expires"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_service_name: str = Field(
        default="ai-trading", description="Service name shown in log records"
    )
    log_to_file: bool = Field(default=False, description="Also write a log file")
    log_dir: str = Field(default="logs", description="Directory for the log file")
    log_rotation: str = Field(
        default="10 MB", description="Size or interval at which the log file rotates"
    )
    log_retention: str = Field(
        default="7 days", description="How long rotated log files are kept"
    )

    # Yahoo Finance rate limiting
    yf_requests_per_minute: int = Field(
        default=60, description="Maximum yfinance requests per minute"
    )
    yf_min_request_delay: float = Field(
        default=0.2, description="Minimum seconds between yfinance requests"
    )
    yf_initial_backoff: float = Field(
        default=5.0, description="First backoff after a rate-limit error (seconds)"
    )
    yf_max_backoff: float = Field(
        default=120.0, description="Backoff ceiling (seconds)"
    )
    yf_max_retries: int = Field(
        default=3, description="Retries after rate-limit errors"
    )
    search_result_limit: int = Field(
        default=10, description="Maximum results returned by symbol search"
    )

    def is_database_enabled(self) -> bool:
        """Persistence is on when both the URL and the service-role key are set."""
        return bool(self.supabase_url and self.supabase_service_role_key)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, built on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Rebuild the process-wide settings from the current environment."""
    global _settings
    _settings = Settings()
    return _settings
