"""Core functionality for the AI trading analysis service."""

from ai_trading.core.exceptions import (
    AITradingError,
    DataServiceError,
    AnalysisError,
    DatabaseError,
    ConfigurationError,
)
from ai_trading.core.logging import setup_logging

__all__ = [
    "AITradingError",
    "DataServiceError",
    "AnalysisError",
    "DatabaseError",
    "ConfigurationError",
    "setup_logging",
]
