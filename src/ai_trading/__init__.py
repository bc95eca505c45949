"""
AI Trading Analysis - technical indicator and signal-scoring engine.

Turns a daily OHLCV history and a live quote into indicators, chart
patterns, a market sentiment reading, an ensemble buy/sell/hold
prediction and basic risk metrics.
"""

__version__ = "0.1.0"

from ai_trading.core.exceptions import (
    AITradingError,
    DataServiceError,
    AnalysisError,
    DatabaseError,
    ConfigurationError,
)

__all__ = [
    "__version__",
    "AITradingError",
    "DataServiceError",
    "AnalysisError",
    "DatabaseError",
    "ConfigurationError",
]
