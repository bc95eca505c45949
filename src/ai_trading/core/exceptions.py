"""Custom exceptions for the AI trading analysis service."""


class AITradingError(Exception):
    """Base exception for all AI trading errors."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """Initialize the exception with message and optional error code."""
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__


class DataServiceError(AITradingError):
    """Raised when market data cannot be fetched or the symbol is unknown."""

    pass


class AnalysisError(AITradingError):
    """Raised when analysis fails."""

    pass


class DatabaseError(AITradingError):
    """Raised when database operations fail."""

    pass


class ConfigurationError(AITradingError):
    """Raised when configuration is invalid."""

    pass
