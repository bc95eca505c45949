"""Configuration management for the AI trading analysis service."""

from ai_trading.config.settings import Settings, get_settings, reload_settings

__all__ = ["Settings", "get_settings", "reload_settings"]
