"""Utility modules for the AI trading analysis service."""

from ai_trading.utils.helpers import clamp, round_half_up, safe_divide
from ai_trading.utils.reasoning import generate_reasoning

__all__ = ["clamp", "generate_reasoning", "round_half_up", "safe_divide"]
