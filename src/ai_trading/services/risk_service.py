"""Risk metrics from the daily close series."""

import math
from typing import Sequence

import numpy as np

from ai_trading.models.analysis import RiskMetrics
from ai_trading.utils.helpers import round_half_up

TRADING_DAYS_PER_YEAR = 252


def calculate_returns(closes: Sequence[float]) -> np.ndarray:
    """Day-over-day relative changes."""
    prices = np.asarray(closes, dtype=float)
    if len(prices) < 2:
        return np.array([], dtype=float)
    return np.diff(prices) / prices[:-1]


def calculate_max_drawdown(closes: Sequence[float]) -> float:
    """Largest peak-to-trough decline as a fraction of the running peak."""
    if len(closes) == 0:
        return 0.0

    max_drawdown = 0.0
    peak = closes[0]
    for price in closes[1:]:
        if price > peak:
            peak = price
        else:
            max_drawdown = max(max_drawdown, (peak - price) / peak)
    return max_drawdown


class RiskService:
    """Compute volatility, drawdown and a Sharpe approximation."""

    def calculate(self, closes: Sequence[float]) -> RiskMetrics:
        """
        Derive risk metrics from daily closes.

        Volatility is annualized with sqrt(252) over the population std of
        returns. The Sharpe figure divides the plain daily mean return by
        that annualized volatility. Volatility and drawdown are reported in
        percent with 2 decimals.
        """
        returns = calculate_returns(closes)
        if len(returns) == 0:
            return RiskMetrics(volatility=0.0, max_drawdown=0.0, sharpe_ratio=0.0)

        volatility = math.sqrt(TRADING_DAYS_PER_YEAR) * float(returns.std(ddof=0))
        max_drawdown = calculate_max_drawdown(list(closes))
        mean_return = float(returns.mean())
        sharpe = mean_return / volatility if volatility > 0 else 0.0

        return RiskMetrics(
            volatility=round_half_up(volatility * 100, 2),
            max_drawdown=round_half_up(max_drawdown * 100, 2),
            sharpe_ratio=round_half_up(sharpe, 2),
        )
