"""Synthetic price history.

The quote upstream does not reliably provide daily history, so a plausible
series is generated locally for charting. THE OUTPUT IS NOT REAL HISTORICAL
DATA: only the dates and the final value are meaningful. The final point
always equals the current value exactly; the interior is a random walk.
"""

import math
import random
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence

from .records import HistoricalPoint

DEFAULT_REALIZED_VOLATILITY = 15.0


@dataclass(frozen=True)
class HistoryParameters:
    """Tuning constants for the random walk."""
    days: int = 90
    floor_ratio: float = 0.7
    trading_days_per_year: int = 252


class SyntheticHistoryGenerator:
    """Generate ``days + 1`` daily points ending today at the current value."""

    def __init__(self, params: Optional[HistoryParameters] = None, rng: Optional[random.Random] = None):
        self.params = params or HistoryParameters()
        # Unseeded by default: the interior shape is intentionally non-reproducible
        self._rng = rng or random.Random()

    def generate(
        self,
        current_value: float,
        volatility: float,
        days: Optional[int] = None,
        drift_percent: float = 0.0,
        today: Optional[date] = None,
    ) -> List[HistoricalPoint]:
        """Generate a synthetic daily series.

        Args:
            current_value: Value the series must end on
            volatility: Annualized volatility in percent
            days: Number of days back (series length is days + 1)
            drift_percent: Total % change the walk should trend by over the window
            today: Last date of the series (defaults to date.today())

        Returns:
            Points ordered oldest to newest, one per calendar day.
        """
        n_days = self.params.days if days is None else days
        if n_days < 0:
            raise ValueError("days must be non-negative")
        end = today or date.today()
        if current_value <= 0:
            # Nothing to perturb around; a flat line still honours the shape
            return [
                HistoricalPoint(date=end - timedelta(days=offset), value=current_value)
                for offset in range(n_days, -1, -1)
            ]

        floor = current_value * self.params.floor_ratio
        daily_volatility = volatility / math.sqrt(self.params.trading_days_per_year) / 100
        daily_drift = (drift_percent / 100) / n_days if n_days else 0.0

        # Start offset from the current value by the drift, then walk forward
        start = current_value / (1 + drift_percent / 100) if drift_percent > -100 else current_value
        value = max(start, floor)
        points: List[HistoricalPoint] = []
        for offset in range(n_days, -1, -1):
            shock = (self._rng.random() - 0.5) * 2 * daily_volatility
            value = max(value * (1 + daily_drift + shock), floor)
            points.append(HistoricalPoint(date=end - timedelta(days=offset), value=value))

        points[-1] = HistoricalPoint(date=end, value=current_value)
        return points


def realized_volatility(closes: Sequence[float], trading_days_per_year: int = 252) -> float:
    """Annualized volatility (%) from log returns of consecutive closes."""
    valid = [c for c in closes if c is not None and c > 0]
    if len(valid) < 2:
        return DEFAULT_REALIZED_VOLATILITY
    returns = [math.log(valid[i] / valid[i - 1]) for i in range(1, len(valid))]
    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    return math.sqrt(variance) * math.sqrt(trading_days_per_year) * 100
