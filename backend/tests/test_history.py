"""Tests for the synthetic history generator."""

import random
from datetime import date, timedelta

import pytest

from market_intel.services.history import (
    DEFAULT_REALIZED_VOLATILITY,
    HistoryParameters,
    SyntheticHistoryGenerator,
    realized_volatility,
)

TODAY = date(2025, 6, 2)


@pytest.mark.parametrize("value,days", [
    (100.0, 90),
    (4.1234567, 30),
    (0.0001, 5),
    (25000.0, 1),
    (12.5, 0),
])
def test_shape_and_exact_final_value(value, days):
    """Series has days+1 consecutive dates ending today at the exact value."""
    series = SyntheticHistoryGenerator().generate(value, 35.0, days=days, today=TODAY)

    assert len(series) == days + 1
    assert series[-1].date == TODAY
    assert series[-1].value == value
    for earlier, later in zip(series, series[1:]):
        assert later.date - earlier.date == timedelta(days=1)


def test_defaults_to_configured_days():
    generator = SyntheticHistoryGenerator(HistoryParameters(days=10))
    assert len(generator.generate(50.0, 20.0, today=TODAY)) == 11


def test_floor_at_ratio_of_current_value():
    generator = SyntheticHistoryGenerator(HistoryParameters(floor_ratio=0.7), rng=random.Random(7))
    series = generator.generate(100.0, 300.0, days=200, drift_percent=80.0, today=TODAY)
    assert min(p.value for p in series) >= 70.0


def test_seeded_generator_is_reproducible():
    first = SyntheticHistoryGenerator(rng=random.Random(42)).generate(10.0, 30.0, days=20, today=TODAY)
    second = SyntheticHistoryGenerator(rng=random.Random(42)).generate(10.0, 30.0, days=20, today=TODAY)
    assert first == second


def test_non_positive_value_gives_flat_series():
    series = SyntheticHistoryGenerator().generate(0.0, 15.0, days=3, today=TODAY)
    assert [p.value for p in series] == [0.0, 0.0, 0.0, 0.0]


def test_negative_days_rejected():
    with pytest.raises(ValueError):
        SyntheticHistoryGenerator().generate(10.0, 15.0, days=-1)


class TestRealizedVolatility:

    def test_flat_series_has_zero_volatility(self):
        assert realized_volatility([10.0] * 20) == 0.0

    def test_too_few_closes_uses_default(self):
        assert realized_volatility([10.0]) == DEFAULT_REALIZED_VOLATILITY
        assert realized_volatility([]) == DEFAULT_REALIZED_VOLATILITY

    def test_alternating_series(self):
        # Log returns alternate +-r, so their deviation is r
        closes = [100.0, 110.0] * 10
        result = realized_volatility(closes, trading_days_per_year=252)
        assert result > 100.0

    def test_ignores_invalid_closes(self):
        assert realized_volatility([10.0, None, 0.0, 10.0]) == 0.0
