"""Derived scoring functions.

Pure, deterministic, table-driven classifications used by the source
adapters. ``None`` inputs are unknown values: they contribute no points and
never raise.
"""

from typing import Optional, Sequence, Tuple

from .records import FinancialHealth, InvestmentGrade, RiskLevel, TrendDirection

VOLATILITY_FLOOR = 10.0
VOLATILITY_CEILING = 50.0
VOLATILITY_BASE = 15.0
VOLATILITY_SLOPE = 5.0
DEFAULT_VOLATILITY = 15.0

TREND_THRESHOLD_PERCENT = 0.5

# (daily change threshold, volatility threshold, level), checked top-down
RISK_TABLE: Sequence[Tuple[float, float, RiskLevel]] = (
    (5.0, 40.0, RiskLevel.CRITICAL),
    (3.0, 25.0, RiskLevel.HIGH),
    (1.5, 15.0, RiskLevel.MODERATE),
)

# Breakpoints scoring 3/2/1 points
MARGIN_BREAKPOINTS = (15.0, 8.0, 3.0)
DEBT_EQUITY_BREAKPOINTS = (0.5, 1.0, 2.0)
ROE_BREAKPOINTS = (20.0, 12.0, 5.0)

HEALTH_TABLE: Sequence[Tuple[int, FinancialHealth]] = (
    (7, FinancialHealth.EXCELLENT),
    (5, FinancialHealth.STRONG),
    (3, FinancialHealth.MODERATE),
)

GRADE_TABLE: Sequence[Tuple[int, InvestmentGrade]] = (
    (5, InvestmentGrade.A),
    (4, InvestmentGrade.B_PLUS),
    (3, InvestmentGrade.B),
    (2, InvestmentGrade.C_PLUS),
)


def calculate_risk_level(daily_change_percent: float, volatility: float) -> RiskLevel:
    """Classify risk from the absolute daily % change and volatility."""
    abs_change = abs(daily_change_percent)
    for change_limit, volatility_limit, level in RISK_TABLE:
        if abs_change > change_limit or volatility > volatility_limit:
            return level
    return RiskLevel.LOW


def estimate_volatility(daily_change_percent: float) -> float:
    """Linear volatility estimate from the daily % change, clamped to [10, 50].

    This is an approximation from a single day's move, not a statistical
    volatility.
    """
    raw = abs(daily_change_percent) * VOLATILITY_SLOPE + VOLATILITY_BASE
    return max(VOLATILITY_FLOOR, min(VOLATILITY_CEILING, raw))


def trend_direction(change_percent: float) -> TrendDirection:
    if change_percent > TREND_THRESHOLD_PERCENT:
        return TrendDirection.UP
    if change_percent < -TREND_THRESHOLD_PERCENT:
        return TrendDirection.DOWN
    return TrendDirection.NEUTRAL


def _points_above(value: Optional[float], breakpoints: Tuple[float, float, float]) -> int:
    if value is None:
        return 0
    for points, limit in zip((3, 2, 1), breakpoints):
        if value > limit:
            return points
    return 0


def _points_below(value: Optional[float], breakpoints: Tuple[float, float, float]) -> int:
    if value is None:
        return 0
    for points, limit in zip((3, 2, 1), breakpoints):
        if value < limit:
            return points
    return 0


def financial_health_score(
    profit_margin: Optional[float],
    debt_equity: Optional[float],
    return_on_equity: Optional[float],
) -> int:
    """Sum of 0-3 points per metric (0-9 total)."""
    return (
        _points_above(profit_margin, MARGIN_BREAKPOINTS)
        + _points_below(debt_equity, DEBT_EQUITY_BREAKPOINTS)
        + _points_above(return_on_equity, ROE_BREAKPOINTS)
    )


def calculate_financial_health(
    profit_margin: Optional[float],
    debt_equity: Optional[float],
    return_on_equity: Optional[float],
) -> FinancialHealth:
    score = financial_health_score(profit_margin, debt_equity, return_on_equity)
    for minimum, health in HEALTH_TABLE:
        if score >= minimum:
            return health
    return FinancialHealth.WEAK


def investment_grade_score(
    pe_ratio: Optional[float],
    profit_margin: Optional[float],
    quarterly_performance: float,
) -> int:
    score = 0
    # A non-positive P/E (losses) earns nothing
    if pe_ratio is not None and pe_ratio > 0:
        if pe_ratio < 15:
            score += 2
        elif pe_ratio < 25:
            score += 1
    if profit_margin is not None and profit_margin > 10:
        score += 2
    if quarterly_performance > 5:
        score += 2
    elif quarterly_performance > 0:
        score += 1
    return score


def calculate_investment_grade(
    pe_ratio: Optional[float],
    profit_margin: Optional[float],
    quarterly_performance: float,
) -> InvestmentGrade:
    score = investment_grade_score(pe_ratio, profit_margin, quarterly_performance)
    for minimum, grade in GRADE_TABLE:
        if score >= minimum:
            return grade
    return InvestmentGrade.C


def format_market_cap(market_cap: Optional[float]) -> str:
    """Format a market capitalization as ``$1.23T``/``$4.56B``/``$7.89M``."""
    if market_cap is None:
        return "N/A"
    if market_cap >= 1e12:
        return f"${market_cap / 1e12:.2f}T"
    if market_cap >= 1e9:
        return f"${market_cap / 1e9:.2f}B"
    if market_cap >= 1e6:
        return f"${market_cap / 1e6:.2f}M"
    return f"${market_cap:.0f}"
