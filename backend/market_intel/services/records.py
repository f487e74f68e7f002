"""Immutable domain records produced by the source adapters.

Every fetch builds wholly new records; nothing here is mutated after
construction. Records serialize to plain dicts for the cache store and
rebuild from them with ``from_dict``.
"""

from dataclasses import dataclass, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class RiskLevel(str, Enum):
    """Risk tiers, lowest first."""
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class FinancialHealth(str, Enum):
    """Financial health grades; UNKNOWN marks a fallback record."""
    EXCELLENT = "Excellent"
    STRONG = "Strong"
    MODERATE = "Moderate"
    WEAK = "Weak"
    UNKNOWN = "Unknown"


class InvestmentGrade(str, Enum):
    """Investment grades; NOT_RATED marks a fallback record."""
    A = "A"
    B_PLUS = "B+"
    B = "B"
    C_PLUS = "C+"
    C = "C"
    NOT_RATED = "N/A"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


MARKET_CAP_UNAVAILABLE = "N/A"
WEATHER_UNAVAILABLE = "Data Unavailable"


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: _encode(getattr(value, f.name)) for f in fields(value)}
    return value


def _opt_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


class _Record:
    """Mixin giving records a dict form."""

    def to_dict(self) -> Dict[str, Any]:
        return _encode(self)


@dataclass(frozen=True)
class HistoricalPoint(_Record):
    """One (date, value) observation."""
    date: date
    value: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalPoint":
        return cls(date=_parse_date(data["date"]), value=float(data["value"]))


def _points(items: Any) -> Tuple[HistoricalPoint, ...]:
    return tuple(HistoricalPoint.from_dict(item) for item in items or [])


@dataclass(frozen=True)
class MarketInstrument(_Record):
    """A commodity or market instrument quote with derived metrics.

    A ``current_price`` of zero is the "unavailable" sentinel: volatility and
    risk then hold their defaults and ``historical_prices`` is empty.
    ``historical_prices`` is synthetic, not real historical data.
    """
    id: str
    name: str
    symbol: str
    ticker: str
    current_price: float
    daily_change: float
    daily_change_percent: float
    monthly_change_percent: float
    quarterly_change_percent: float
    volatility: float
    volume: Optional[float]
    risk_level: RiskLevel
    trend_direction: TrendDirection
    price_impact: str
    regional_impact: str
    last_updated: datetime
    historical_prices: Tuple[HistoricalPoint, ...] = ()
    is_fallback: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketInstrument":
        return cls(
            id=data["id"],
            name=data["name"],
            symbol=data["symbol"],
            ticker=data["ticker"],
            current_price=float(data["current_price"]),
            daily_change=float(data["daily_change"]),
            daily_change_percent=float(data["daily_change_percent"]),
            monthly_change_percent=float(data["monthly_change_percent"]),
            quarterly_change_percent=float(data["quarterly_change_percent"]),
            volatility=float(data["volatility"]),
            volume=_opt_float(data.get("volume")),
            risk_level=RiskLevel(data["risk_level"]),
            trend_direction=TrendDirection(data["trend_direction"]),
            price_impact=data["price_impact"],
            regional_impact=data["regional_impact"],
            last_updated=_parse_datetime(data["last_updated"]),
            historical_prices=_points(data.get("historical_prices")),
            is_fallback=bool(data.get("is_fallback", False)),
        )


@dataclass(frozen=True)
class Supplier(_Record):
    """A publicly traded supplier with financial ratios and grades.

    Ratios that could not be obtained are ``None`` (unknown), never zero.
    """
    id: str
    ticker: str
    company: str
    focus_area: str
    regional_presence: str
    key_products: str
    pricing_power_assessment: str
    regional_relevance_score: int
    market_cap: str
    current_price: float
    gross_margin: Optional[float]
    operating_margin: Optional[float]
    profit_margin: Optional[float]
    revenue_growth: Optional[float]
    return_on_equity: Optional[float]
    pe_ratio: Optional[float]
    debt_equity: Optional[float]
    weekly_performance: float
    monthly_performance: float
    quarterly_performance: float
    financial_health: FinancialHealth
    investment_grade: InvestmentGrade
    last_updated: datetime
    historical_prices: Tuple[HistoricalPoint, ...] = ()
    is_fallback: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Supplier":
        return cls(
            id=data["id"],
            ticker=data["ticker"],
            company=data["company"],
            focus_area=data["focus_area"],
            regional_presence=data["regional_presence"],
            key_products=data["key_products"],
            pricing_power_assessment=data["pricing_power_assessment"],
            regional_relevance_score=int(data["regional_relevance_score"]),
            market_cap=data["market_cap"],
            current_price=float(data["current_price"]),
            gross_margin=_opt_float(data.get("gross_margin")),
            operating_margin=_opt_float(data.get("operating_margin")),
            profit_margin=_opt_float(data.get("profit_margin")),
            revenue_growth=_opt_float(data.get("revenue_growth")),
            return_on_equity=_opt_float(data.get("return_on_equity")),
            pe_ratio=_opt_float(data.get("pe_ratio")),
            debt_equity=_opt_float(data.get("debt_equity")),
            weekly_performance=float(data["weekly_performance"]),
            monthly_performance=float(data["monthly_performance"]),
            quarterly_performance=float(data["quarterly_performance"]),
            financial_health=FinancialHealth(data["financial_health"]),
            investment_grade=InvestmentGrade(data["investment_grade"]),
            last_updated=_parse_datetime(data["last_updated"]),
            historical_prices=_points(data.get("historical_prices")),
            is_fallback=bool(data.get("is_fallback", False)),
        )


@dataclass(frozen=True)
class EconomicIndicator(_Record):
    """A rate, index or sector proxy with its recent series."""
    id: str
    name: str
    symbol: str
    value: float
    previous_value: float
    change: float
    change_percent: float
    unit: str
    description: str
    source: str
    last_updated: datetime
    historical_data: Tuple[HistoricalPoint, ...] = ()
    is_fallback: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EconomicIndicator":
        return cls(
            id=data["id"],
            name=data["name"],
            symbol=data["symbol"],
            value=float(data["value"]),
            previous_value=float(data["previous_value"]),
            change=float(data["change"]),
            change_percent=float(data["change_percent"]),
            unit=data["unit"],
            description=data["description"],
            source=data["source"],
            last_updated=_parse_datetime(data["last_updated"]),
            historical_data=_points(data.get("historical_data")),
            is_fallback=bool(data.get("is_fallback", False)),
        )


@dataclass(frozen=True)
class DailyForecast(_Record):
    date: date
    day_name: str
    high: int
    low: int
    condition: str
    precipitation_probability: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyForecast":
        return cls(
            date=_parse_date(data["date"]),
            day_name=data["day_name"],
            high=int(data["high"]),
            low=int(data["low"]),
            condition=data["condition"],
            precipitation_probability=int(data["precipitation_probability"]),
        )


@dataclass(frozen=True)
class WeatherLocation(_Record):
    """Current conditions and daily forecast for one named place."""
    location: str
    temperature: float
    wind_speed: float
    humidity: Optional[float]
    precipitation_probability: Optional[float]
    condition: str
    icon: str
    weather_code: Optional[int]
    time: datetime
    forecast: Tuple[DailyForecast, ...] = ()
    is_fallback: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherLocation":
        code = data.get("weather_code")
        return cls(
            location=data["location"],
            temperature=float(data["temperature"]),
            wind_speed=float(data["wind_speed"]),
            humidity=_opt_float(data.get("humidity")),
            precipitation_probability=_opt_float(data.get("precipitation_probability")),
            condition=data["condition"],
            icon=data["icon"],
            weather_code=None if code is None else int(code),
            time=_parse_datetime(data["time"]),
            forecast=tuple(DailyForecast.from_dict(item) for item in data.get("forecast") or []),
            is_fallback=bool(data.get("is_fallback", False)),
        )


@dataclass(frozen=True)
class NewsArticle(_Record):
    """A headline; its title is its identity for deduplication."""
    title: str
    url: str
    source: str
    published_at: datetime

    @property
    def is_fallback(self) -> bool:
        return False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NewsArticle":
        return cls(
            title=data["title"],
            url=data["url"],
            source=data["source"],
            published_at=_parse_datetime(data["published_at"]),
        )
