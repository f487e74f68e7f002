"""Supplier-financials adapter.

Each supplier needs a quarter-range price series (required) and an extended
statistics resource (best-effort). Suppliers are fetched in small concurrent
batches with a pause between batches to stay under the upstream's aggregate
per-caller rate limit.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

from ..catalog import DEFAULT_SUPPLIERS, SupplierSpec
from ..errors import DataAcquisitionError, InvalidValue
from ..history import SyntheticHistoryGenerator, realized_volatility
from ..records import (
    MARKET_CAP_UNAVAILABLE,
    FinancialHealth,
    InvestmentGrade,
    Supplier,
)
from ..retry import RetryExecutor, Sleep
from ..scoring import (
    calculate_financial_health,
    calculate_investment_grade,
    format_market_cap,
)
from .base import (
    BaseDataSource,
    Clock,
    DatasetKey,
    FetchOutcome,
    SourceResult,
    chart_closes,
    chart_result,
)

logger = logging.getLogger(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}?interval=1d&range=3mo"
STATS_URL = (
    "https://query1.finance.yahoo.com/v10/finance/quoteSummary/{symbol}"
    "?modules=defaultKeyStatistics,financialData"
)

# Offsets from the end of the daily series
WEEK_OFFSET = 6
MONTH_OFFSET = 22

RATIO_FIELDS = (
    "gross_margin",
    "operating_margin",
    "profit_margin",
    "revenue_growth",
    "return_on_equity",
    "pe_ratio",
    "debt_equity",
)


def _raw(section: Optional[Dict[str, Any]], name: str) -> Optional[float]:
    """``section[name].raw``, with zero/absent meaning unknown."""
    if not isinstance(section, dict):
        return None
    entry = section.get(name)
    value = entry.get("raw") if isinstance(entry, dict) else None
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not value:
        return None
    return float(value)


def _percent(value: Optional[float]) -> Optional[float]:
    return None if value is None else value * 100


def _per_hundred(value: Optional[float]) -> Optional[float]:
    return None if value is None else value / 100


def parse_statistics(payload: Any) -> Dict[str, Optional[float]]:
    """Extract the ratio fields from an extended-statistics payload.

    Margins, growth and ROE arrive as fractions and are returned in percent;
    debt/equity arrives in percent and is returned as a plain ratio.
    """
    try:
        result = payload["quoteSummary"]["result"][0] or {}
    except (KeyError, IndexError, TypeError):
        result = {}
    key_stats = result.get("defaultKeyStatistics") if isinstance(result, dict) else None
    financial = result.get("financialData") if isinstance(result, dict) else None

    return {
        "pe_ratio": _raw(key_stats, "forwardPE") or _raw(key_stats, "trailingPE"),
        "gross_margin": _percent(_raw(financial, "grossMargins")),
        "operating_margin": _percent(_raw(financial, "operatingMargins")),
        "profit_margin": _percent(_raw(financial, "profitMargins")),
        "revenue_growth": _percent(_raw(financial, "revenueGrowth")),
        "return_on_equity": _percent(_raw(financial, "returnOnEquity")),
        "debt_equity": _per_hundred(_raw(financial, "debtToEquity")),
    }


def _performance(current: float, past: float) -> float:
    if not past:
        return 0.0
    return (current - past) / past * 100


def series_performance(closes: Sequence[float], current: float) -> Tuple[float, float, float]:
    """Weekly, monthly and quarterly % change from positions in a daily series.

    Offsets are clamped to the available length; an empty series yields zeros.
    """
    if not closes:
        return 0.0, 0.0, 0.0
    week_ago = closes[max(len(closes) - WEEK_OFFSET, 0)]
    month_ago = closes[max(len(closes) - MONTH_OFFSET, 0)]
    quarter_ago = closes[0]
    return (
        _performance(current, week_ago),
        _performance(current, month_ago),
        _performance(current, quarter_ago),
    )


class SupplierSource(BaseDataSource):
    """Fetch price series and financial ratios for the tracked suppliers."""

    dataset = DatasetKey.SUPPLIERS

    def __init__(
        self,
        executor: RetryExecutor,
        suppliers: Sequence[SupplierSpec] = DEFAULT_SUPPLIERS,
        history: Optional[SyntheticHistoryGenerator] = None,
        batch_size: int = 3,
        batch_pause_seconds: float = 1.0,
        sleep: Optional[Sleep] = None,
        now: Optional[Clock] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        super().__init__(executor, sleep=sleep, now=now)
        self.suppliers = tuple(suppliers)
        self.history = history or SyntheticHistoryGenerator()
        self.batch_size = batch_size
        self.batch_pause_seconds = batch_pause_seconds

    async def fetch_all(self) -> SourceResult:
        outcomes: List[FetchOutcome] = []
        for start in range(0, len(self.suppliers), self.batch_size):
            if start and self.batch_pause_seconds:
                await self._sleep(self.batch_pause_seconds)
            batch = self.suppliers[start:start + self.batch_size]
            outcomes.extend(await asyncio.gather(*(self.fetch_one(spec) for spec in batch)))
        return SourceResult.from_outcomes(self.dataset, outcomes)

    async def fetch_one(self, spec: SupplierSpec) -> FetchOutcome:
        return await self._outcome(
            spec.ticker,
            lambda: self._fetch_supplier(spec),
            lambda: self.fallback_record(spec),
        )

    async def _fetch_supplier(self, spec: SupplierSpec) -> Supplier:
        symbol = quote(spec.ticker, safe="")
        chart = await self.executor.fetch_json(CHART_URL.format(symbol=symbol))

        try:
            stats = parse_statistics(await self.executor.fetch_json(STATS_URL.format(symbol=symbol)))
        except DataAcquisitionError as e:
            logger.warning(f"Could not fetch financial ratios for {spec.ticker}: {e}")
            stats = dict.fromkeys(RATIO_FIELDS)

        record = self.build_record(spec, chart, stats)
        logger.info(
            f"Fetched {spec.ticker} ({spec.company}): ${record.current_price:.2f} "
            f"({record.quarterly_performance:+.2f}% QTD)"
        )
        return record

    def build_record(
        self,
        spec: SupplierSpec,
        chart_payload: Any,
        stats: Dict[str, Optional[float]],
    ) -> Supplier:
        """Combine a chart payload and parsed ratios into a live record.

        Raises:
            MalformedPayload: if the chart payload has no result.
            InvalidValue: if no positive price can be determined.
        """
        result = chart_result(chart_payload, spec.ticker)
        meta = result["meta"]
        closes = [c for c in chart_closes(result) if isinstance(c, (int, float)) and c > 0]

        price = meta.get("regularMarketPrice") or (closes[-1] if closes else None)
        if not isinstance(price, (int, float)) or price <= 0:
            raise InvalidValue(f"No positive price for {spec.ticker}")
        price = float(price)

        weekly, monthly, quarterly = series_performance(closes, price)
        market_cap = meta.get("marketCap")
        profit_margin = stats.get("profit_margin")
        volatility = realized_volatility(closes, self.history.params.trading_days_per_year)

        return Supplier(
            id=spec.ticker.lower(),
            ticker=spec.ticker,
            company=spec.company,
            focus_area=spec.focus_area,
            regional_presence=spec.regional_presence,
            key_products=spec.key_products,
            pricing_power_assessment=spec.pricing_power_assessment,
            regional_relevance_score=spec.regional_relevance_score,
            market_cap=format_market_cap(market_cap if market_cap else None),
            current_price=price,
            gross_margin=stats.get("gross_margin"),
            operating_margin=stats.get("operating_margin"),
            profit_margin=profit_margin,
            revenue_growth=stats.get("revenue_growth"),
            return_on_equity=stats.get("return_on_equity"),
            pe_ratio=stats.get("pe_ratio"),
            debt_equity=stats.get("debt_equity"),
            weekly_performance=weekly,
            monthly_performance=monthly,
            quarterly_performance=quarterly,
            financial_health=calculate_financial_health(
                profit_margin, stats.get("debt_equity"), stats.get("return_on_equity")
            ),
            investment_grade=calculate_investment_grade(
                stats.get("pe_ratio"), profit_margin, quarterly
            ),
            last_updated=self._now(),
            historical_prices=tuple(self.history.generate(
                price, volatility, drift_percent=quarterly, today=self._now().date()
            )),
        )

    def fallback_record(self, spec: SupplierSpec) -> Supplier:
        return Supplier(
            id=spec.ticker.lower(),
            ticker=spec.ticker,
            company=spec.company,
            focus_area=spec.focus_area,
            regional_presence=spec.regional_presence,
            key_products=spec.key_products,
            pricing_power_assessment=spec.pricing_power_assessment,
            regional_relevance_score=spec.regional_relevance_score,
            market_cap=MARKET_CAP_UNAVAILABLE,
            current_price=0.0,
            gross_margin=None,
            operating_margin=None,
            profit_margin=None,
            revenue_growth=None,
            return_on_equity=None,
            pe_ratio=None,
            debt_equity=None,
            weekly_performance=0.0,
            monthly_performance=0.0,
            quarterly_performance=0.0,
            financial_health=FinancialHealth.UNKNOWN,
            investment_grade=InvestmentGrade.NOT_RATED,
            last_updated=self._now(),
            is_fallback=True,
        )

    def fallback_records(self) -> Tuple[Supplier, ...]:
        return tuple(self.fallback_record(spec) for spec in self.suppliers)
