"""Economic-indicator adapter (rates, indices and sector ETFs)."""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple
from urllib.parse import quote

from ..catalog import DEFAULT_INDICATORS, IndicatorSpec
from ..errors import MalformedPayload
from ..records import EconomicIndicator, HistoricalPoint
from ..retry import RetryExecutor, Sleep
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

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}?interval=1d&range=1mo"


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def series_points(timestamps: Sequence[Any], closes: Sequence[Any]) -> List[HistoricalPoint]:
    """Pair timestamps with closes, keeping only non-null, positive values."""
    points: List[HistoricalPoint] = []
    for stamp, close in zip(timestamps, closes):
        value = _number(close)
        if value is None or value <= 0 or _number(stamp) is None:
            continue
        day = datetime.fromtimestamp(stamp, tz=timezone.utc).date()
        points.append(HistoricalPoint(date=day, value=value))
    return points


class IndicatorSource(BaseDataSource):
    """Fetch one-month series for the tracked economic indicators."""

    dataset = DatasetKey.INDICATORS

    def __init__(
        self,
        executor: RetryExecutor,
        indicators: Sequence[IndicatorSpec] = DEFAULT_INDICATORS,
        request_pause_seconds: float = 0.2,
        sleep: Optional[Sleep] = None,
        now: Optional[Clock] = None,
    ):
        super().__init__(executor, sleep=sleep, now=now)
        self.indicators = tuple(indicators)
        self.request_pause_seconds = request_pause_seconds

    async def fetch_all(self) -> SourceResult:
        outcomes: List[FetchOutcome] = []
        for index, spec in enumerate(self.indicators):
            if index and self.request_pause_seconds:
                await self._sleep(self.request_pause_seconds)
            outcomes.append(await self.fetch_one(spec))
        return SourceResult.from_outcomes(self.dataset, outcomes)

    async def fetch_one(self, spec: IndicatorSpec) -> FetchOutcome:
        return await self._outcome(
            spec.symbol,
            lambda: self._fetch_indicator(spec),
            lambda: self.fallback_record(spec),
        )

    async def _fetch_indicator(self, spec: IndicatorSpec) -> EconomicIndicator:
        payload = await self.executor.fetch_json(CHART_URL.format(symbol=quote(spec.symbol, safe="")))
        record = self.parse_series(spec, payload)
        logger.info(
            f"Fetched {spec.name}: {record.value:.2f}{spec.unit} ({record.change_percent:+.2f}%)"
        )
        return record

    def parse_series(self, spec: IndicatorSpec, payload: Any) -> EconomicIndicator:
        """Build a live record from a chart payload.

        Raises:
            MalformedPayload: if neither the metadata nor the series yields a value.
        """
        result = chart_result(payload, spec.symbol)
        meta = result["meta"]
        closes = chart_closes(result)
        numeric = [c for c in (_number(c) for c in closes) if c is not None]

        current = _number(meta.get("regularMarketPrice")) or (numeric[-1] if numeric else None)
        if current is None:
            raise MalformedPayload(f"No current value for {spec.symbol}")
        previous = (
            _number(meta.get("chartPreviousClose"))
            or _number(meta.get("previousClose"))
            or (numeric[-2] if len(numeric) >= 2 else None)
            or 0.0
        )
        change = current - previous if previous else 0.0
        change_percent = change / previous * 100 if previous else 0.0

        return EconomicIndicator(
            id=spec.id,
            name=spec.name,
            symbol=spec.symbol,
            value=current,
            previous_value=previous,
            change=change,
            change_percent=change_percent,
            unit=spec.unit,
            description=spec.description,
            source=spec.source,
            last_updated=self._now(),
            historical_data=tuple(series_points(result.get("timestamp") or [], closes)),
        )

    def fallback_record(self, spec: IndicatorSpec) -> EconomicIndicator:
        return EconomicIndicator(
            id=spec.id,
            name=spec.name,
            symbol=spec.symbol,
            value=0.0,
            previous_value=0.0,
            change=0.0,
            change_percent=0.0,
            unit=spec.unit,
            description=spec.description,
            source=spec.source,
            last_updated=self._now(),
            is_fallback=True,
        )

    def fallback_records(self) -> Tuple[EconomicIndicator, ...]:
        return tuple(self.fallback_record(spec) for spec in self.indicators)
