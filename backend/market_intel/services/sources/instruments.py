"""Instrument-quote adapter (commodities and market instruments)."""

import logging
from typing import Any, List, Optional, Sequence, Tuple
from urllib.parse import quote

from ..catalog import DEFAULT_INSTRUMENTS, InstrumentSpec
from ..errors import InvalidValue, MalformedPayload
from ..history import SyntheticHistoryGenerator
from ..records import MarketInstrument, RiskLevel, TrendDirection
from ..retry import RetryExecutor, Sleep
from ..scoring import (
    DEFAULT_VOLATILITY,
    calculate_risk_level,
    estimate_volatility,
    trend_direction,
)
from .base import BaseDataSource, Clock, DatasetKey, FetchOutcome, SourceResult, chart_result

logger = logging.getLogger(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}?interval=1d&range=5d"

# Rough month/quarter estimates from the daily move
MONTHLY_MULTIPLIER = 3
QUARTERLY_MULTIPLIER = 6


class InstrumentSource(BaseDataSource):
    """Fetch quotes for the tracked instruments one at a time."""

    dataset = DatasetKey.INSTRUMENTS

    def __init__(
        self,
        executor: RetryExecutor,
        instruments: Sequence[InstrumentSpec] = DEFAULT_INSTRUMENTS,
        history: Optional[SyntheticHistoryGenerator] = None,
        request_pause_seconds: float = 0.2,
        sleep: Optional[Sleep] = None,
        now: Optional[Clock] = None,
    ):
        super().__init__(executor, sleep=sleep, now=now)
        self.instruments = tuple(instruments)
        self.history = history or SyntheticHistoryGenerator()
        self.request_pause_seconds = request_pause_seconds

    async def fetch_all(self) -> SourceResult:
        outcomes: List[FetchOutcome] = []
        for index, spec in enumerate(self.instruments):
            if index and self.request_pause_seconds:
                await self._sleep(self.request_pause_seconds)
            outcomes.append(await self.fetch_one(spec))
        return SourceResult.from_outcomes(self.dataset, outcomes)

    async def fetch_one(self, spec: InstrumentSpec) -> FetchOutcome:
        return await self._outcome(
            spec.ticker,
            lambda: self._fetch_instrument(spec),
            lambda: self.fallback_record(spec),
        )

    async def _fetch_instrument(self, spec: InstrumentSpec) -> MarketInstrument:
        payload = await self.executor.fetch_json(CHART_URL.format(symbol=quote(spec.ticker, safe="")))
        record = self.parse_quote(spec, payload)
        logger.info(
            f"Fetched {spec.name}: ${record.current_price:.2f} ({record.daily_change_percent:+.2f}%)"
        )
        return record

    def parse_quote(self, spec: InstrumentSpec, payload: Any) -> MarketInstrument:
        """Build a live record from a chart payload.

        Raises:
            MalformedPayload: if the price or previous close is missing.
            InvalidValue: if the price is not strictly positive.
        """
        result = chart_result(payload, spec.ticker)
        meta = result["meta"]

        price = meta.get("regularMarketPrice")
        if not isinstance(price, (int, float)) or isinstance(price, bool):
            raise MalformedPayload(f"No regularMarketPrice for {spec.ticker}")
        if price <= 0:
            raise InvalidValue(f"Non-positive price {price} for {spec.ticker}")

        previous = meta.get("chartPreviousClose") or meta.get("previousClose")
        if not isinstance(previous, (int, float)) or previous <= 0:
            raise MalformedPayload(f"No previous close for {spec.ticker}")

        change = price - previous
        change_percent = change / previous * 100
        volatility = estimate_volatility(change_percent)

        return MarketInstrument(
            id=spec.id,
            name=spec.name,
            symbol=spec.symbol,
            ticker=spec.ticker,
            current_price=float(price),
            daily_change=change,
            daily_change_percent=change_percent,
            monthly_change_percent=change_percent * MONTHLY_MULTIPLIER,
            quarterly_change_percent=change_percent * QUARTERLY_MULTIPLIER,
            volatility=volatility,
            volume=_last_volume(result),
            risk_level=calculate_risk_level(change_percent, volatility),
            trend_direction=trend_direction(change_percent),
            price_impact=spec.price_impact,
            regional_impact=spec.regional_impact,
            last_updated=self._now(),
            historical_prices=tuple(
                self.history.generate(price, volatility, today=self._now().date())
            ),
        )

    def fallback_record(self, spec: InstrumentSpec) -> MarketInstrument:
        return MarketInstrument(
            id=spec.id,
            name=spec.name,
            symbol=spec.symbol,
            ticker=spec.ticker,
            current_price=0.0,
            daily_change=0.0,
            daily_change_percent=0.0,
            monthly_change_percent=0.0,
            quarterly_change_percent=0.0,
            volatility=DEFAULT_VOLATILITY,
            volume=None,
            risk_level=RiskLevel.LOW,
            trend_direction=TrendDirection.NEUTRAL,
            price_impact=spec.price_impact,
            regional_impact=spec.regional_impact,
            last_updated=self._now(),
            is_fallback=True,
        )

    def fallback_records(self) -> Tuple[MarketInstrument, ...]:
        return tuple(self.fallback_record(spec) for spec in self.instruments)


def _last_volume(result: Any) -> Optional[float]:
    try:
        volumes = result["indicators"]["quote"][0]["volume"]
    except (KeyError, IndexError, TypeError):
        return None
    if not volumes:
        return None
    last = volumes[-1]
    return None if last is None else float(last)
