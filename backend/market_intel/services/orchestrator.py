"""Aggregation orchestrator.

Runs the five dataset adapters as independent concurrent tasks. Each
completion replaces its dataset in the state store, persists it to the cache
when it came from the network, and clears its in-flight flag. The settling
flag is cleared once, when the last dataset of the most recent run completes.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from .cache_store import CacheStore
from .config import AcquisitionSettings
from .dashboard_state import DashboardState, StateStore
from .errors import ErrorKind
from .history import SyntheticHistoryGenerator
from .logging_service import FetchLogEntry, FetchLogService
from .records import NewsArticle
from .retry import RetryExecutor, Sleep, Transport
from .sources import (
    BaseDataSource,
    DatasetKey,
    IndicatorSource,
    InstrumentSource,
    NewsSource,
    SourceError,
    SourceResult,
    SupplierSource,
    WeatherSource,
)
from .sources.base import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass
class RunHandle:
    """A launched ``load``/``refresh``; ``wait()`` joins all of its dataset tasks."""
    generation: int
    trigger: str
    tasks: List[asyncio.Task] = field(default_factory=list)
    completed: int = 0

    @property
    def done(self) -> bool:
        return all(task.done() for task in self.tasks)

    async def wait(self) -> None:
        await asyncio.gather(*self.tasks)


class DashboardOrchestrator:
    """Coordinates the adapters, the state store and the cache store."""

    def __init__(
        self,
        sources: Dict[DatasetKey, BaseDataSource],
        cache: Optional[CacheStore] = None,
        store: Optional[StateStore] = None,
        fetch_log: Optional[FetchLogService] = None,
        now: Optional[Clock] = None,
    ):
        missing = set(DatasetKey) - set(sources)
        if missing:
            raise ValueError(f"Missing sources for: {sorted(k.value for k in missing)}")
        self.sources = dict(sources)
        self.cache = cache
        self.store = store or StateStore(DashboardState(is_loading=True))
        self.fetch_log = fetch_log
        self._now = now or utc_now
        self._generation = 0
        self._active: Dict[DatasetKey, int] = {key: 0 for key in DatasetKey}
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: AcquisitionSettings,
        cache: Optional[CacheStore] = None,
        transport: Optional[Transport] = None,
        sleep: Optional[Sleep] = None,
    ) -> "DashboardOrchestrator":
        """Wire up the executor and all five adapters from settings."""
        executor = RetryExecutor(settings.routes, settings.retry, transport=transport, sleep=sleep)
        history = SyntheticHistoryGenerator(settings.history)
        sources: Dict[DatasetKey, BaseDataSource] = {
            DatasetKey.INSTRUMENTS: InstrumentSource(
                executor,
                settings.instruments,
                history=history,
                request_pause_seconds=settings.instrument_pause_seconds,
                sleep=sleep,
            ),
            DatasetKey.SUPPLIERS: SupplierSource(
                executor,
                settings.suppliers,
                history=history,
                batch_size=settings.supplier_batch_size,
                batch_pause_seconds=settings.supplier_batch_pause_seconds,
                sleep=sleep,
            ),
            DatasetKey.INDICATORS: IndicatorSource(
                executor,
                settings.indicators,
                request_pause_seconds=settings.indicator_pause_seconds,
                sleep=sleep,
            ),
            DatasetKey.NEWS: NewsSource(
                executor,
                tickers=settings.news.tickers,
                topic_feeds=settings.news.topic_feeds,
                blocked_sources=settings.news.blocked_sources,
                keywords=settings.news.keywords,
                max_articles=settings.news.max_articles,
                ticker_article_limit=settings.news.ticker_article_limit,
                sleep=sleep,
            ),
            DatasetKey.WEATHER: WeatherSource(
                executor,
                settings.weather.locations,
                timezone_name=settings.weather.timezone,
                forecast_days=settings.weather.forecast_days,
                sleep=sleep,
            ),
        }
        fetch_log = FetchLogService(settings.fetch_log_dir) if settings.fetch_log_dir else None
        return cls(sources, cache=cache, fetch_log=fetch_log)

    @property
    def state(self) -> DashboardState:
        return self.store.state

    async def restore_from_cache(self) -> bool:
        """Populate the store from the cache before any network activity.

        Returns:
            True if any market dataset (instruments, suppliers, indicators) was cached.
        """
        if self.cache is None:
            return False

        for key in DatasetKey:
            records = await self.cache.load(key)
            if records:
                self.store.replace_dataset(key, records)
        last_updated = await self.cache.load_last_updated()
        if last_updated is not None:
            self.store.set_last_updated(last_updated)

        has_cache = self.state.has_cached_data
        if has_cache:
            self.store.set_loading(False)
            logger.info("Restored dashboard datasets from cache")
        return has_cache

    def load(self) -> RunHandle:
        """First population: show the loading indicator until the first dataset arrives."""
        if not self.state.has_cached_data:
            self.store.set_loading(True)
        return self._launch("load")

    def refresh(self) -> RunHandle:
        """Re-populate every dataset in the background."""
        return self._launch("refresh")

    async def refresh_dataset(self, key: DatasetKey) -> SourceResult:
        """Run one adapter in isolation and apply its result."""
        self._begin(key)
        try:
            return await self._run_source(key, "single")
        finally:
            self._finish(key)

    async def fetch_ticker_news(self, ticker: str) -> List[NewsArticle]:
        source = self.sources[DatasetKey.NEWS]
        return await source.fetch_ticker_news(ticker)

    def source_status(self, key: DatasetKey):
        return self.sources[key].get_status()

    def cancel(self) -> None:
        """Cancel every dataset task still running (used at shutdown)."""
        for task in list(self._tasks):
            task.cancel()

    def _launch(self, trigger: str) -> RunHandle:
        self._generation += 1
        run = RunHandle(generation=self._generation, trigger=trigger)
        self.store.set_settling(True)
        for key in DatasetKey:
            self._begin(key)
        for key in DatasetKey:
            task = asyncio.create_task(self._run_in(run, key))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            run.tasks.append(task)
        logger.info(f"Started {trigger} of {len(run.tasks)} datasets")
        return run

    async def _run_in(self, run: RunHandle, key: DatasetKey) -> None:
        try:
            await self._run_source(key, run.trigger)
        finally:
            self._finish(key)
            if run.trigger == "load" and self.state.is_loading:
                self.store.set_loading(False)
            run.completed += 1
            if run.completed == len(DatasetKey) and run.generation == self._generation:
                self.store.set_settling(False)
                logger.info(f"All datasets settled after {run.trigger}")

    async def _run_source(self, key: DatasetKey, trigger: str) -> SourceResult:
        source = self.sources[key]
        started = time.monotonic()
        try:
            result = await source.run()
        except Exception as e:
            logger.error(f"Unexpected error in {key.value} source: {e}")
            result = SourceResult(
                dataset=key,
                records=source.fallback_records(),
                errors=(SourceError(resource=key.value, kind=ErrorKind.UNEXPECTED, message=str(e)),),
            )

        try:
            await self._apply(key, result)
        except Exception as e:
            logger.error(f"Failed to apply {key.value} result: {e}")

        self._log_fetch(key, trigger, result, started)
        return result

    async def _apply(self, key: DatasetKey, result: SourceResult) -> None:
        if result.is_live:
            self.store.replace_dataset(key, result.records)
            timestamp = self._now()
            self.store.set_last_updated(timestamp)
            if self.cache is not None:
                await self.cache.save(key, result.records)
                await self.cache.save_last_updated(timestamp)
            logger.info(
                f"Dataset {key.value} updated with {len(result.records)} records "
                f"({result.fallback_count} fallback)"
            )
        elif self.state.dataset(key):
            logger.warning(f"Dataset {key.value} fetch failed, keeping previous snapshot")
        else:
            self.store.replace_dataset(key, result.records)
            logger.warning(f"Dataset {key.value} fetch failed, showing fallback records")

    def _begin(self, key: DatasetKey) -> None:
        self._active[key] += 1
        self.store.set_in_flight(key, True)

    def _finish(self, key: DatasetKey) -> None:
        self._active[key] -= 1
        if self._active[key] <= 0:
            self._active[key] = 0
            self.store.set_in_flight(key, False)

    def _log_fetch(self, key: DatasetKey, trigger: str, result: SourceResult, started: float) -> None:
        if self.fetch_log is None:
            return
        self.fetch_log.log_fetch(FetchLogEntry(
            timestamp=datetime.utcnow(),
            dataset=key.value,
            trigger=trigger,
            records=len(result.records),
            live_records=result.live_count,
            fallback_records=result.fallback_count,
            errors=len(result.errors),
            duration_ms=(time.monotonic() - started) * 1000,
        ))
