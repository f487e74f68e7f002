"""Pytest configuration and fixtures."""

import json
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union
from unittest.mock import AsyncMock, Mock

import pytest
from httpx import AsyncClient, ASGITransport

from market_intel.main import app
from market_intel.models import Base, create_session_maker
from market_intel.routers.dashboard import get_orchestrator
from market_intel.services.cache_store import CacheStore
from market_intel.services.orchestrator import DashboardOrchestrator
from market_intel.services.records import (
    HistoricalPoint,
    MarketInstrument,
    NewsArticle,
    RiskLevel,
    TrendDirection,
)
from market_intel.services.retry import DIRECT_ROUTE, HttpResponse, RetryExecutor, RetryPolicy
from market_intel.services.sources import (
    BaseDataSource,
    DataSourceStatus,
    DatasetKey,
    NewsSource,
    SourceResult,
)

FIXED_NOW = datetime(2025, 6, 2, 15, 30, tzinfo=timezone.utc)

Reply = Union[HttpResponse, BaseException]


class FakeTransport:
    """Scripted transport: the first pattern contained in the URL picks the replies.

    A list of replies is consumed in order, the last one repeating.
    Unmatched URLs get a 404.
    """

    def __init__(self, replies: Optional[Dict[str, Union[Reply, List[Reply]]]] = None):
        self.replies = {k: (list(v) if isinstance(v, list) else [v]) for k, v in (replies or {}).items()}
        self.calls: List[str] = []

    async def __call__(self, url: str) -> HttpResponse:
        self.calls.append(url)
        for pattern, queue in self.replies.items():
            if pattern in url:
                reply = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(reply, BaseException):
                    raise reply
                return reply
        return HttpResponse(status=404, body="not found", url=url)

    def calls_to(self, pattern: str) -> List[str]:
        return [url for url in self.calls if pattern in url]


def json_reply(payload: Any, status: int = 200) -> HttpResponse:
    return HttpResponse(status=status, body=json.dumps(payload))


def chart_payload(
    price: Optional[float] = 100.0,
    previous: Optional[float] = 95.0,
    closes: Optional[List[Optional[float]]] = None,
    timestamps: Optional[List[int]] = None,
    volumes: Optional[List[Optional[float]]] = None,
    market_cap: Optional[float] = None,
) -> Dict[str, Any]:
    """Build a chart-resource payload."""
    meta: Dict[str, Any] = {}
    if price is not None:
        meta["regularMarketPrice"] = price
    if previous is not None:
        meta["chartPreviousClose"] = previous
    if market_cap is not None:
        meta["marketCap"] = market_cap
    quote: Dict[str, Any] = {"close": closes or []}
    if volumes is not None:
        quote["volume"] = volumes
    return {
        "chart": {
            "result": [{
                "meta": meta,
                "timestamp": timestamps or [],
                "indicators": {"quote": [quote]},
            }],
            "error": None,
        }
    }


def make_instrument(price: float = 100.0, **overrides) -> MarketInstrument:
    fields = dict(
        id="lumber",
        name="Lumber Futures",
        symbol="LBS",
        ticker="LBS=F",
        current_price=price,
        daily_change=5.0,
        daily_change_percent=5.26,
        monthly_change_percent=15.79,
        quarterly_change_percent=31.58,
        volatility=12.5,
        volume=1200.0,
        risk_level=RiskLevel.LOW,
        trend_direction=TrendDirection.UP,
        price_impact="Framing costs",
        regional_impact="Residential builds",
        last_updated=FIXED_NOW,
        historical_prices=(
            HistoricalPoint(date(2025, 6, 1), price * 0.98),
            HistoricalPoint(date(2025, 6, 2), price),
        ),
    )
    fields.update(overrides)
    return MarketInstrument(**fields)


def make_article(title: str = "Lumber prices ease") -> NewsArticle:
    return NewsArticle(title, "https://news.test/" + title.lower().replace(" ", "-"), "Reuters", FIXED_NOW)


@pytest.fixture
def no_sleep():
    """Sleep replacement that records delays without waiting."""
    return AsyncMock(return_value=None)


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW


@pytest.fixture
def make_executor(no_sleep):
    """Factory for a direct-route executor over a scripted transport."""

    def _make(transport: FakeTransport, max_attempts: int = 1) -> RetryExecutor:
        return RetryExecutor(
            [DIRECT_ROUTE],
            RetryPolicy(max_attempts=max_attempts, initial_backoff_seconds=0.01, timeout_seconds=1.0),
            transport=transport,
            sleep=no_sleep,
        )

    return _make


@pytest.fixture(scope="function")
async def session_maker(tmp_path):
    """File-backed SQLite database with the cache table created."""
    engine, maker = create_session_maker(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker

    await engine.dispose()


@pytest.fixture
async def cache_store(session_maker):
    return CacheStore(session_maker)


def mock_source(key: DatasetKey, records=(), errors=()) -> Mock:
    """A data source double whose run() returns a fixed result."""
    spec = NewsSource if key == DatasetKey.NEWS else BaseDataSource
    source = Mock(spec=spec)
    source.dataset = key
    source.run = AsyncMock(return_value=SourceResult(dataset=key, records=tuple(records), errors=tuple(errors)))
    source.fallback_records = Mock(return_value=())
    source.get_status = Mock(return_value=DataSourceStatus(dataset=key, healthy=True))
    if key == DatasetKey.NEWS:
        source.fetch_ticker_news = AsyncMock(return_value=[])
    return source


@pytest.fixture
def mock_sources():
    return {key: mock_source(key) for key in DatasetKey}


@pytest.fixture
def orchestrator(mock_sources, fixed_now):
    return DashboardOrchestrator(mock_sources, now=fixed_now)


@pytest.fixture(scope="function")
async def client(orchestrator):
    """Create test client bound to a test orchestrator."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
