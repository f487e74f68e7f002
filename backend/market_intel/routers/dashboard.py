"""Dashboard API router.

Provides endpoints for reading and refreshing the dashboard datasets:
- Get the full snapshot with flags
- Get a single dataset
- Trigger a background refresh of all datasets
- Refresh one dataset in isolation
- Get headlines for a single ticker
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..services.orchestrator import DashboardOrchestrator
from ..services.sources import DatasetKey

router = APIRouter()

_orchestrator: Optional[DashboardOrchestrator] = None


def set_orchestrator(orchestrator: Optional[DashboardOrchestrator]) -> None:
    """Install the orchestrator served by this router (done at startup)."""
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> DashboardOrchestrator:
    """Dependency for the running orchestrator."""
    if _orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard is not initialized"
        )
    return _orchestrator


class SourceStatusResponse(BaseModel):
    """Health of one dataset's source."""
    healthy: bool
    last_fetch: Optional[str]
    last_error: Optional[str]


class DashboardResponse(BaseModel):
    """Full dashboard snapshot."""
    instruments: List[Dict[str, Any]]
    suppliers: List[Dict[str, Any]]
    indicators: List[Dict[str, Any]]
    news: List[Dict[str, Any]]
    weather: List[Dict[str, Any]]
    in_flight: List[str]
    is_loading: bool
    is_settling: bool
    last_updated: Optional[str]


class DatasetResponse(BaseModel):
    """One dataset with its flag and source status."""
    key: str
    in_flight: bool
    records: List[Dict[str, Any]]
    source: SourceStatusResponse


class RefreshResponse(BaseModel):
    """Flags right after a refresh was triggered."""
    started: bool
    is_settling: bool
    in_flight: List[str]


class DatasetRefreshResponse(BaseModel):
    """Outcome of a single-dataset refresh."""
    key: str
    records: List[Dict[str, Any]]
    live_records: int
    fallback_records: int
    errors: List[Dict[str, str]]


def _dataset_key(key: str) -> DatasetKey:
    try:
        return DatasetKey(key)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown dataset: {key}"
        )


@router.get("", response_model=DashboardResponse)
async def get_dashboard(orchestrator: DashboardOrchestrator = Depends(get_orchestrator)):
    """Get every dataset plus the loading/settling flags."""
    return orchestrator.state.to_dict()


@router.get("/datasets/{key}", response_model=DatasetResponse)
async def get_dataset(key: str, orchestrator: DashboardOrchestrator = Depends(get_orchestrator)):
    """Get one dataset's records and its in-flight flag."""
    dataset = _dataset_key(key)
    state = orchestrator.state
    source_status = orchestrator.source_status(dataset)
    return DatasetResponse(
        key=dataset.value,
        in_flight=dataset in state.in_flight,
        records=[record.to_dict() for record in state.dataset(dataset)],
        source=SourceStatusResponse(
            healthy=source_status.healthy,
            last_fetch=source_status.last_fetch.isoformat() if source_status.last_fetch else None,
            last_error=source_status.last_error,
        ),
    )


@router.post("/refresh", response_model=RefreshResponse, status_code=status.HTTP_202_ACCEPTED)
async def refresh_dashboard(orchestrator: DashboardOrchestrator = Depends(get_orchestrator)):
    """Start refreshing all datasets; returns without waiting for them."""
    orchestrator.refresh()
    state = orchestrator.state
    return RefreshResponse(
        started=True,
        is_settling=state.is_settling,
        in_flight=sorted(k.value for k in state.in_flight),
    )


@router.post("/datasets/{key}/refresh", response_model=DatasetRefreshResponse)
async def refresh_dataset(key: str, orchestrator: DashboardOrchestrator = Depends(get_orchestrator)):
    """Run one dataset's source in isolation and return what it produced."""
    dataset = _dataset_key(key)
    result = await orchestrator.refresh_dataset(dataset)
    return DatasetRefreshResponse(
        key=dataset.value,
        records=[record.to_dict() for record in result.records],
        live_records=result.live_count,
        fallback_records=result.fallback_count,
        errors=[
            {"resource": e.resource, "kind": e.kind.value, "message": e.message}
            for e in result.errors
        ],
    )


@router.get("/news/{ticker}")
async def get_ticker_news(ticker: str, orchestrator: DashboardOrchestrator = Depends(get_orchestrator)):
    """Get relevant headlines for one ticker."""
    articles = await orchestrator.fetch_ticker_news(ticker.upper())
    return {
        "ticker": ticker.upper(),
        "articles": [article.to_dict() for article in articles],
    }
