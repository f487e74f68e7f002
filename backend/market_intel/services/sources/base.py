"""Common adapter machinery.

Adapters never raise to their caller: every per-resource failure becomes a
fallback record plus an entry in ``SourceResult.errors``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import DataAcquisitionError, ErrorKind, MalformedPayload
from ..retry import RetryExecutor, Sleep

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DatasetKey(str, Enum):
    """Stable keys of the five datasets."""
    INSTRUMENTS = "instruments"
    SUPPLIERS = "suppliers"
    INDICATORS = "indicators"
    NEWS = "news"
    WEATHER = "weather"


@dataclass(frozen=True)
class SourceError:
    """One failed resource inside a dataset run."""
    resource: str
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class FetchOutcome:
    """Result of fetching one resource: a record, plus the error if it is a fallback."""
    resource: str
    record: Any
    error: Optional[SourceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SourceResult:
    """Result of one whole-dataset adapter run."""
    dataset: DatasetKey
    records: Tuple[Any, ...]
    errors: Tuple[SourceError, ...] = ()

    @property
    def live_count(self) -> int:
        return sum(1 for record in self.records if not record.is_fallback)

    @property
    def fallback_count(self) -> int:
        return len(self.records) - self.live_count

    @property
    def is_live(self) -> bool:
        """True when at least one record came from the network."""
        return self.live_count > 0

    @classmethod
    def from_outcomes(cls, dataset: DatasetKey, outcomes: Sequence[FetchOutcome]) -> "SourceResult":
        return cls(
            dataset=dataset,
            records=tuple(o.record for o in outcomes),
            errors=tuple(o.error for o in outcomes if o.error is not None),
        )


@dataclass(frozen=True)
class DataSourceStatus:
    """Status of a data source."""
    dataset: DatasetKey
    healthy: bool
    last_fetch: Optional[datetime] = None
    last_error: Optional[str] = None


def chart_result(payload: Any, symbol: str) -> Dict[str, Any]:
    """Extract ``chart.result[0]`` from a quote/chart payload.

    Raises:
        MalformedPayload: if the expected nesting is missing.
    """
    try:
        result = payload["chart"]["result"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedPayload(f"No chart result for {symbol}") from e
    if not isinstance(result, dict) or not isinstance(result.get("meta"), dict):
        raise MalformedPayload(f"Chart result for {symbol} has no meta")
    return result


def chart_closes(result: Dict[str, Any]) -> List[Optional[float]]:
    """Raw ``indicators.quote[0].close`` array (may contain nulls)."""
    try:
        closes = result["indicators"]["quote"][0].get("close")
    except (KeyError, IndexError, TypeError, AttributeError):
        return []
    return list(closes or [])


class BaseDataSource(ABC):
    """Base class for the five dataset adapters."""

    dataset: DatasetKey

    def __init__(
        self,
        executor: RetryExecutor,
        sleep: Optional[Sleep] = None,
        now: Optional[Clock] = None,
    ):
        self.executor = executor
        self._sleep = sleep or asyncio.sleep
        self._now = now or utc_now
        self._last_fetch: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._healthy = True

    @abstractmethod
    async def fetch_all(self) -> SourceResult:
        """Fetch every resource of this dataset. Never raises."""

    @abstractmethod
    def fallback_records(self) -> Tuple[Any, ...]:
        """Records to show when nothing could be fetched."""

    async def run(self) -> SourceResult:
        """Fetch the dataset and remember its health."""
        result = await self.fetch_all()
        self._last_fetch = self._now()
        self._healthy = result.is_live
        self._last_error = result.errors[-1].message if result.errors else None
        return result

    def get_status(self) -> DataSourceStatus:
        """Get the status of this data source."""
        return DataSourceStatus(
            dataset=self.dataset,
            healthy=self._healthy,
            last_fetch=self._last_fetch,
            last_error=self._last_error,
        )

    async def _outcome(
        self,
        resource: str,
        fetch: Callable[[], Awaitable[Any]],
        fallback: Callable[[], Any],
    ) -> FetchOutcome:
        """Run one resource fetch, converting acquisition errors into a fallback."""
        try:
            record = await fetch()
            return FetchOutcome(resource=resource, record=record)
        except DataAcquisitionError as e:
            kind = e.kind
            error = e
        except (KeyError, TypeError, ValueError) as e:
            # Payload values of the wrong shape surface as these during parsing
            kind = ErrorKind.MALFORMED_PAYLOAD
            error = e
        logger.error(f"Error fetching {self.dataset.value} resource {resource}, using fallback: {error}")
        return FetchOutcome(
            resource=resource,
            record=fallback(),
            error=SourceError(resource=resource, kind=kind, message=str(error)),
        )
