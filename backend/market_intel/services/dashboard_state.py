"""Immutable dashboard state and the store that publishes it.

The store holds one ``DashboardState`` snapshot. Every change goes through a
named operation that builds a new snapshot with ``dataclasses.replace`` and
notifies subscribers; snapshots themselves are never mutated.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from .sources.base import DatasetKey

logger = logging.getLogger(__name__)

Subscriber = Callable[["DashboardState"], None]


@dataclass(frozen=True)
class DashboardState:
    """A consistent snapshot of all datasets and their flags."""
    instruments: Tuple[Any, ...] = ()
    suppliers: Tuple[Any, ...] = ()
    indicators: Tuple[Any, ...] = ()
    news: Tuple[Any, ...] = ()
    weather: Tuple[Any, ...] = ()
    in_flight: FrozenSet[DatasetKey] = field(default_factory=frozenset)
    is_loading: bool = False
    is_settling: bool = False
    last_updated: Optional[datetime] = None

    def dataset(self, key: DatasetKey) -> Tuple[Any, ...]:
        return getattr(self, key.value)

    @property
    def has_cached_data(self) -> bool:
        """True when any of the market datasets is populated."""
        return bool(self.instruments or self.suppliers or self.indicators)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            key.value: [record.to_dict() for record in self.dataset(key)] for key in DatasetKey
        }
        data.update({
            "in_flight": sorted(key.value for key in self.in_flight),
            "is_loading": self.is_loading,
            "is_settling": self.is_settling,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        })
        return data


class StateStore:
    """Single holder of the current ``DashboardState``."""

    def __init__(self, initial: Optional[DashboardState] = None):
        self._state = initial or DashboardState()
        self._subscribers: List[Subscriber] = []

    @property
    def state(self) -> DashboardState:
        return self._state

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback for every new snapshot; returns an unsubscribe function."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def replace_dataset(self, key: DatasetKey, records: Tuple[Any, ...]) -> DashboardState:
        return self._apply(**{key.value: tuple(records)})

    def set_in_flight(self, key: DatasetKey, in_flight: bool) -> DashboardState:
        flags = self._state.in_flight | {key} if in_flight else self._state.in_flight - {key}
        return self._apply(in_flight=frozenset(flags))

    def set_loading(self, is_loading: bool) -> DashboardState:
        return self._apply(is_loading=is_loading)

    def set_settling(self, is_settling: bool) -> DashboardState:
        return self._apply(is_settling=is_settling)

    def set_last_updated(self, timestamp: datetime) -> DashboardState:
        return self._apply(last_updated=timestamp)

    def _apply(self, **changes: Any) -> DashboardState:
        self._state = replace(self._state, **changes)
        for subscriber in list(self._subscribers):
            try:
                subscriber(self._state)
            except Exception as e:
                logger.error(f"State subscriber failed: {e}")
        return self._state
