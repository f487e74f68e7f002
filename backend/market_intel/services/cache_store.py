"""Persistent last-known-good cache for the datasets.

One JSON blob per dataset key plus a global freshness timestamp, stored in
the ``dataset_cache`` table. Storage and decoding failures are logged and
treated as "no entry"; they never propagate to the caller.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..models.dataset_cache import DatasetCache
from .errors import CacheUnavailable
from .records import EconomicIndicator, MarketInstrument, NewsArticle, Supplier, WeatherLocation
from .sources.base import DatasetKey

logger = logging.getLogger(__name__)

LAST_UPDATED_KEY = "last_updated"

RECORD_TYPES: Dict[DatasetKey, Type[Any]] = {
    DatasetKey.INSTRUMENTS: MarketInstrument,
    DatasetKey.SUPPLIERS: Supplier,
    DatasetKey.INDICATORS: EconomicIndicator,
    DatasetKey.NEWS: NewsArticle,
    DatasetKey.WEATHER: WeatherLocation,
}


class CacheStore:
    """Key -> blob store for dataset snapshots."""

    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker

    async def save(self, key: DatasetKey, collection: Sequence[Any]) -> bool:
        """Persist a whole dataset. Returns False (and logs) if the write failed."""
        payload = json.dumps([record.to_dict() for record in collection])
        try:
            await self._write(key.value, payload)
        except CacheUnavailable as e:
            logger.warning(f"Could not save {key.value} to cache: {e}")
            return False
        return True

    async def load(self, key: DatasetKey) -> Optional[Tuple[Any, ...]]:
        """Return the cached dataset, or None if absent or unreadable."""
        try:
            payload = await self._read(key.value)
        except CacheUnavailable as e:
            logger.warning(f"Could not load {key.value} from cache: {e}")
            return None
        if payload is None:
            return None

        record_type = RECORD_TYPES[key]
        try:
            return tuple(record_type.from_dict(item) for item in json.loads(payload))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable cache entry for {key.value}: {e}")
            return None

    async def save_last_updated(self, timestamp: datetime) -> bool:
        try:
            await self._write(LAST_UPDATED_KEY, json.dumps(timestamp.isoformat()))
        except CacheUnavailable as e:
            logger.warning(f"Could not save last-updated timestamp: {e}")
            return False
        return True

    async def load_last_updated(self) -> Optional[datetime]:
        try:
            payload = await self._read(LAST_UPDATED_KEY)
        except CacheUnavailable as e:
            logger.warning(f"Could not load last-updated timestamp: {e}")
            return None
        if payload is None:
            return None
        try:
            return datetime.fromisoformat(json.loads(payload))
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding unreadable last-updated timestamp: {e}")
            return None

    async def _write(self, key: str, payload: str) -> None:
        try:
            async with self._session_maker() as session:
                entry = await session.get(DatasetCache, key)
                if entry is None:
                    session.add(DatasetCache(key=key, payload=payload, updated_at=datetime.utcnow()))
                else:
                    entry.payload = payload
                    entry.updated_at = datetime.utcnow()
                await session.commit()
        except SQLAlchemyError as e:
            raise CacheUnavailable(str(e)) from e

    async def _read(self, key: str) -> Optional[str]:
        try:
            async with self._session_maker() as session:
                entry = await session.get(DatasetCache, key)
                return None if entry is None else entry.payload
        except SQLAlchemyError as e:
            raise CacheUnavailable(str(e)) from e
