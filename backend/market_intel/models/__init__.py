# Database Models

from .database import Base, engine, async_session_maker, create_session_maker, get_session, init_db
from .dataset_cache import DatasetCache

__all__ = [
    "Base",
    "engine",
    "async_session_maker",
    "create_session_maker",
    "get_session",
    "init_db",
    "DatasetCache",
]
