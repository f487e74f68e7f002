"""Dataset source adapters."""

from .base import (
    BaseDataSource,
    DataSourceStatus,
    DatasetKey,
    FetchOutcome,
    SourceError,
    SourceResult,
)
from .indicators import IndicatorSource
from .instruments import InstrumentSource
from .news import NewsSource
from .suppliers import SupplierSource
from .weather import WeatherSource

__all__ = [
    "BaseDataSource",
    "DataSourceStatus",
    "DatasetKey",
    "FetchOutcome",
    "SourceError",
    "SourceResult",
    "IndicatorSource",
    "InstrumentSource",
    "NewsSource",
    "SupplierSource",
    "WeatherSource",
]
