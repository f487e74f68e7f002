# Business Logic Services

from .errors import (
    ErrorKind,
    DataAcquisitionError,
    FetchTimeout,
    RateLimited,
    UpstreamHTTPError,
    RouteExhausted,
    MalformedPayload,
    InvalidValue,
    CacheUnavailable,
)
from .retry import (
    RetryExecutor,
    RetryPolicy,
    RouteVariant,
    HttpResponse,
    build_routes,
)
from .config import (
    ConfigService,
    config_service,
    ConfigValidationException,
    ConfigValidationError,
    AcquisitionSettings,
)
from .logging_service import (
    FetchLogService,
    FetchLogEntry,
    configure_logging,
)
from .cache_store import CacheStore
from .dashboard_state import DashboardState, StateStore
from .orchestrator import DashboardOrchestrator, RunHandle

__all__ = [
    # Errors
    "ErrorKind",
    "DataAcquisitionError",
    "FetchTimeout",
    "RateLimited",
    "UpstreamHTTPError",
    "RouteExhausted",
    "MalformedPayload",
    "InvalidValue",
    "CacheUnavailable",
    # Retry
    "RetryExecutor",
    "RetryPolicy",
    "RouteVariant",
    "HttpResponse",
    "build_routes",
    # Config
    "ConfigService",
    "config_service",
    "ConfigValidationException",
    "ConfigValidationError",
    "AcquisitionSettings",
    # Logging
    "FetchLogService",
    "FetchLogEntry",
    "configure_logging",
    # Cache and state
    "CacheStore",
    "DashboardState",
    "StateStore",
    # Orchestration
    "DashboardOrchestrator",
    "RunHandle",
]
