"""Error taxonomy for the data-acquisition layer.

Every failure raised inside the acquisition layer derives from
``DataAcquisitionError`` and carries an ``ErrorKind``. The retry executor
recovers timeouts, rate limits and transport errors locally; adapters turn
whatever escapes the executor into fallback records; the cache store turns
storage failures into logged no-ops.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Kinds of acquisition failures."""
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    ROUTE_EXHAUSTED = "route_exhausted"
    MALFORMED_PAYLOAD = "malformed_payload"
    INVALID_VALUE = "invalid_value"
    CACHE_UNAVAILABLE = "cache_unavailable"
    UNEXPECTED = "unexpected"


class DataAcquisitionError(Exception):
    """Base class for acquisition failures."""

    kind: ErrorKind = ErrorKind.UNEXPECTED


class FetchTimeout(DataAcquisitionError):
    """A single attempt exceeded the per-attempt timeout."""

    kind = ErrorKind.TIMEOUT


class RateLimited(DataAcquisitionError):
    """The upstream (or relay) explicitly signalled rate limiting."""

    kind = ErrorKind.RATE_LIMITED


class UpstreamHTTPError(DataAcquisitionError):
    """Transport failure or a non-success HTTP status."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RouteExhausted(DataAcquisitionError):
    """Every route variant used up its retries."""

    kind = ErrorKind.ROUTE_EXHAUSTED

    def __init__(self, target: str, attempts: int, last_error: Optional[BaseException]):
        self.target = target
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"All routes exhausted for {target} after {attempts} attempt(s): {last_error}"
        )


class MalformedPayload(DataAcquisitionError):
    """A required field is absent or has the wrong shape."""

    kind = ErrorKind.MALFORMED_PAYLOAD


class InvalidValue(DataAcquisitionError):
    """A field is present but its value is unusable (e.g. non-positive price)."""

    kind = ErrorKind.INVALID_VALUE


class CacheUnavailable(DataAcquisitionError):
    """Reading from or writing to the persistent cache failed."""

    kind = ErrorKind.CACHE_UNAVAILABLE


def error_kind(exc: BaseException) -> ErrorKind:
    """Classify any exception into an ``ErrorKind``."""
    if isinstance(exc, DataAcquisitionError):
        return exc.kind
    return ErrorKind.UNEXPECTED
