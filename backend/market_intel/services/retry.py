"""Retry executor for unreliable upstream endpoints.

One logical request is delivered over an ordered list of route variants
(the direct endpoint and relay URL templates). Each route gets up to
``max_attempts`` sequential attempts with exponential backoff between them;
an explicit rate-limit response abandons the route immediately and moves on
to the next one. Success on any attempt returns at once.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence
from urllib.parse import quote

import aiohttp

from .errors import (
    DataAcquisitionError,
    FetchTimeout,
    MalformedPayload,
    RateLimited,
    RouteExhausted,
    UpstreamHTTPError,
)

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; market-intel/1.0)",
    "Accept": "application/json, application/xml, text/xml, */*",
}

RATE_LIMIT_STATUS = 429


@dataclass(frozen=True)
class RouteVariant:
    """A delivery path to an upstream resource.

    ``template`` is ``None`` for the direct route; relay templates contain a
    ``{url}`` placeholder that receives the percent-encoded target URL.
    """
    name: str
    template: Optional[str] = None

    @property
    def is_direct(self) -> bool:
        return self.template is None

    def wrap(self, target_url: str) -> str:
        if self.template is None:
            return target_url
        return self.template.replace("{url}", quote(target_url, safe=""))


DIRECT_ROUTE = RouteVariant(name="direct")


@dataclass(frozen=True)
class RetryPolicy:
    """Per-route retry limit, initial backoff and per-attempt timeout."""
    max_attempts: int = 3
    initial_backoff_seconds: float = 1.0
    timeout_seconds: float = 10.0

    def backoff_delay(self, attempt: int) -> float:
        """Delay after the failed ``attempt`` (0-based) on the same route."""
        return self.initial_backoff_seconds * (2 ** attempt)


@dataclass(frozen=True)
class HttpResponse:
    """Minimal response snapshot handed back by a transport."""
    status: int
    body: str
    url: str = ""

    def json(self) -> Any:
        return json.loads(self.body)


Transport = Callable[[str], Awaitable[HttpResponse]]
Sleep = Callable[[float], Awaitable[None]]
Decoder = Callable[[HttpResponse], Any]


async def aiohttp_transport(url: str) -> HttpResponse:
    """Perform a single GET with aiohttp."""
    async with aiohttp.ClientSession(headers=DEFAULT_HEADERS) as session:
        async with session.get(url) as resp:
            body = await resp.text()
            return HttpResponse(status=resp.status, body=body, url=url)


def decode_json(response: HttpResponse) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise MalformedPayload(f"Response from {response.url or 'upstream'} is not JSON: {e}") from e


def decode_text(response: HttpResponse) -> str:
    return response.body


def build_routes(direct: bool = True, relays: Sequence[str] = ()) -> List[RouteVariant]:
    """Build the fixed route order: direct first (if enabled), then relays."""
    routes: List[RouteVariant] = []
    if direct:
        routes.append(DIRECT_ROUTE)
    for index, template in enumerate(relays):
        if "{url}" not in template:
            raise ValueError(f"Relay template must contain '{{url}}': {template}")
        routes.append(RouteVariant(name=f"relay-{index + 1}", template=template))
    return routes


class RetryExecutor:
    """Deliver requests over route variants with retry, backoff and timeout."""

    def __init__(
        self,
        routes: Sequence[RouteVariant],
        policy: Optional[RetryPolicy] = None,
        transport: Optional[Transport] = None,
        sleep: Optional[Sleep] = None,
    ):
        """Initialize the executor.

        Args:
            routes: Default ordered route variants
            policy: Retry limit, backoff and timeout settings
            transport: Coroutine performing one HTTP GET (defaults to aiohttp)
            sleep: Coroutine used for backoff delays (defaults to asyncio.sleep)
        """
        if not routes:
            raise ValueError("At least one route variant is required")
        if policy is not None and policy.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.routes = list(routes)
        self.policy = policy or RetryPolicy()
        self._transport = transport or aiohttp_transport
        self._sleep = sleep or asyncio.sleep

    async def fetch(
        self,
        target_url: str,
        routes: Optional[Sequence[RouteVariant]] = None,
        decode: Optional[Decoder] = None,
    ) -> Any:
        """Fetch ``target_url`` and return the decoded payload.

        Decoding happens inside the attempt, so an undecodable body (e.g. a
        relay's HTML error page) counts as a failed attempt.

        Raises:
            RouteExhausted: if every route variant used up its retries.
        """
        decode = decode or decode_text
        route_list = list(routes) if routes is not None else self.routes
        attempts = 0
        last_error: Optional[BaseException] = None

        for route in route_list:
            url = route.wrap(target_url)
            for attempt in range(self.policy.max_attempts):
                attempts += 1
                try:
                    response = await self._attempt(url)
                    return decode(response)
                except RateLimited as e:
                    last_error = e
                    logger.warning(
                        f"Rate limited on route {route.name} for {target_url}, advancing to next route"
                    )
                    break
                except DataAcquisitionError as e:
                    last_error = e
                    logger.warning(
                        f"Attempt {attempt + 1}/{self.policy.max_attempts} on route {route.name} "
                        f"failed for {target_url}: {e}"
                    )

                if attempt + 1 < self.policy.max_attempts:
                    await self._sleep(self.policy.backoff_delay(attempt))

        logger.error(f"All routes exhausted for {target_url} after {attempts} attempt(s)")
        raise RouteExhausted(target_url, attempts, last_error)

    async def fetch_json(self, target_url: str, routes: Optional[Sequence[RouteVariant]] = None) -> Any:
        return await self.fetch(target_url, routes=routes, decode=decode_json)

    async def fetch_text(self, target_url: str, routes: Optional[Sequence[RouteVariant]] = None) -> str:
        return await self.fetch(target_url, routes=routes, decode=decode_text)

    async def _attempt(self, url: str) -> HttpResponse:
        try:
            response = await asyncio.wait_for(
                self._transport(url),
                timeout=self.policy.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise FetchTimeout(f"Timed out after {self.policy.timeout_seconds}s") from e
        except (aiohttp.ClientError, OSError) as e:
            raise UpstreamHTTPError(f"Transport error: {e}") from e

        if response.status == RATE_LIMIT_STATUS:
            raise RateLimited(f"HTTP {RATE_LIMIT_STATUS} from {url}")
        if not 200 <= response.status < 300:
            raise UpstreamHTTPError(f"HTTP {response.status} from {url}", status=response.status)
        return response
