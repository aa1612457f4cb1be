"""Common HTTP utilities for calling the CourtListener API politely."""
import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from common.config import Config
from common.exceptions import CourtListenerAPIError, DeadlineExceeded, RateLimitExceeded
from common.logging import logger

RETRY_STATUSES = (429, 403)


class Deadline:
    """A fixed point in time after which no new upstream call may start."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    def check(self) -> None:
        if self.expired:
            raise DeadlineExceeded("Search deadline exceeded")


class RequestThrottle:
    """Keeps at least `min_interval` seconds between the end of one request
    and the start of the next, across every client sharing the instance."""

    def __init__(
        self,
        min_interval: float = Config.MIN_REQUEST_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request_end: Optional[float] = None
        self.total_requests = 0
        self.total_wait_time = 0.0

    @asynccontextmanager
    async def slot(self):
        async with self._lock:
            if self._last_request_end is not None:
                wait = self.min_interval - (self._clock() - self._last_request_end)
                if wait > 0:
                    await self._sleep(wait)
                    self.total_wait_time += wait
            self.total_requests += 1
            try:
                yield
            finally:
                self._last_request_end = self._clock()


# Process-wide throttle shared by every CourtListener client
request_throttle = RequestThrottle()


def default_headers(api_token: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "User-Agent": Config.USER_AGENT,
        "Accept": "application/json",
    }
    if api_token:
        headers["Authorization"] = f"Token {api_token}"
    return headers


class RateLimitedClient:
    """Throttled, retrying wrapper around httpx for one upstream API.

    429 and 403 responses are retried with exponential backoff
    (2, 4, 8 seconds); any other non-2xx status raises at once.
    """

    def __init__(
        self,
        api_token: Optional[str] = Config.COURTLISTENER_API_TOKEN,
        throttle: Optional[RequestThrottle] = None,
        retry_attempts: int = Config.RETRY_ATTEMPTS,
        timeout: float = Config.REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.headers = default_headers(api_token)
        self.throttle = throttle or request_throttle
        self.retry_attempts = retry_attempts
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep

    def _timeout_for(self, deadline: Optional[Deadline]) -> float:
        if deadline is None:
            return self.timeout
        return max(0.001, min(self.timeout, deadline.remaining()))

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        deadline: Optional[Deadline] = None,
    ) -> httpx.Response:
        attempt = 1
        while True:
            if deadline is not None:
                deadline.check()

            async with self.throttle.slot():
                async with httpx.AsyncClient(
                    timeout=self._timeout_for(deadline),
                    transport=self._transport,
                    headers=self.headers,
                ) as client:
                    response = await client.request(method, url, params=params, data=data)

            if response.status_code in RETRY_STATUSES:
                if attempt > self.retry_attempts:
                    raise RateLimitExceeded(response.status_code, self.retry_attempts)
                delay = 2 ** attempt
                if deadline is not None and delay >= deadline.remaining():
                    raise DeadlineExceeded(
                        f"Rate limited ({response.status_code}) and backoff would exceed the deadline")
                logger.warning("Rate limited (%d), retrying in %ds (attempt %d/%d)",
                               response.status_code, delay, attempt, self.retry_attempts)
                await self._sleep(delay)
                attempt += 1
                continue

            if response.is_error:
                raise CourtListenerAPIError(
                    f"CourtListener API error: {response.status_code}",
                    status_code=response.status_code)

            return response

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None,
                       deadline: Optional[Deadline] = None) -> Any:
        response = await self.request("GET", url, params=params, deadline=deadline)
        return _decode(response)

    async def post_json(self, url: str, data: Optional[Dict[str, Any]] = None,
                        deadline: Optional[Deadline] = None) -> Any:
        response = await self.request("POST", url, data=data, deadline=deadline)
        return _decode(response)


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise CourtListenerAPIError(
            f"CourtListener API returned invalid JSON: {e}",
            status_code=response.status_code) from e


def error_response(code: str, message: str) -> Dict[str, Any]:
    """Generate a standardized error response as JSON."""
    return {"error": {"code": code, "message": message}}
