# listing_sync/adapters/clients/http_resilience.py
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from ...errors import AuthenticationError, RateLimitExceeded, SyncError, TransientNetworkError

log = logging.getLogger(__name__)

SECOND_WINDOW_S = 1.0
HOUR_WINDOW_S = 3600.0

_AUTH_STATUS = (401, 403)


@dataclass
class _WindowState:
    requests_this_second: int = 0
    requests_this_hour: int = 0
    second_window_start: float = 0.0
    hour_window_start: float = 0.0


class DualWindowRateLimiter:
    """
    Per-second and per-hour request budget for one upstream.

    - per-second cap reached -> sleep out the rest of the second window
    - per-hour cap reached   -> RateLimitExceeded (never sleeps for the hour)

    `clock` returns seconds and `sleep` awaits seconds; both are injectable so tests
    can drive a simulated clock.
    """

    def __init__(
        self,
        *,
        max_per_second: int,
        max_per_hour: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.max_per_second = int(max_per_second)
        self.max_per_hour = int(max_per_hour)
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        now = clock()
        self._state = _WindowState(second_window_start=now, hour_window_start=now)

    @property
    def requests_this_hour(self) -> int:
        return self._state.requests_this_hour

    @property
    def requests_this_second(self) -> int:
        return self._state.requests_this_second

    async def acquire(self) -> None:
        async with self._lock:
            st = self._state
            now = self._clock()

            if now - st.hour_window_start >= HOUR_WINDOW_S:
                st.requests_this_hour = 0
                st.hour_window_start = now

            if now - st.second_window_start >= SECOND_WINDOW_S:
                st.requests_this_second = 0
                st.second_window_start = now

            if st.requests_this_hour >= self.max_per_hour:
                raise RateLimitExceeded(
                    f"Hourly rate limit exceeded ({self.max_per_hour} requests/hour)"
                )

            if st.requests_this_second >= self.max_per_second:
                wait = SECOND_WINDOW_S - (now - st.second_window_start)
                if wait > 0:
                    log.debug("rate limiter: per-second cap hit, sleeping %.3fs", wait)
                    await self._sleep(wait)
                st.requests_this_second = 0
                st.second_window_start = self._clock()

            st.requests_this_second += 1
            st.requests_this_hour += 1


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    limiter: DualWindowRateLimiter | None = None,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
) -> httpx.Response:
    """
    One attempt, no in-loop retries. Failures are mapped onto the sync error taxonomy:
      401/403                     -> AuthenticationError
      429/5xx, timeouts, transport -> TransientNetworkError
    """
    if limiter is not None:
        await limiter.acquire()

    try:
        resp = await client.request(method, url, headers=headers, params=params)
    except httpx.TimeoutException as e:
        raise TransientNetworkError(f"timeout: {method} {url}") from e
    except httpx.TransportError as e:
        raise TransientNetworkError(f"transport_error: {method} {url}: {e}") from e

    if resp.status_code in _AUTH_STATUS:
        raise AuthenticationError(f"auth_rejected: {resp.status_code} {url}", status_code=resp.status_code)
    if resp.status_code == 429 or resp.status_code >= 500:
        raise TransientNetworkError(f"upstream_status: {resp.status_code} {url}", status_code=resp.status_code)

    if resp.status_code >= 400:
        raise SyncError(f"upstream_rejected: {resp.status_code} {url}: {resp.text[:300]}")
    return resp
