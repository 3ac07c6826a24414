"""Rate-limit aware request execution for the GitHub REST API.

Every outbound call made by the fetcher and the README enrichment goes
through RateLimitedTransport.execute(). An exhausted primary rate limit
(HTTP 403 with X-RateLimit-Remaining: 0) is never surfaced to the caller:
the transport sleeps until X-RateLimit-Reset plus a one second buffer and
re-sends the identical request. Any other response, error statuses
included, is returned unmodified.

Rate limits: https://docs.github.com/en/rest/using-the-rest-api/rate-limits-for-the-rest-api
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import httpx

from starsync.github.errors import RateLimitExceeded
from starsync.metrics import SyncMetrics

logger = logging.getLogger("starsync.github.transport")

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RateLimitedTransport:
    """Wraps httpx.AsyncClient.send() with wait-and-retry on rate limits.

    Attributes:
        max_waits: Consecutive rate-limit waits allowed for one request.
            When exhausted, RateLimitExceeded is raised instead of waiting.
    """

    REMAINING_HEADER = "X-RateLimit-Remaining"
    RESET_HEADER = "X-RateLimit-Reset"
    RESET_BUFFER_SECONDS = 1
    DEFAULT_MAX_WAITS = 10

    def __init__(
        self,
        client: httpx.AsyncClient,
        metrics: SyncMetrics,
        clock: Clock = time.time,
        sleep: Sleeper = asyncio.sleep,
        max_waits: int = DEFAULT_MAX_WAITS,
    ) -> None:
        self._client = client
        self._metrics = metrics
        self._clock = clock
        self._sleep = sleep
        self.max_waits = max_waits

    @classmethod
    def is_rate_limited(cls, response: httpx.Response) -> bool:
        """True for the exhausted-quota signature: 403 and zero remaining."""
        return (
            response.status_code == 403
            and response.headers.get(cls.REMAINING_HEADER) == "0"
        )

    def _reset_epoch(self, response: httpx.Response) -> int:
        raw = response.headers.get(self.RESET_HEADER)
        now = int(self._clock())
        if raw is None:
            return now
        try:
            return int(float(raw))
        except ValueError:
            logger.warning("Non-numeric %s header: %r", self.RESET_HEADER, raw)
            return now

    def wait_seconds(self, response: httpx.Response) -> int:
        """Seconds to wait before retrying a rate-limited response."""
        remaining = self._reset_epoch(response) - int(self._clock())
        return max(0, remaining) + self.RESET_BUFFER_SECONDS

    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Send a request, waiting out exhausted rate limits.

        Args:
            request: Request built with the wrapped client's build_request()

        Returns:
            The first response that is not rate limited (any status)

        Raises:
            RateLimitExceeded: If still rate limited after max_waits waits
            httpx.HTTPError: Transport failures, passed through unmodified
        """
        waits = 0
        while True:
            response = await self._client.send(request)
            if not self.is_rate_limited(response):
                return response

            if waits >= self.max_waits:
                reset_at = datetime.fromtimestamp(
                    self._reset_epoch(response), tz=timezone.utc
                )
                logger.error(
                    "Rate limit still exhausted after %d waits for %s %s",
                    waits,
                    request.method,
                    request.url.path,
                )
                raise RateLimitExceeded(reset_at)

            wait = self.wait_seconds(response)
            await response.aclose()
            logger.warning(
                "GitHub API rate limit exceeded. Waiting for %d seconds...", wait
            )
            self._metrics.rate_limit_waits_total.inc()
            await self._sleep(wait)
            waits += 1
            logger.info(
                "Rate limit reset. Retrying %s %s", request.method, request.url.path
            )
