"""GitHub REST API client for starred repositories and READMEs.

Provides an async httpx-based client with token auth. All requests go
through RateLimitedTransport, so an exhausted rate limit delays a call
instead of failing it.

Reference: https://docs.github.com/en/rest/activity/starring
"""

import asyncio
import base64
import binascii
import logging
import time
from typing import Any

import httpx

from starsync.config import DEFAULT_API_URL
from starsync.github.errors import GitHubClientError
from starsync.github.transport import Clock, RateLimitedTransport, Sleeper
from starsync.metrics import SyncMetrics, get_metrics
from starsync.models import RemoteRepository

logger = logging.getLogger("starsync.github.client")


class GitHubClient:
    """GitHub REST API client using httpx with Bearer token auth.

    Uses a long-lived httpx.AsyncClient with connection pooling. Close it
    with close() or use the client as an async context manager.

    Example:
        >>> async with GitHubClient("ghp_token", "octocat") as client:
        ...     starred = await client.fetch_all_starred()
        ...     readme = await client.fetch_readme(starred[0].full_name)
    """

    # Media type that adds starred_at to each starred-list element
    STAR_MEDIA_TYPE = "application/vnd.github.star+json"
    DEFAULT_MEDIA_TYPE = "application/vnd.github+json"
    API_VERSION = "2022-11-28"
    USER_AGENT = "star-sync/1.0"

    CONNECT_TIMEOUT = 5.0  # seconds
    READ_TIMEOUT = 30.0  # seconds
    WRITE_TIMEOUT = 5.0  # seconds
    POOL_TIMEOUT = 5.0  # seconds

    PER_PAGE = 100  # Maximum items per page

    def __init__(
        self,
        token: str,
        username: str,
        metrics: SyncMetrics | None = None,
        base_url: str | None = None,
        clock: Clock = time.time,
        sleep: Sleeper = asyncio.sleep,
        max_rate_limit_waits: int = RateLimitedTransport.DEFAULT_MAX_WAITS,
    ) -> None:
        """Initialize GitHub client with token authentication.

        Args:
            token: GitHub token
            username: Login whose stars are fetched
            metrics: Metrics sink for rate-limit waits (default: global)
            base_url: GitHub API base URL (default: https://api.github.com)
            clock: Epoch-seconds clock used for rate-limit resets
            sleep: Coroutine used to wait out rate limits
            max_rate_limit_waits: Rate-limit waits allowed per request
        """
        self.username = username
        self.base_url = (base_url or DEFAULT_API_URL).rstrip("/")

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": self.DEFAULT_MEDIA_TYPE,
                "X-GitHub-Api-Version": self.API_VERSION,
                "User-Agent": self.USER_AGENT,
            },
            timeout=httpx.Timeout(
                connect=self.CONNECT_TIMEOUT,
                read=self.READ_TIMEOUT,
                write=self.WRITE_TIMEOUT,
                pool=self.POOL_TIMEOUT,
            ),
        )
        self.transport = RateLimitedTransport(
            self._client,
            metrics if metrics is not None else get_metrics(),
            clock=clock,
            sleep=sleep,
            max_waits=max_rate_limit_waits,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the httpx client and release connections."""
        await self._client.aclose()

    # --- Core HTTP ---

    async def _get(
        self,
        path: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """GET through the rate-limited transport.

        Raises:
            GitHubClientError: On HTTP error statuses and transport failures
        """
        request = self._client.build_request("GET", path, params=params, headers=headers)
        try:
            response = await self.transport.execute(request)
        except httpx.HTTPError as e:
            raise GitHubClientError(f"HTTP error: {e}") from e

        if response.status_code >= 400:
            try:
                error_body = response.json() if response.content else {}
            except (ValueError, UnicodeDecodeError):
                error_body = {}
            message = (
                error_body.get("message", response.text)
                if isinstance(error_body, dict)
                else response.text
            )
            raise GitHubClientError(
                f"GitHub API error {response.status_code}: {message}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        """Decode a successful response body.

        Raises:
            GitHubClientError: If the body is not valid JSON
        """
        try:
            return response.json()
        except (ValueError, UnicodeDecodeError) as e:
            raise GitHubClientError(
                f"Invalid JSON in GitHub API response: {e}",
                status_code=response.status_code,
            ) from e

    # --- Starred repositories ---

    async def fetch_all_starred(self) -> list[RemoteRepository]:
        """Fetch the user's complete starred list, page by page.

        Requests page 1, 2, 3, ... with per_page=100 until a page comes back
        empty. Remote ordering is preserved. Any failure aborts the whole
        fetch; no partial list is returned.

        Returns:
            Starred repositories in API order

        Raises:
            GitHubClientError: If any page request fails
        """
        repositories: list[RemoteRepository] = []
        page = 1
        while True:
            response = await self._get(
                f"/users/{self.username}/starred",
                params={"per_page": str(self.PER_PAGE), "page": str(page)},
                headers={"Accept": self.STAR_MEDIA_TYPE},
            )
            items = self._json(response)
            if not items:
                break
            try:
                repositories.extend(RemoteRepository.from_api(item) for item in items)
            except (KeyError, TypeError, ValueError) as e:
                raise GitHubClientError(
                    f"Malformed starred item on page {page}: {e}"
                ) from e
            logger.debug(
                "Fetched starred page %d, %d repositories so far",
                page,
                len(repositories),
            )
            page += 1
        return repositories

    # --- README ---

    async def fetch_readme(self, full_name: str) -> str | None:
        """Fetch and decode a repository's README.

        Args:
            full_name: Repository in owner/name format

        Returns:
            README text, or None when the response carries no content

        Raises:
            GitHubClientError: On any failed request (404 when there is no README)
        """
        response = await self._get(f"/repos/{full_name}/readme")
        data = self._json(response)
        content = data.get("content") if isinstance(data, dict) else None
        if not content:
            return None
        return decode_content(content)


def decode_content(content: str) -> str:
    """Decode GitHub's base64 file content (line-wrapped) to text.

    Raises:
        ValueError: If the content is not valid base64
    """
    try:
        raw = base64.b64decode(content)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 content: {e}") from e
    return raw.decode("utf-8", errors="replace")
