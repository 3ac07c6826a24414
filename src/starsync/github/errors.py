"""Exceptions raised by the GitHub connector."""

from datetime import datetime


class GitHubClientError(Exception):
    """Raised when a GitHub API request fails.

    Wraps httpx transport errors and HTTP error statuses for consistent
    error handling. status_code is None for transport-level failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class RateLimitExceeded(GitHubClientError):
    """Raised when a request stays rate limited after the allowed waits."""

    def __init__(self, reset_at: datetime, message: str = "Rate limit exceeded"):
        self.reset_at = reset_at
        super().__init__(f"{message}. Resets at {reset_at.isoformat()}", status_code=403)
