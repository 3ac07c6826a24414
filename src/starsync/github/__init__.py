"""GitHub connector.

Async REST client for a user's starred repositories and their READMEs,
with a transport that waits out exhausted rate limits.
"""

from .client import GitHubClient, decode_content
from .errors import GitHubClientError, RateLimitExceeded
from .transport import RateLimitedTransport

__all__ = [
    "GitHubClient",
    "GitHubClientError",
    "RateLimitExceeded",
    "RateLimitedTransport",
    "decode_content",
]
