"""Builders shared by the star-sync tests."""

import base64
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import httpx

from starsync.models import PersistedRepository, RemoteRepository

# 2023-11-14T22:13:20Z
NOW_EPOCH = 1_700_000_000
NOW = datetime.fromtimestamp(NOW_EPOCH, tz=timezone.utc)
PUSHED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def fixed_clock() -> float:
    return float(NOW_EPOCH)


def make_remote(repo_id: int, pushed_at: datetime = PUSHED, **overrides) -> RemoteRepository:
    fields = {
        "id": repo_id,
        "name": f"repo{repo_id}",
        "full_name": f"owner{repo_id}/repo{repo_id}",
        "description": f"Repository {repo_id}",
        "url": f"https://github.com/owner{repo_id}/repo{repo_id}",
        "language": "Python",
        "stars": 10 * repo_id,
        "created_at": datetime(2020, 1, 1, tzinfo=timezone.utc),
        "pushed_at": pushed_at,
        "starred_at": datetime(2023, 6, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return RemoteRepository(**fields)


def make_persisted(
    repo_id: int,
    pushed_at: datetime = PUSHED,
    readme_content: str | None = "cached readme",
    readme_fetched_at: datetime | None = None,
    **overrides,
) -> PersistedRepository:
    remote = make_remote(repo_id, pushed_at=pushed_at, **overrides)
    return PersistedRepository.from_remote(
        remote,
        readme_content=readme_content,
        readme_fetched_at=readme_fetched_at if readme_fetched_at is not None else NOW - timedelta(hours=1),
    )


def starred_item(repo_id: int, pushed_at: str = "2024-01-01T00:00:00Z") -> dict:
    """One element of the star+json starred list."""
    return {
        "starred_at": "2023-06-01T00:00:00Z",
        "repo": {
            "id": repo_id,
            "name": f"repo{repo_id}",
            "full_name": f"owner{repo_id}/repo{repo_id}",
            "description": None,
            "html_url": f"https://github.com/owner{repo_id}/repo{repo_id}",
            "language": None,
            "stargazers_count": repo_id,
            "created_at": "2020-01-01T00:00:00Z",
            "pushed_at": pushed_at,
        },
    }


def starred_page(start_id: int, count: int) -> list[dict]:
    return [starred_item(repo_id) for repo_id in range(start_id, start_id + count)]


def readme_payload(text: str) -> dict:
    """README response body, base64 wrapped at 60 chars like GitHub does."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    wrapped = "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))
    return {"name": "README.md", "encoding": "base64", "content": wrapped + "\n"}


def mock_response(
    status_code: int = 200,
    json_data: dict | list | None = None,
    headers: dict | None = None,
    content: bytes = b"{}",
) -> Mock:
    """Create a mock httpx.Response with given attributes."""
    resp = Mock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else {}
    resp.content = content
    resp.text = content.decode() if content else ""
    _headers = {
        "X-RateLimit-Remaining": "4999",
        "X-RateLimit-Reset": str(NOW_EPOCH + 3600),
    }
    if headers:
        _headers.update(headers)
    resp.headers = httpx.Headers(_headers)
    resp.aclose = AsyncMock()
    return resp


def rate_limited_response(reset_in: int = 30) -> Mock:
    return mock_response(
        status_code=403,
        json_data={"message": "API rate limit exceeded"},
        headers={
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(NOW_EPOCH + reset_in),
        },
        content=b'{"message": "API rate limit exceeded"}',
    )
