"""Typed records passed between the sync stages.

RemoteRepository is what the GitHub starred list returns for one run,
PersistedRepository is what the store holds. SyncPlan is the diff result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO 8601 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class RemoteRepository:
    """One starred repository as reported by the API in this run."""

    id: int
    name: str
    full_name: str
    description: str | None
    url: str
    language: str | None
    stars: int
    created_at: datetime
    pushed_at: datetime
    starred_at: datetime

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> RemoteRepository:
        """Build from one element of the star+json starred list.

        Args:
            item: {"starred_at": ..., "repo": {...}}

        Raises:
            KeyError: If a required field is missing
            ValueError: If a timestamp cannot be parsed
        """
        repo = item["repo"]
        created_at = parse_timestamp(repo["created_at"])
        # Empty repositories have never been pushed to
        pushed_raw = repo.get("pushed_at")
        pushed_at = parse_timestamp(pushed_raw) if pushed_raw else created_at
        return cls(
            id=int(repo["id"]),
            name=repo["name"],
            full_name=repo["full_name"],
            description=repo.get("description"),
            url=repo["html_url"],
            language=repo.get("language"),
            stars=int(repo.get("stargazers_count") or 0),
            created_at=created_at,
            pushed_at=pushed_at,
            starred_at=parse_timestamp(item["starred_at"]),
        )

    def metadata(self) -> dict[str, Any]:
        """Non-README column values keyed by store column name."""
        return {
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "url": self.url,
            "language": self.language,
            "stars": self.stars,
            "repo_created_at": self.created_at,
            "repo_pushed_at": self.pushed_at,
            "repo_starred_at": self.starred_at,
        }


@dataclass(frozen=True)
class PersistedRepository:
    """A repository row in the store, including its README cache."""

    id: int
    name: str
    full_name: str
    description: str | None
    url: str
    language: str | None
    stars: int
    created_at: datetime
    pushed_at: datetime
    starred_at: datetime
    readme_content: str | None = None
    readme_fetched_at: datetime | None = None

    @classmethod
    def from_remote(
        cls,
        remote: RemoteRepository,
        readme_content: str | None = None,
        readme_fetched_at: datetime | None = None,
    ) -> PersistedRepository:
        return cls(
            id=remote.id,
            name=remote.name,
            full_name=remote.full_name,
            description=remote.description,
            url=remote.url,
            language=remote.language,
            stars=remote.stars,
            created_at=remote.created_at,
            pushed_at=remote.pushed_at,
            starred_at=remote.starred_at,
            readme_content=readme_content,
            readme_fetched_at=readme_fetched_at,
        )


@dataclass
class SyncPlan:
    """Disjoint create/update/delete/unchanged classification of one run."""

    to_create: list[RemoteRepository] = field(default_factory=list)
    to_update: list[RemoteRepository] = field(default_factory=list)
    to_delete: set[int] = field(default_factory=set)
    unchanged: list[RemoteRepository] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.to_create or self.to_update or self.to_delete)

    def to_dict(self) -> dict[str, int]:
        return {
            "create": len(self.to_create),
            "update": len(self.to_update),
            "delete": len(self.to_delete),
            "unchanged": len(self.unchanged),
        }


@dataclass(frozen=True)
class WriteResult:
    """Row counts applied by one committed transaction."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
