"""README enrichment for new and updated repositories.

Fetches are sequential, one repository at a time through the rate-limited
transport. A failed fetch never aborts the sync: 404 means the repository
has no README, anything else is logged as unexpected, and both record
None as the content.
"""

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Protocol

from starsync.github.errors import GitHubClientError
from starsync.github.transport import Clock
from starsync.metrics import SyncMetrics
from starsync.models import PersistedRepository, RemoteRepository, SyncPlan

logger = logging.getLogger("starsync.enrichment")

DEFAULT_FRESHNESS = timedelta(hours=24)


class ReadmeSource(Protocol):
    async def fetch_readme(self, full_name: str) -> str | None: ...


def is_stale(
    cached: PersistedRepository | None, now: datetime, freshness: timedelta
) -> bool:
    """True when there is no cached README timestamp or it is past the window."""
    if cached is None or cached.readme_fetched_at is None:
        return True
    return cached.readme_fetched_at < now - freshness


def select_candidates(
    plan: SyncPlan,
    persisted: Mapping[int, PersistedRepository],
    now: datetime,
    freshness: timedelta = DEFAULT_FRESHNESS,
) -> list[RemoteRepository]:
    """Repositories whose README must be fetched this run.

    Every create is a candidate. An update is a candidate only when its
    cached README is missing or stale. Candidates are de-duplicated by
    identifier, the later entry winning.
    """
    candidates = list(plan.to_create)
    candidates.extend(
        repo
        for repo in plan.to_update
        if is_stale(persisted.get(repo.id), now, freshness)
    )
    unique: dict[int, RemoteRepository] = {}
    for repo in candidates:
        unique[repo.id] = repo
    return list(unique.values())


class ReadmeEnricher:
    """Fetches README content for the candidates of a SyncPlan."""

    def __init__(
        self,
        source: ReadmeSource,
        metrics: SyncMetrics,
        clock: Clock = time.time,
        freshness: timedelta = DEFAULT_FRESHNESS,
    ) -> None:
        self.source = source
        self.metrics = metrics
        self.freshness = freshness
        self._clock = clock

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    async def enrich(
        self,
        plan: SyncPlan,
        persisted: Mapping[int, PersistedRepository],
    ) -> dict[int, str | None]:
        """Fetch READMEs for every create and every stale update.

        Returns:
            Identifier -> README text (None when missing or failed), only for
            repositories actually fetched this run
        """
        candidates = select_candidates(plan, persisted, self.now(), self.freshness)
        results: dict[int, str | None] = {}
        for repo in candidates:
            results[repo.id] = await self._fetch_one(repo)

        if results:
            self.metrics.readme_fetch_total.inc(len(results))
        logger.info(
            "Fetched %d README files (%d skipped as fresh)",
            len(results),
            len(plan.to_create) + len(plan.to_update) - len(results),
        )
        return results

    async def _fetch_one(self, repo: RemoteRepository) -> str | None:
        try:
            return await self.source.fetch_readme(repo.full_name)
        except GitHubClientError as e:
            if e.is_not_found:
                logger.warning("README not found for %s", repo.full_name)
            else:
                logger.error("Error fetching README for %s: %s", repo.full_name, e)
            return None
        except Exception as e:
            # Fail-open per repository
            logger.error(
                "Unexpected error fetching README for %s: %s",
                repo.full_name,
                e,
                exc_info=True,
            )
            return None
