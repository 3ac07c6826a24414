"""Sync engine mirroring a user's starred repositories into the store.

One run is strictly sequential:
fetch starred list -> diff against store snapshot -> fetch READMEs -> write.
The store is only written in the final step, inside one transaction, so a
run that fails earlier leaves it untouched. Store reads and writes are
blocking and run in a worker thread (asyncio.to_thread).
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from starsync.config import SyncConfig
from starsync.diff import classify
from starsync.enrichment import ReadmeEnricher
from starsync.github.client import GitHubClient
from starsync.github.transport import Clock
from starsync.metrics import SyncMetrics, get_metrics
from starsync.store import RepositoryStore
from starsync.writer import TransactionalWriter

logger = logging.getLogger("starsync.sync")


@dataclass
class SyncResult:
    """Outcome of one sync run, for logging."""

    status: str = "success"
    fetched: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    readmes_fetched: int = 0
    duration_seconds: float = 0.0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "fetched": self.fetched,
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "unchanged": self.unchanged,
            "readmes_fetched": self.readmes_fetched,
            "duration_seconds": round(self.duration_seconds, 2),
            "error": self.error,
        }


class StarSyncEngine:
    """Orchestrates fetch, diff, enrichment and write-back.

    Attributes:
        config: Sync configuration
        client: GitHubClient, None when credentials are missing
        store: RepositoryStore holding the mirror
        metrics: Metrics sink for run counters and duration
    """

    def __init__(
        self,
        config: SyncConfig,
        client: GitHubClient | None,
        store: RepositoryStore,
        metrics: SyncMetrics,
        clock: Clock = time.time,
    ) -> None:
        self.config = config
        self.client = client
        self.store = store
        self.metrics = metrics
        self.writer = TransactionalWriter(store, clock=clock)
        self.enricher = (
            ReadmeEnricher(
                client,
                metrics,
                clock=clock,
                freshness=timedelta(hours=config.readme_freshness_hours),
            )
            if client is not None
            else None
        )
        self._lock = asyncio.Lock()

        if not self.enabled:
            logger.warning(
                "GITHUB_TOKEN or GITHUB_USERNAME is not set. Disabling GitHub sync."
            )

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        store: RepositoryStore,
        metrics: SyncMetrics | None = None,
    ) -> StarSyncEngine:
        """Build the engine and its GitHub client from configuration."""
        metrics = metrics if metrics is not None else get_metrics()
        client = None
        if config.has_credentials:
            client = GitHubClient(
                token=config.github_token.get_secret_value(),
                username=config.github_username,
                metrics=metrics,
                base_url=config.github_api_url,
                max_rate_limit_waits=config.rate_limit_max_waits,
            )
        return cls(config, client, store, metrics)

    @property
    def enabled(self) -> bool:
        return self.config.has_credentials and self.client is not None

    async def sync_once(self) -> SyncResult | None:
        """Run one sync; never raises.

        Returns:
            SyncResult for a run that was attempted (status success or
            failed), None when skipped for missing credentials or because
            another run is still in progress
        """
        if not self.enabled:
            return None
        if self._lock.locked():
            logger.warning("Synchronization already in progress, skipping this run")
            return None
        async with self._lock:
            return await self._run()

    async def _run(self) -> SyncResult:
        result = SyncResult()
        self.metrics.sync_runs_total.inc()
        start = time.monotonic()

        with self.metrics.sync_duration_seconds.time():
            try:
                logger.info("Step 1/4: Fetching starred repositories...")
                remote = await self.client.fetch_all_starred()
                result.fetched = len(remote)
                logger.info("Fetched %d repositories.", len(remote))

                logger.info("Step 2/4: Fetching current state from DB...")
                persisted = await asyncio.to_thread(self.store.snapshot)
                plan = classify(remote, persisted)
                result.unchanged = len(plan.unchanged)
                logger.info(
                    "Found: %d new, %d updated, %d removed repositories.",
                    len(plan.to_create),
                    len(plan.to_update),
                    len(plan.to_delete),
                )

                logger.info("Step 3/4: Enriching data (fetching READMEs)...")
                readmes = await self.enricher.enrich(plan, persisted)
                result.readmes_fetched = len(readmes)

                logger.info("Step 4/4: Synchronizing with the database...")
                written = await asyncio.to_thread(self.writer.apply, plan, readmes)
                result.created = written.created
                result.updated = written.updated
                result.deleted = written.deleted

                self.metrics.sync_success_total.inc()
                logger.info("Synchronization successfully completed.")
            except Exception as e:
                # Run boundary: a failed run is reported, never raised
                result.status = "failed"
                result.error = str(e)
                self.metrics.sync_errors_total.inc()
                logger.error("Synchronization failed: %s", e, exc_info=True)
            finally:
                result.duration_seconds = time.monotonic() - start

        logger.info("Sync run finished", extra={"result": result.to_dict()})
        return result
