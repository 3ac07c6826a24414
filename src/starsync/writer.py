"""Atomic write-back of one sync run."""

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone

from starsync.github.transport import Clock
from starsync.models import PersistedRepository, SyncPlan, WriteResult
from starsync.store import RepositoryStore

logger = logging.getLogger("starsync.writer")


class TransactionalWriter:
    """Applies creates, updates and deletes in a single transaction.

    Creates carry whatever README enrichment produced (None for a 404) and
    a fresh cache timestamp. Updates always overwrite metadata but touch the
    README columns only for repositories re-enriched in this run. A failure
    anywhere rolls back the whole run and propagates to the caller.
    """

    def __init__(self, store: RepositoryStore, clock: Clock = time.time) -> None:
        self.store = store
        self._clock = clock

    def apply(self, plan: SyncPlan, readmes: Mapping[int, str | None]) -> WriteResult:
        fetched_at = datetime.fromtimestamp(self._clock(), tz=timezone.utc)

        with self.store.transaction() as tx:
            created = tx.insert_many(
                [
                    PersistedRepository.from_remote(
                        repo,
                        readme_content=readmes.get(repo.id),
                        readme_fetched_at=fetched_at,
                    )
                    for repo in plan.to_create
                ]
            )

            updated = 0
            for repo in plan.to_update:
                values = repo.metadata()
                if repo.id in readmes:
                    values["readme_content"] = readmes[repo.id]
                    values["readme_fetched_at"] = fetched_at
                updated += tx.update(repo.id, values)

            deleted = tx.delete_many(sorted(plan.to_delete))

        result = WriteResult(created=created, updated=updated, deleted=deleted)
        logger.info(
            "Store synchronized: %d created, %d updated, %d deleted",
            result.created,
            result.updated,
            result.deleted,
        )
        return result
