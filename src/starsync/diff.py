"""Diff of the remote starred list against the store snapshot.

Pure classification, no I/O:
- create: identifier not in the store
- update: stored, and the remote last-push is strictly newer
- unchanged: stored, remote last-push equal or older (other fields ignored)
- delete: stored identifiers missing from the remote list
"""

import logging
from collections.abc import Iterable, Mapping

from starsync.models import PersistedRepository, RemoteRepository, SyncPlan

logger = logging.getLogger("starsync.diff")


def classify(
    remote: Iterable[RemoteRepository],
    persisted: Mapping[int, PersistedRepository],
) -> SyncPlan:
    """Partition remote and persisted identifiers into a SyncPlan.

    Args:
        remote: Starred repositories in API order
        persisted: Current store snapshot keyed by identifier

    Returns:
        SyncPlan with disjoint create/update/delete/unchanged sets
    """
    # Later duplicates replace earlier ones but keep the first position
    by_id: dict[int, RemoteRepository] = {}
    for repo in remote:
        if repo.id in by_id:
            logger.warning("Duplicate repository id %d in starred list", repo.id)
        by_id[repo.id] = repo

    plan = SyncPlan()
    for repo_id, repo in by_id.items():
        existing = persisted.get(repo_id)
        if existing is None:
            plan.to_create.append(repo)
        elif repo.pushed_at > existing.pushed_at:
            plan.to_update.append(repo)
        else:
            plan.unchanged.append(repo)

    plan.to_delete = {repo_id for repo_id in persisted if repo_id not in by_id}
    return plan
