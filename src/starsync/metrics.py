"""
Prometheus metrics for the starred-repository sync.

The sync core only calls into these collectors; exposition is handled by the
service entrypoint (prometheus_client.start_http_server).
"""

from functools import lru_cache

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

# Run length buckets in seconds, a full resync with rate-limit waits can take minutes
SYNC_DURATION_BUCKETS = [0.1, 5, 15, 50, 100, 300, 600]


class SyncMetrics:
    """Collectors the sync engine reports to.

    Each instance registers its collectors on one registry, so tests can
    pass a fresh CollectorRegistry and read values back with
    registry.get_sample_value().
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

        # ======================================================================
        # COUNTERS
        # ======================================================================

        self.sync_runs_total = Counter(
            "star_sync_runs_total",
            "Total number of synchronization runs started",
            registry=self.registry,
        )
        self.sync_success_total = Counter(
            "star_sync_success_total",
            "Total number of successful synchronization runs",
            registry=self.registry,
        )
        self.sync_errors_total = Counter(
            "star_sync_errors_total",
            "Total number of failed synchronization runs",
            registry=self.registry,
        )
        self.readme_fetch_total = Counter(
            "star_sync_readme_fetch_total",
            "Total number of README files fetched",
            registry=self.registry,
        )
        self.rate_limit_waits_total = Counter(
            "star_sync_rate_limit_waits_total",
            "Total number of waits for a GitHub API rate limit reset",
            registry=self.registry,
        )

        # ======================================================================
        # HISTOGRAMS
        # ======================================================================

        self.sync_duration_seconds = Histogram(
            "star_sync_duration_seconds",
            "Duration of synchronization runs in seconds",
            buckets=SYNC_DURATION_BUCKETS,
            registry=self.registry,
        )


@lru_cache(maxsize=1)
def get_metrics() -> SyncMetrics:
    """Process-wide metrics bound to the global prometheus registry."""
    return SyncMetrics()
