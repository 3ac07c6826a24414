"""star-sync - mirror a GitHub user's starred repositories into a database.

Provides:
- Configuration management with environment overrides
- Rate-limit aware GitHub client for stars and READMEs
- Diff, README enrichment and transactional write-back
- Prometheus metrics and a periodic sync service

Python Version: 3.10+ required
"""

from .__version__ import __version__
from .config import SyncConfig, get_config, reset_config
from .diff import classify
from .enrichment import ReadmeEnricher, select_candidates
from .github import GitHubClient, GitHubClientError, RateLimitedTransport, RateLimitExceeded
from .logging_config import StructuredFormatter, configure_logging
from .metrics import SyncMetrics, get_metrics
from .models import PersistedRepository, RemoteRepository, SyncPlan, WriteResult
from .scheduler import Scheduler
from .store import RepositoryStore
from .sync import StarSyncEngine, SyncResult
from .writer import TransactionalWriter

__all__ = [
    "GitHubClient",
    "GitHubClientError",
    "PersistedRepository",
    "RateLimitExceeded",
    "RateLimitedTransport",
    "ReadmeEnricher",
    "RemoteRepository",
    "RepositoryStore",
    "Scheduler",
    "StarSyncEngine",
    "StructuredFormatter",
    "SyncConfig",
    "SyncMetrics",
    "SyncPlan",
    "SyncResult",
    "TransactionalWriter",
    "WriteResult",
    "__version__",
    "classify",
    "configure_logging",
    "get_config",
    "get_metrics",
    "reset_config",
    "select_candidates",
]
