"""Shared pytest fixtures for star-sync tests.

Fixture Organization:
    - Metrics fixtures: fresh CollectorRegistry per test
    - Store fixtures: in-memory SQLite store with schema created
    - Config fixtures: credentials set, .env loading disabled
"""

import sys
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from starsync.config import SyncConfig, reset_config
from starsync.metrics import SyncMetrics
from starsync.store import RepositoryStore

# Make helpers.py importable from nested test directories
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))


@pytest.fixture
def registry():
    """Isolated prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return SyncMetrics(registry)


@pytest.fixture
def store():
    """In-memory SQLite store with the repositories table created."""
    repo_store = RepositoryStore("sqlite://")
    repo_store.create_schema()
    yield repo_store
    repo_store.close()


@pytest.fixture
def sync_config(tmp_path):
    """Config with credentials, independent of the developer's .env."""
    return SyncConfig(
        _env_file=None,
        github_token="ghp_test_token_123",
        github_username="octocat",
        database_url="sqlite://",
        health_file=tmp_path / "sync.health",
    )


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    reset_config()
    yield
    reset_config()
