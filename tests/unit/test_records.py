"""Unit tests for the sync record types."""

from datetime import datetime, timedelta, timezone

import pytest
from helpers import starred_item

from starsync.models import PersistedRepository, RemoteRepository, parse_timestamp


class TestParseTimestamp:
    def test_z_suffix(self):
        assert parse_timestamp("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_offset_normalized_to_utc(self):
        parsed = parse_timestamp("2024-01-01T02:00:00+02:00")
        assert parsed == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_assumed_utc(self):
        assert parse_timestamp("2024-01-01T00:00:00").tzinfo is not None


class TestRemoteRepository:
    def test_from_api(self):
        repo = RemoteRepository.from_api(starred_item(42, pushed_at="2024-02-02T10:00:00Z"))

        assert repo.id == 42
        assert repo.name == "repo42"
        assert repo.full_name == "owner42/repo42"
        assert repo.owner == "owner42"
        assert repo.url == "https://github.com/owner42/repo42"
        assert repo.stars == 42
        assert repo.pushed_at == datetime(2024, 2, 2, 10, tzinfo=timezone.utc)

    def test_never_pushed_falls_back_to_created(self):
        item = starred_item(1)
        item["repo"]["pushed_at"] = None

        repo = RemoteRepository.from_api(item)

        assert repo.pushed_at == repo.created_at

    def test_missing_required_field(self):
        item = starred_item(1)
        del item["starred_at"]
        with pytest.raises(KeyError):
            RemoteRepository.from_api(item)

    def test_metadata_uses_column_names(self):
        repo = RemoteRepository.from_api(starred_item(3))

        metadata = repo.metadata()

        assert metadata["repo_pushed_at"] == repo.pushed_at
        assert metadata["repo_starred_at"] == repo.starred_at
        assert "readme_content" not in metadata
        assert "id" not in metadata

    def test_is_immutable(self):
        repo = RemoteRepository.from_api(starred_item(3))
        with pytest.raises(AttributeError):
            repo.stars = 0


class TestPersistedRepository:
    def test_from_remote_copies_fields(self):
        remote = RemoteRepository.from_api(starred_item(9))
        fetched = datetime(2024, 1, 1, tzinfo=timezone.utc)

        persisted = PersistedRepository.from_remote(remote, "# Nine", fetched)

        assert persisted.id == 9
        assert persisted.full_name == remote.full_name
        assert persisted.pushed_at == remote.pushed_at
        assert persisted.readme_content == "# Nine"
        assert persisted.readme_fetched_at == fetched
