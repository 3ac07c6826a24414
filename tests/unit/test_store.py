"""Unit tests for the SQLAlchemy repository store."""

import threading
from datetime import datetime, timedelta, timezone

import pytest
from helpers import NOW, make_persisted

from starsync.store import RepositoryStore


def _seed(store, *records):
    with store.transaction() as tx:
        tx.insert_many(list(records))


class TestRepositoryStore:
    def test_requires_url_or_engine(self):
        with pytest.raises(ValueError):
            RepositoryStore()

    def test_empty_snapshot(self, store):
        assert store.snapshot() == {}
        assert store.count() == 0

    def test_create_schema_is_idempotent(self, store):
        store.create_schema()
        assert store.count() == 0

    def test_insert_and_snapshot_round_trip(self, store):
        record = make_persisted(7, readme_content="# Seven", readme_fetched_at=NOW)
        _seed(store, record)

        assert store.snapshot() == {7: record}

    def test_timestamps_come_back_aware_utc(self, store):
        _seed(store, make_persisted(1, readme_fetched_at=NOW))

        loaded = store.snapshot()[1]
        assert loaded.pushed_at.tzinfo is not None
        assert loaded.readme_fetched_at == NOW
        assert loaded.readme_fetched_at.utcoffset() == timedelta(0)

    def test_non_utc_offset_normalized(self, store):
        plus_two = timezone(timedelta(hours=2))
        local = datetime(2024, 5, 1, 14, 0, tzinfo=plus_two)
        _seed(store, make_persisted(1, pushed_at=local))

        loaded = store.snapshot()[1]
        assert loaded.pushed_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_naive_datetime_rejected(self, store):
        naive = make_persisted(1, pushed_at=datetime(2024, 1, 1))
        with pytest.raises(Exception, match="Naive datetime"):
            _seed(store, naive)
        assert store.count() == 0

    def test_update_returns_rowcount(self, store):
        _seed(store, make_persisted(1))

        with store.transaction() as tx:
            assert tx.update(1, {"stars": 99}) == 1
            assert tx.update(404, {"stars": 1}) == 0

        assert store.snapshot()[1].stars == 99

    def test_delete_many(self, store):
        _seed(store, make_persisted(1), make_persisted(2), make_persisted(3))

        with store.transaction() as tx:
            assert tx.delete_many([1, 3]) == 2
            assert tx.delete_many([]) == 0

        assert set(store.snapshot()) == {2}

    def test_insert_nothing(self, store):
        with store.transaction() as tx:
            assert tx.insert_many([]) == 0

    def test_transaction_rolls_back_on_error(self, store):
        _seed(store, make_persisted(1))

        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.delete_many([1])
                tx.insert_many([make_persisted(2)])
                raise RuntimeError("abort")

        assert set(store.snapshot()) == {1}

    def test_duplicate_primary_key_rolls_back(self, store):
        _seed(store, make_persisted(1))

        with pytest.raises(Exception):
            _seed(store, make_persisted(2), make_persisted(1))

        assert set(store.snapshot()) == {1}

    def test_in_memory_database_shared_across_threads(self, store):
        _seed(store, make_persisted(1))
        seen = {}

        worker = threading.Thread(target=lambda: seen.update(store.snapshot()))
        worker.start()
        worker.join()

        assert set(seen) == {1}

    def test_file_database_persists_across_instances(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'stars.db'}"
        first = RepositoryStore(url)
        first.create_schema()
        _seed(first, make_persisted(5))
        first.close()

        second = RepositoryStore(url)
        try:
            assert set(second.snapshot()) == {5}
        finally:
            second.close()
