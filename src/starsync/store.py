"""Persistent store for mirrored repositories (SQLAlchemy).

One table keyed by GitHub repository id. The only writer is
TransactionalWriter, which goes through RepositoryStore.transaction() so
inserts, updates and deletes of a run commit or roll back together.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    BigInteger,
    DateTime,
    Engine,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from starsync.models import PersistedRepository

logger = logging.getLogger("starsync.store")


class UTCDateTime(TypeDecorator):
    """Stores UTC, always returns aware datetimes (SQLite drops tzinfo)."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetime passed to UTCDateTime column")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


class RepositoryRow(Base):
    """A starred repository with its cached README."""

    __tablename__ = "repositories"

    github_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str | None] = mapped_column(String(100))
    stars: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repo_created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    repo_pushed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    repo_starred_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    readme_content: Mapped[str | None] = mapped_column(Text)
    readme_fetched_at: Mapped[datetime | None] = mapped_column(UTCDateTime)

    def __repr__(self) -> str:
        return f"<RepositoryRow {self.full_name} ({self.github_id})>"

    def to_record(self) -> PersistedRepository:
        return PersistedRepository(
            id=self.github_id,
            name=self.name,
            full_name=self.full_name,
            description=self.description,
            url=self.url,
            language=self.language,
            stars=self.stars,
            created_at=self.repo_created_at,
            pushed_at=self.repo_pushed_at,
            starred_at=self.repo_starred_at,
            readme_content=self.readme_content,
            readme_fetched_at=self.readme_fetched_at,
        )


def record_to_row_values(record: PersistedRepository) -> dict[str, Any]:
    return {
        "github_id": record.id,
        "name": record.name,
        "full_name": record.full_name,
        "description": record.description,
        "url": record.url,
        "language": record.language,
        "stars": record.stars,
        "repo_created_at": record.created_at,
        "repo_pushed_at": record.pushed_at,
        "repo_starred_at": record.starred_at,
        "readme_content": record.readme_content,
        "readme_fetched_at": record.readme_fetched_at,
    }


class StoreTransaction:
    """Batch operations bound to one open database transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def insert_many(self, records: list[PersistedRepository]) -> int:
        if not records:
            return 0
        self.session.execute(
            insert(RepositoryRow), [record_to_row_values(r) for r in records]
        )
        return len(records)

    def update(self, github_id: int, values: dict[str, Any]) -> int:
        result = self.session.execute(
            update(RepositoryRow)
            .where(RepositoryRow.github_id == github_id)
            .values(**values)
        )
        return result.rowcount

    def delete_many(self, github_ids: Iterable[int]) -> int:
        ids = list(github_ids)
        if not ids:
            return 0
        result = self.session.execute(
            delete(RepositoryRow).where(RepositoryRow.github_id.in_(ids))
        )
        return result.rowcount


def _engine_options(database_url: str) -> dict[str, Any]:
    """Engine kwargs for a database URL.

    An in-memory SQLite database lives on a single connection, so it is
    shared across threads (the sync engine calls the store via
    asyncio.to_thread).
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {}


class RepositoryStore:
    """SQLAlchemy-backed table of mirrored repositories.

    Example:
        >>> store = RepositoryStore("sqlite:///star_sync.db")
        >>> store.create_schema()
        >>> with store.transaction() as tx:
        ...     tx.delete_many([42])
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None) -> None:
        if engine is None:
            if database_url is None:
                raise ValueError("database_url or engine is required")
            engine = create_engine(database_url, **_engine_options(database_url))
        self.engine = engine

    def create_schema(self) -> None:
        """Create the repositories table if it does not exist."""
        Base.metadata.create_all(self.engine)
        logger.info("Database schema initialized")

    def snapshot(self) -> dict[int, PersistedRepository]:
        """Read every stored repository keyed by identifier."""
        with Session(self.engine) as session:
            rows = session.scalars(select(RepositoryRow)).all()
            return {row.github_id: row.to_record() for row in rows}

    def count(self) -> int:
        with Session(self.engine) as session:
            return session.scalar(select(func.count()).select_from(RepositoryRow)) or 0

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Open an atomic unit of work.

        Commits on normal exit; any exception rolls back every operation
        issued through the yielded StoreTransaction and is re-raised.
        """
        with Session(self.engine) as session:
            with session.begin():
                yield StoreTransaction(session)

    def close(self) -> None:
        """Dispose the engine's connection pool."""
        self.engine.dispose()
