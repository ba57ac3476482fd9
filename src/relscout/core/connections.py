"""SQLAlchemy access to the metadata store.

The metadata store is where earlier pipeline stages leave table and column
metadata, and where discovered relationships are written back. Customer
databases go through relscout.datasource instead.
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from relscout.core.logging import get_logger
from relscout.storage import init_database

if TYPE_CHECKING:
    from relscout.core.config import Settings

logger = get_logger(__name__)


@dataclass
class ConnectionConfig:
    """Engine options for the metadata store.

    Pool options apply to server databases only. ``sqlite_timeout`` becomes
    the SQLite busy timeout.
    """

    database_url: str
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: float = 30.0
    sqlite_timeout: float = 30.0
    echo_sql: bool = False

    @classmethod
    def in_memory(cls, **kwargs: Any) -> ConnectionConfig:
        return cls(database_url="sqlite:///:memory:", **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> ConnectionConfig:
        return cls(database_url=settings.metadata_database_url, **kwargs)

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and make_url(self.database_url).database in (None, "", ":memory:")

    def engine_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"echo": self.echo_sql, "pool_pre_ping": True}
        if not self.is_sqlite:
            kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
            )
            return kwargs

        kwargs["connect_args"] = {"check_same_thread": False}
        if self.is_memory:
            # Every thread must see the same in-memory database
            kwargs["poolclass"] = StaticPool
        return kwargs


@dataclass
class ConnectionManager:
    """Owns the engine and hands out short-lived sessions.

    Sessions are per ``session_scope`` call, so worker threads can each open
    their own. Commits go through one lock; SQLite allows a single writer.
    Use as a context manager or call ``initialize``/``close`` yourself.
    """

    config: ConnectionConfig
    _engine: Engine | None = field(default=None, init=False, repr=False)
    _sessions: sessionmaker[Session] | None = field(default=None, init=False, repr=False)
    _commit_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _init_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def initialized(self) -> bool:
        return self._sessions is not None

    def initialize(self) -> None:
        """Create the engine and any missing tables. Idempotent.

        Raises:
            RuntimeError: If the engine cannot be created or the schema cannot be applied
        """
        with self._init_lock:
            if self.initialized:
                return
            try:
                engine = create_engine(self.config.database_url, **self.config.engine_kwargs())
                self._engine = engine
                if self.config.is_sqlite:
                    event.listen(engine, "connect", self._apply_sqlite_pragmas)
                init_database(engine)
            except Exception as e:
                self.close()
                raise RuntimeError(f"Failed to initialize metadata store: {e}") from e

            self._sessions = sessionmaker(engine, expire_on_commit=False, autoflush=False)
            logger.debug("metadata_store_ready", backend=engine.url.get_backend_name())

    def _apply_sqlite_pragmas(self, dbapi_conn: Any, connection_record: Any) -> None:
        pragmas = [
            "foreign_keys=ON",
            f"busy_timeout={int(self.config.sqlite_timeout * 1000)}",
            "synchronous=NORMAL",
        ]
        if not self.config.is_memory:
            pragmas.append("journal_mode=WAL")
        cursor = dbapi_conn.cursor()
        for pragma in pragmas:
            cursor.execute(f"PRAGMA {pragma}")
        cursor.close()

    @property
    def engine(self) -> Engine:
        if self._engine is None or not self.initialized:
            raise RuntimeError("ConnectionManager not initialized. Call initialize() first.")
        return self._engine

    @contextmanager
    def session_scope(self) -> Generator[Session]:
        """Session that commits on success and rolls back on any exception.

        Raises:
            RuntimeError: If the manager is not initialized
        """
        if self._sessions is None:
            raise RuntimeError("ConnectionManager not initialized. Call initialize() first.")

        session = self._sessions()
        try:
            yield session
            with self._commit_lock:
                session.commit()
        except Exception:
            logger.debug("session_rollback", thread=threading.current_thread().name)
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Dispose of the engine. Safe to call more than once."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessions = None

    def __enter__(self) -> ConnectionManager:
        self.initialize()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
