"""Database engine and session lifecycle.

``Database`` is constructed once at application startup (see the lifespan in
``crm.main``) and handed to request handlers through ``app.state.db``.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm.core.config import settings

logger = logging.getLogger(__name__)


class Database:
    """Owns the connection pool and hands out sessions."""

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 20,
        pool_timeout: int = 2,
        pool_recycle: int = 30,
        slow_query_ms: int = 100,
        echo: bool = False,
    ):
        self.url = url
        self.pool_size = pool_size
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.slow_query_ms = slow_query_ms
        self.echo = echo
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker | None = None

    @classmethod
    def from_settings(cls) -> "Database":
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
            slow_query_ms=settings.SLOW_QUERY_THRESHOLD_MS,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def init(self) -> "Database":
        """Create the engine and session factory. Idempotent."""
        if self._engine is not None:
            return self

        url = make_url(self.url)
        backend = url.get_backend_name()
        kwargs: dict = {"echo": self.echo, "pool_pre_ping": True}

        if backend == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(
                pool_size=self.pool_size,
                max_overflow=0,
                pool_timeout=self.pool_timeout,
                pool_recycle=self.pool_recycle,
            )
            if backend.startswith("postgresql"):
                kwargs["connect_args"] = {"options": "-c timezone=utc"}

        self._engine = create_engine(url, **kwargs)
        if backend == "sqlite":
            self._enforce_sqlite_foreign_keys(self._engine)
        self._install_slow_query_log(self._engine)
        self._sessionmaker = sessionmaker(
            autocommit=False, autoflush=False, bind=self._engine
        )
        logger.info("Database pool initialized (backend=%s)", backend)
        return self

    def shutdown(self) -> None:
        """Dispose of the pool. Safe to call more than once."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database pool disposed")

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database.init() has not been called")
        return self._engine

    # =========================================================================
    # Sessions
    # =========================================================================

    def session(self) -> Session:
        """Return a new session bound to the pool."""
        if self._sessionmaker is None:
            raise RuntimeError("Database.init() has not been called")
        return self._sessionmaker()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a block in one transaction: commit on success, rollback on error."""
        db = self.session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # =========================================================================
    # Observability
    # =========================================================================

    @staticmethod
    def _enforce_sqlite_foreign_keys(engine: Engine) -> None:
        @event.listens_for(engine, "connect")
        def _set_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    def _install_slow_query_log(self, engine: Engine) -> None:
        threshold = self.slow_query_ms

        @event.listens_for(engine, "before_cursor_execute")
        def _start_timer(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault("query_start_time", []).append(time.perf_counter())

        @event.listens_for(engine, "after_cursor_execute")
        def _log_slow_query(conn, cursor, statement, parameters, context, executemany):
            started = conn.info["query_start_time"].pop()
            duration_ms = (time.perf_counter() - started) * 1000
            if duration_ms > threshold:
                logger.warning(
                    "Slow query: %s",
                    {"text": statement, "duration_ms": round(duration_ms, 1), "rows": cursor.rowcount},
                )

        @event.listens_for(engine, "handle_error")
        def _discard_timer(exception_context):
            conn = exception_context.connection
            if conn is not None and conn.info.get("query_start_time"):
                conn.info["query_start_time"].pop()
