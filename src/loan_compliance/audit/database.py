"""Database connection management for report storage and auditing."""

import os
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


DATABASE_URL_ENV = "COMPLIANCE_DATABASE_URL"


def get_database_url(
    host: Optional[str] = None,
    port: Optional[int] = None,
    database: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
) -> str:
    """
    Resolve the URL of the report database.

    ``COMPLIANCE_DATABASE_URL`` is used as-is unless connection parameters
    are passed explicitly; otherwise a PostgreSQL URL is assembled from the
    arguments and the ``POSTGRES_*`` variables.

    Args:
        host: Database host (default: POSTGRES_HOST or 'localhost')
        port: Database port (default: POSTGRES_PORT or 5432)
        database: Database name (default: POSTGRES_DB or 'loan_compliance')
        user: Database user (default: POSTGRES_USER or 'postgres')
        password: Database password (default: POSTGRES_PASSWORD or 'postgres')
    """
    configured = os.environ.get(DATABASE_URL_ENV)
    if configured and all(value is None for value in (host, port, database, user, password)):
        return configured

    return "postgresql://{user}:{password}@{host}:{port}/{database}".format(
        user=user or os.environ.get("POSTGRES_USER", "postgres"),
        password=password or os.environ.get("POSTGRES_PASSWORD", "postgres"),
        host=host or os.environ.get("POSTGRES_HOST", "localhost"),
        port=port or int(os.environ.get("POSTGRES_PORT", "5432")),
        database=database or os.environ.get("POSTGRES_DB", "loan_compliance"),
    )


class DatabaseManager:
    """
    Owns the engine and session factory shared by the report store and
    the audit logger.

    SQLite URLs get a connection that may cross threads (API handlers run
    in a worker pool); in-memory SQLite additionally shares one connection
    so every session sees the same tables. Server databases get a bounded
    pool with pre-ping.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self._database_url = database_url or get_database_url()
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def is_sqlite(self) -> bool:
        return make_url(self._database_url).get_backend_name() == "sqlite"

    def _engine_options(self) -> Dict[str, Any]:
        if not self.is_sqlite:
            return {
                "pool_size": self._pool_size,
                "max_overflow": self._max_overflow,
                "pool_pre_ping": True,
            }
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if make_url(self._database_url).database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options

    @property
    def engine(self) -> Engine:
        """Engine for the configured URL, created on first use."""
        if self._engine is None:
            self._engine = create_engine(self._database_url, echo=self._echo, **self._engine_options())
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._sessions is None:
            # Reports are read back after commit; keep loaded attributes.
            self._sessions = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        return self._sessions

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Session scoped to a ``with`` block.

        Commits when the block completes, rolls back and re-raises when it
        fails, and always closes the session.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self) -> None:
        """Create the report and audit tables if they do not exist yet."""
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self) -> None:
        Base.metadata.drop_all(self.engine)

    def close(self) -> None:
        """Dispose of the engine; a later call to ``engine`` reconnects."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessions = None

    def health_check(self) -> bool:
        """Return True when a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True
