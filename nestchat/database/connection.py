"""
Database Connection Management.

This module handles the relational store via SQLAlchemy.
It provides:
- Connection pooling
- Session management
- Health checks

MySQL (PyMySQL driver) is the deployment target; any SQLAlchemy URL
works, and in-memory SQLite is used by the tests.
"""
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from nestchat.core.config import get_settings
from nestchat.core.logging_config import get_logger

logger = get_logger(__name__)


def _engine_options(db_url: str) -> dict:
    url = make_url(db_url)

    if url.get_backend_name() == "sqlite":
        options = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One shared connection, or every session would see an empty database
            options["poolclass"] = StaticPool
        return options

    # MySQL drops idle connections; pre-ping replaces them transparently
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


class DatabaseConnection:
    """
    Owns the engine and hands out transactional sessions.

    Example:
        >>> db = DatabaseConnection("sqlite://")
        >>> with db.get_session() as session:
        ...     session.execute(text("SELECT 1"))
    """

    def __init__(self, connection_url: Optional[str] = None):
        """
        Create the engine for `connection_url`.

        Args:
            connection_url: SQLAlchemy URL; defaults to settings.database_url
        """
        db_url = connection_url or get_settings().database_url

        self.engine = create_engine(db_url, echo=False, **_engine_options(db_url))
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
        )

        logger.info(f"Database connection initialized: {db_url.split('@')[-1] if '@' in db_url else db_url}")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        One unit of work: commit when the block exits cleanly,
        roll back on a SQLAlchemy error.

        Yields:
            SQLAlchemy Session object
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error, rolling back: {e}")
            raise
        finally:
            session.close()

    def check_connection(self) -> bool:
        """
        Run SELECT 1 against the database.

        Returns:
            Whether the query succeeded
        """
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    def close(self) -> None:
        """Dispose of the pool."""
        self.engine.dispose()
        logger.info("Database connections closed")


# Process-wide connection, created on first use
_db_connection: Optional[DatabaseConnection] = None


def get_database() -> DatabaseConnection:
    """The shared DatabaseConnection built from settings."""
    global _db_connection
    if _db_connection is None:
        _db_connection = DatabaseConnection()
    return _db_connection


def reset_database() -> None:
    """Dispose and drop the global connection (useful for testing)."""
    global _db_connection
    if _db_connection is not None:
        _db_connection.close()
    _db_connection = None
