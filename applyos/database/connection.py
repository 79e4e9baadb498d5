"""
Database Connection Management.

Wraps the SQLAlchemy engine for the Supabase Postgres database:
- connection pooling
- session lifecycle (commit on success, rollback on error)
- health checks

SQLite URLs are accepted for local development and tests.
"""
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from applyos.core.config import get_settings
from applyos.core.exceptions import DatabaseError
from applyos.core.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseConnection:
    """
    Manages database connections and session lifecycle.

    Example:
        >>> db = DatabaseConnection()
        >>> with db.get_session() as session:
        ...     session.execute(text("SELECT 1"))
    """

    def __init__(self, connection_url: Optional[str] = None):
        """
        Initialize database engine.

        Args:
            connection_url: Optional connection URL. If not provided, uses settings.
        """
        self.settings = get_settings()
        db_url = connection_url or self.settings.database_url

        if db_url.startswith("sqlite"):
            # SQLite connections are shared across the TestClient's threads
            self.engine = create_engine(
                db_url,
                connect_args={"check_same_thread": False},
                echo=False,
            )
        else:
            self.engine = create_engine(
                db_url,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                echo=False,
            )

        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        logger.info(f"Database connection initialized: {db_url.split('@')[-1] if '@' in db_url else db_url.split(':')[0]}")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with automatic cleanup.

        Commits when the block exits normally, rolls back on any error.
        SQLAlchemy failures surface as DatabaseError; application
        exceptions raised inside the block propagate unchanged.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error, rolling back: {e}")
            raise DatabaseError() from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def check_connection(self) -> bool:
        """Return True when a trivial query succeeds."""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            logger.debug("Database connection check: OK")
            return True
        except DatabaseError as e:
            logger.error(f"Database connection check failed: {e.__cause__}")
            return False

    def close(self):
        """Close all connections in the pool."""
        self.engine.dispose()
        logger.info("Database connections closed")


# Module-level instance (singleton pattern)
_db_connection: Optional[DatabaseConnection] = None


def get_database() -> DatabaseConnection:
    """Get or create the database connection instance."""
    global _db_connection
    if _db_connection is None:
        _db_connection = DatabaseConnection()
    return _db_connection


def reset_database() -> None:
    """Dispose the singleton so the next call rebuilds it from settings."""
    global _db_connection
    if _db_connection is not None:
        _db_connection.close()
    _db_connection = None
