"""
Database Initialization - Create the ApplyOS tables.

Production schemas are managed by Supabase migrations; create_all is a
no-op for tables that already exist and fills in a fresh local or test
database.
"""
from applyos.core.logging_config import get_logger
from applyos.database.connection import get_database
from applyos.database.models import Base

logger = get_logger(__name__)


def init_tables() -> bool:
    """Create any missing tables."""
    try:
        Base.metadata.create_all(get_database().engine)
        logger.info("ApplyOS tables initialized")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize tables: {e}")
        raise


def drop_tables() -> bool:
    """Drop every ApplyOS table. Development and tests only."""
    try:
        Base.metadata.drop_all(get_database().engine)
        logger.warning("ApplyOS tables dropped")
        return True
    except Exception as e:
        logger.error(f"Failed to drop tables: {e}")
        raise


if __name__ == "__main__":
    init_tables()
