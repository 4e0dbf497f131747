"""
Database Initialization - Create the assistant's tables.

Called once during application startup; safe to repeat since
create_all only creates missing tables.
"""
from typing import Optional

from nestchat.core.logging_config import get_logger
from nestchat.database.connection import DatabaseConnection, get_database
from nestchat.database.models import Base

logger = get_logger(__name__)


def init_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Create all tables if they don't exist.

    Returns:
        True if tables were created successfully
    """
    db = db or get_database()
    try:
        Base.metadata.create_all(db.engine)
    except Exception as e:
        logger.error(f"Failed to initialize tables: {e}")
        raise

    logger.info("Database tables initialized successfully")
    return True


def drop_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Drop all tables (use with caution!).

    This is mainly for testing/development purposes.
    """
    db = db or get_database()
    Base.metadata.drop_all(db.engine)
    logger.warning("Database tables dropped")
    return True


if __name__ == "__main__":
    # Allow running directly to create tables
    print("Initializing tables...")
    init_tables()
    print("Done!")
