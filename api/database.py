"""
Database connection utilities for the API.

Reuses the project configuration for database access.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from config.settings import config

# Global engine instance (created once, reused)
_engine = None


def get_db_engine() -> Engine:
    """
    Get or create a SQLAlchemy engine for database connections.

    Uses the config instance from the project for database credentials.
    The engine is created once and reused across requests.

    Returns:
        SQLAlchemy Engine instance

    Raises:
        ValueError: If no database password is configured
    """
    global _engine

    if _engine is None:
        # Create engine with connection pooling
        # pool_pre_ping=True checks if connections are alive before using them
        _engine = create_engine(config.get_database_url(), pool_pre_ping=True)

    return _engine
