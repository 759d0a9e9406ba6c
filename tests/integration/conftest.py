"""
Integration test fixtures and configuration.

This module provides pytest fixtures for integration testing with a real
PostgreSQL database. The fixtures handle database lifecycle management,
collection creation, and cleanup.

Key fixtures:
- test_db_engine: SQLAlchemy engine connected to test database
- test_store: DocumentStore over a freshly created trails collection
- trail_repository: TrailRepository over test_store

Usage:
    @pytest.mark.integration
    def test_my_integration(trail_repository):
        # Use trail_repository to interact with test database
        pass

Running integration tests:
    pytest tests/integration -v -m integration
"""

import os
import time

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from api.repository import TrailRepository
from api.store import DocumentStore
from utils.logging import setup_logging

TEST_COLLECTION = "trails"


def wait_for_db(
    engine: Engine, max_retries: int = 30, retry_delay: float = 1.0
) -> None:
    """
    Wait for database to be ready by attempting connections.

    Args:
        engine: SQLAlchemy engine to test
        max_retries: Maximum number of connection attempts
        retry_delay: Delay between retries in seconds

    Raises:
        RuntimeError: If database doesn't become ready within max_retries
    """
    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            print(f"✅ Database ready after {attempt + 1} attempt(s)")
            return
        except Exception as e:
            if attempt < max_retries - 1:
                print(
                    f"⏳ Waiting for database (attempt {attempt + 1}/{max_retries})..."
                )
                time.sleep(retry_delay)
            else:
                raise RuntimeError(
                    f"Database not ready after {max_retries} attempts: {e}"
                ) from e


@pytest.fixture(scope="session")
def test_db_engine() -> Engine:
    """
    Create a SQLAlchemy engine for the test database.

    The engine is reused across all tests in the session.

    Environment Variables:
        POSTGRES_TEST_HOST: Test database host (default: localhost)
        POSTGRES_TEST_PORT: Test database port (default: 5434)
        POSTGRES_TEST_DB: Test database name (default: hike_planner_test)
        POSTGRES_TEST_USER: Test database user (default: postgres)
        POSTGRES_TEST_PASSWORD: Test database password (default: test_password)
    """
    host = os.getenv("POSTGRES_TEST_HOST", "localhost")
    port = os.getenv("POSTGRES_TEST_PORT", "5434")
    db = os.getenv("POSTGRES_TEST_DB", "hike_planner_test")
    user = os.getenv("POSTGRES_TEST_USER", "postgres")
    password = os.getenv("POSTGRES_TEST_PASSWORD", "test_password")

    engine = create_engine(f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}")

    wait_for_db(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def test_store(test_db_engine: Engine) -> DocumentStore:
    """
    Provide a clean trails collection for each test.

    The collection is created before the test and dropped afterwards so each
    test starts from an empty table.
    """
    logger = setup_logging(logger_name="test_db", log_level="INFO")
    store = DocumentStore(test_db_engine, TEST_COLLECTION, logger)

    logger.info("📦 Creating test collection...")
    store.create_collection()

    yield store

    logger.info("🧹 Dropping test collection...")
    store.drop_collection()


@pytest.fixture
def trail_repository(test_store: DocumentStore) -> TrailRepository:
    return TrailRepository(test_store)


@pytest.fixture
def seed_trails(trail_repository, sample_trails):
    """Store the sample trails (with fresh ids) and return the stored documents."""
    stored = []
    for trail in sample_trails:
        body = {k: v for k, v in trail.items() if k not in ("id", "partitionKey")}
        stored.append(trail_repository.create(body))
    return stored
