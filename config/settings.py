"""
Configuration settings for the Hike Planner trail search backend.

This module centralizes all configuration values and provides a single source of truth for all
configurable parameters.
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


class Config:
    """
    Central configuration class for the Hike Planner backend.

    This class consolidates all configuration values including database
    connections, the trails collection name, and logging settings.
    """

    # Application
    APP_VERSION: str = "0.1.0"

    # Database Configuration
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "hike_planner"
    DB_USER: str = "postgres"
    DB_PASSWORD: Optional[str] = None
    DB_SSLMODE: Optional[str] = None

    # Document store
    TRAILS_COLLECTION: str = "trails"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/hike_planner.log"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    LOG_BACKUP_COUNT: int = 3

    def __init__(self):
        """Initialize configuration by loading from environment variables."""
        self._load_from_env()
        self._validate()

    def _load_from_env(self):
        """Load configuration values from environment variables."""
        # Database settings
        db_host = os.getenv("POSTGRES_HOST")
        if db_host:
            self.DB_HOST = db_host

        db_port = os.getenv("POSTGRES_PORT")
        if db_port:
            self.DB_PORT = int(db_port)

        db_name = os.getenv("POSTGRES_DB")
        if db_name:
            self.DB_NAME = db_name

        db_user = os.getenv("POSTGRES_USER")
        if db_user:
            self.DB_USER = db_user

        db_password = os.getenv("POSTGRES_PASSWORD")
        if db_password:
            self.DB_PASSWORD = db_password

        db_sslmode = os.getenv("POSTGRES_SSLMODE")
        if db_sslmode:
            self.DB_SSLMODE = db_sslmode

        # Document store
        collection = os.getenv("TRAILS_COLLECTION")
        if collection:
            self.TRAILS_COLLECTION = collection

        # Logging
        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            self.LOG_LEVEL = log_level

        log_file = os.getenv("LOG_FILE")
        if log_file:
            self.LOG_FILE = log_file

    def _validate(self):
        """
        Validate configuration values.

        Raises:
            ValueError: If a configured value cannot be used.
        """
        if not self.TRAILS_COLLECTION.isidentifier():
            raise ValueError(
                f"TRAILS_COLLECTION must be a valid table name, got '{self.TRAILS_COLLECTION}'"
            )

        if self.LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a standard logging level, got '{self.LOG_LEVEL}'")

    def get_database_url(self) -> str:
        """
        Generate database connection URL.

        Returns:
            str: PostgreSQL connection URL

        Raises:
            ValueError: If no database password is configured.
        """
        if not self.DB_PASSWORD:
            raise ValueError(
                "POSTGRES_PASSWORD environment variable is required. "
                "Please set it in your .env file or environment."
            )

        url = f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        if self.DB_SSLMODE:
            url += f"?sslmode={self.DB_SSLMODE}"
        return url


# Global configuration instance
config = Config()
