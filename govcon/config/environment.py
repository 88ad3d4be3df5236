"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/govcon.db"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        sam_api_key: str,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.sam_api_key = sam_api_key
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.log_level = log_level.upper() if log_level else None
        self.environment = environment or "development"

    def __repr__(self) -> str:
        # Never print the API key
        return (
            f"EnvironmentConfig(database_url={self.database_url!r}, "
            f"log_level={self.log_level!r}, environment={self.environment!r})"
        )


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required environment variables:
    - SAM_API_KEY: api.sam.gov public API key

    Optional environment variables:
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/govcon.db)
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - ENVIRONMENT: Deployment name attached to every log record

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    sam_api_key = (os.getenv("SAM_API_KEY") or "").strip()
    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL")
    environment = os.getenv("ENVIRONMENT")

    if not sam_api_key:
        errors.append("Missing required environment variable: SAM_API_KEY")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if database_url is not None and "://" not in database_url:
        errors.append(f"Invalid DATABASE_URL: '{database_url}'. Expected a SQLAlchemy URL.")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your SAM.gov API key",
                "Request a key at https://sam.gov under Account Details",
            ],
        )

    return EnvironmentConfig(
        sam_api_key=sam_api_key,
        database_url=database_url,
        log_level=log_level,
        environment=environment,
    )
