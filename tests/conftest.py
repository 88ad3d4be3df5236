"""Shared pytest fixtures."""

from pathlib import Path

import pytest

from govcon.logging.context import clear_log_context
from govcon.persistence import close_database, init_database

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def db():
    """Fresh in-memory database for one test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set the required environment variables and clear optional ones."""
    monkeypatch.setenv("SAM_API_KEY", "test-sam-key")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_log_context()
    yield
    clear_log_context()
