"""Persistence layer for opportunities, profiles, matches and alerts.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - OpportunityRepository: keyed upsert store for opportunities
    - CompanyProfileRepository: tenant profile lookup
    - MatchRepository: one match row per (tenant, opportunity)
    - AlertRepository: user alert CRUD and enabled-alert queries

Example usage:
    >>> from govcon.persistence import init_database, get_session, OpportunityRepository
    >>> init_database("sqlite:///./data/govcon.db")
    >>> with get_session() as session:
    ...     repo = OpportunityRepository(session)
    ...     opportunity = repo.find_by_solicitation_number("W91QUZ-25-R-0001")
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    AlertRepository,
    CompanyProfileRepository,
    MatchRepository,
    OpportunityRepository,
    Page,
)

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "OpportunityRepository",
    "CompanyProfileRepository",
    "MatchRepository",
    "AlertRepository",
    "Page",
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
