"""Persistence layer exceptions.

Every store error derives from PersistenceError. Ingestion treats
DataIntegrityError as a per-record problem and everything else as the
store being unavailable.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be initialized or reached.

    Examples:
    - Invalid database URL
    - Database file not accessible
    - get_session() called before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an operation requires a record that does not exist.

    Optional lookups return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised on a constraint violation.

    Examples:
    - Duplicate solicitation number
    - Second match row for the same (tenant, opportunity)
    - Duplicate alert name for one user
    """

    pass
