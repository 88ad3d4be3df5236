"""Timestamp utilities for UTC handling and upstream date parsing.

SAM.gov returns dates in a handful of shapes ("2024-01-15",
"2024-01-15T10:00:00", "2024-01-15T10:00:00-05:00"). Everything stored by
this service is either a calendar ``date`` or a UTC-aware ``datetime``.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

# Primary upstream format, tried before the ISO-8601 fallback
SAM_DATE_FORMAT = "%Y-%m-%d"

# Format SAM.gov expects for postedFrom/postedTo query parameters
SAM_QUERY_DATE_FORMAT = "%m/%d/%Y"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Make ``dt`` timezone-aware UTC.

    Naive datetimes are treated as UTC; aware datetimes are converted.

    Example:
        >>> ensure_utc(datetime(2025, 11, 4, 12, 0)).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_opportunity_date(value: Optional[str]) -> Optional[date]:
    """Parse an upstream date string into a calendar date.

    Tries the fixed ``yyyy-MM-dd`` pattern first, then ISO-8601 (with or
    without time and offset, ``Z`` accepted). A value that matches neither is
    logged and treated as absent instead of failing the record.

    Args:
        value: Raw date string from the upstream record, or None

    Returns:
        Parsed date, or None for blank or unparseable input

    Example:
        >>> parse_opportunity_date("2026-01-22T12:00:00-05:00")
        datetime.date(2026, 1, 22)
    """
    if value is None or not str(value).strip():
        return None

    text = str(value).strip()

    try:
        return datetime.strptime(text, SAM_DATE_FORMAT).date()
    except ValueError:
        pass

    try:
        normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
        return datetime.fromisoformat(normalized).date()
    except ValueError:
        logger.warning(
            f"Unable to parse date: {text}",
            extra={"event": "ingestion.date.unparseable", "raw_value": text},
        )
        return None


def format_sam_query_date(day: date) -> str:
    """Format a date for SAM.gov query parameters (MM/dd/yyyy)."""
    return day.strftime(SAM_QUERY_DATE_FORMAT)
