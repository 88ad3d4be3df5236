"""Shared helpers for time handling and text matching."""

from .text import contains_keyword, word_set
from .timestamps import ensure_utc, format_sam_query_date, parse_opportunity_date, utc_now

__all__ = [
    # Timestamps
    "utc_now",
    "ensure_utc",
    "parse_opportunity_date",
    "format_sam_query_date",
    # Text
    "word_set",
    "contains_keyword",
]
