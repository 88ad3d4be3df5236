"""Test helper utilities for GovCon tracker tests."""

from .builders import make_alert, make_opportunity, make_profile, make_raw
from .fixture_fetcher import FixtureFetcher, load_fixture_records

__all__ = [
    "FixtureFetcher",
    "load_fixture_records",
    "make_alert",
    "make_opportunity",
    "make_profile",
    "make_raw",
]
