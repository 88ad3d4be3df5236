"""Upstream opportunity fetchers."""

from .base import BaseFetcher
from .exceptions import (
    FetcherConfigurationError,
    FetcherError,
    FetcherHTTPError,
    FetcherResponseError,
    FetcherTimeoutError,
)
from .factory import get_fetcher
from .sam import SamGovFetcher

__all__ = [
    "BaseFetcher",
    "SamGovFetcher",
    "get_fetcher",
    "FetcherError",
    "FetcherHTTPError",
    "FetcherTimeoutError",
    "FetcherResponseError",
    "FetcherConfigurationError",
]
