"""Base fetcher with shared HTTP handling and client-side rate limiting."""

import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from govcon.domain.models import RawOpportunity
from govcon.logging import get_logger

from .exceptions import (
    FetcherConfigurationError,
    FetcherHTTPError,
    FetcherResponseError,
    FetcherTimeoutError,
)

logger = get_logger(__name__, component="fetcher")

_API_KEY_PATTERN = re.compile(r"(api_key=)[^&\s]+", re.IGNORECASE)


def redact_api_key(text: str) -> str:
    """Mask api_key query values in messages that echo request URLs."""
    return _API_KEY_PATTERN.sub(r"\1***", text)


class BaseFetcher(ABC):
    """Base class for upstream opportunity sources.

    One instance is shared by every concurrent partition fetch, so all state
    touched during a fetch is either immutable or guarded by ``_rate_lock``.

    Attributes:
        timeout: HTTP request timeout in seconds
        user_agent: User-Agent header for HTTP requests
        rate_limit_ms: Minimum spacing between upstream calls
    """

    SOURCE_NAME = "unknown"

    def __init__(
        self,
        timeout: int = 30,
        user_agent: str = "GovConTracker/1.0",
        rate_limit_ms: int = 1000,
    ) -> None:
        """Initialize fetcher with transport settings.

        Raises:
            FetcherConfigurationError: If timeout is outside 5-300 seconds,
                user_agent is empty or rate_limit_ms is negative
        """
        if not 5 <= timeout <= 300:
            raise FetcherConfigurationError(
                f"Timeout must be between 5 and 300 seconds, got: {timeout}"
            )
        if not user_agent or not user_agent.strip():
            raise FetcherConfigurationError("user_agent cannot be empty")
        if rate_limit_ms < 0:
            raise FetcherConfigurationError(f"rate_limit_ms cannot be negative, got: {rate_limit_ms}")

        self.timeout = timeout
        self.user_agent = user_agent.strip()
        self.rate_limit_ms = rate_limit_ms

        self._rate_lock = threading.Lock()
        self._last_call: Optional[float] = None

        self._session = requests.Session()
        self._session.headers.update({"User-Agent": self.user_agent, "Accept": "application/json"})

    @abstractmethod
    def fetch(self, partition_key: str) -> list[RawOpportunity]:
        """Fetch opportunities for one partition key (a NAICS code).

        Returns:
            Raw records; empty when the upstream has none

        Raises:
            FetcherError: On transport or response failures
        """

    @abstractmethod
    def fetch_alternate(self, partition_key: str) -> list[RawOpportunity]:
        """Fetch the same partition with the alternate query mode.

        Returns records in the same shape as :meth:`fetch`.
        """

    def close(self) -> None:
        self._session.close()

    def _apply_rate_limit(self) -> None:
        """Block until ``rate_limit_ms`` has passed since the previous call."""
        with self._rate_lock:
            now = time.monotonic()
            if self._last_call is not None:
                wait = self.rate_limit_ms / 1000.0 - (now - self._last_call)
                if wait > 0:
                    logger.debug(
                        f"Rate limiting: sleeping for {wait * 1000:.0f}ms",
                        extra={"event": "fetcher.rate_limited", "sleep_ms": round(wait * 1000)},
                    )
                    time.sleep(wait)
            self._last_call = time.monotonic()

    def _make_request(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET ``url`` and return the decoded JSON body.

        Query parameters are never logged because they carry the API key.

        Raises:
            FetcherHTTPError: On 4xx or 5xx HTTP status or connection failure
            FetcherTimeoutError: On request timeout
            FetcherResponseError: On invalid JSON
        """
        self._apply_rate_limit()

        try:
            logger.debug(
                f"HTTP GET request to {url}",
                extra={"event": "fetcher.request", "url": url, "timeout": self.timeout},
            )

            response = self._session.get(url, params=params, headers=headers, timeout=self.timeout)

            if response.status_code >= 400:
                retryable = response.status_code == 429 or response.status_code >= 500
                logger.log(
                    logging.WARNING if retryable else logging.ERROR,
                    f"HTTP {response.status_code} error from {url}",
                    extra={
                        "event": "fetcher.retryable_error" if retryable else "fetcher.error",
                        "status_code": response.status_code,
                        "url": url,
                        "retry_after_seconds": response.headers.get("Retry-After"),
                    },
                )
                raise FetcherHTTPError(
                    f"HTTP {response.status_code}: {response.reason}",
                    status_code=response.status_code,
                    url=url,
                )

            try:
                return response.json()
            except ValueError as e:
                logger.error(
                    f"Failed to parse JSON response from {url}",
                    extra={"event": "fetcher.error", "error_type": "JSONDecodeError", "url": url},
                )
                raise FetcherResponseError(f"Failed to parse JSON response from {url}: {e}") from e

        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Request to {url} timed out after {self.timeout} seconds",
                extra={"event": "fetcher.retryable_error", "error_type": "Timeout", "url": url},
            )
            raise FetcherTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds", url=url
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Request to {url} failed: {type(e).__name__}",
                extra={"event": "fetcher.error", "error_type": type(e).__name__, "url": url},
            )
            raise FetcherHTTPError(
                f"Request to {url} failed: {redact_api_key(str(e))}", status_code=0, url=url
            ) from e
