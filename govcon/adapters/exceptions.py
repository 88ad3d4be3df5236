"""Exceptions raised by source fetchers."""


class FetcherError(Exception):
    """Base exception for all fetcher errors.

    The ingestion coordinator catches this (and anything else a fetch task
    raises) and records the partition as failed with zero records.
    """

    pass


class FetcherHTTPError(FetcherError):
    """Upstream returned a 4xx/5xx status or the connection failed.

    ``status_code`` is 0 when no response was received.
    """

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    @property
    def is_retryable(self) -> bool:
        return self.status_code == 0 or self.status_code == 429 or self.status_code >= 500


class FetcherTimeoutError(FetcherError):
    """Upstream call did not complete within the request timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class FetcherResponseError(FetcherError):
    """Response body could not be parsed or had an unexpected shape."""

    pass


class FetcherConfigurationError(FetcherError):
    """Fetcher was built with invalid settings (missing API key, bad timeout)."""

    pass
