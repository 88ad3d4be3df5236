"""Factory for the configured upstream fetcher."""

import logging

from govcon.config.environment import EnvironmentConfig
from govcon.config.models import AppConfig

from .base import BaseFetcher
from .exceptions import FetcherConfigurationError, FetcherError
from .sam import SamGovFetcher

logger = logging.getLogger(__name__)


def get_fetcher(app_config: AppConfig, env_config: EnvironmentConfig) -> BaseFetcher:
    """Build the SAM.gov fetcher from validated configuration.

    Args:
        app_config: Validated application configuration
        env_config: Environment configuration carrying the API key

    Returns:
        Ready-to-use fetcher shared by all partition fetches

    Raises:
        FetcherConfigurationError: If the fetcher cannot be constructed

    Example:
        >>> app_config, env_config = load_config()
        >>> fetcher = get_fetcher(app_config, env_config)
        >>> records = fetcher.fetch("541512")
    """
    ingestion = app_config.ingestion
    advanced = app_config.advanced

    logger.debug(
        "Creating fetcher instance",
        extra={"event": "fetcher.created", "base_url": advanced.base_url},
    )

    try:
        return SamGovFetcher(
            api_key=env_config.sam_api_key,
            base_url=advanced.base_url,
            procurement_types=ingestion.procurement_types,
            set_aside=ingestion.set_aside,
            limit=ingestion.limit,
            posted_within_days=ingestion.posted_within_days or 30,
            timeout=advanced.http_request_timeout,
            user_agent=advanced.user_agent,
            rate_limit_ms=advanced.rate_limit_ms,
        )
    except FetcherError:
        raise
    except Exception as e:
        raise FetcherConfigurationError(f"Failed to create SAM.gov fetcher: {e}") from e
