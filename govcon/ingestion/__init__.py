"""Opportunity ingestion from upstream sources."""

from .coordinator import (
    MODE_SBIR_STTR,
    MODE_SOURCES_SOUGHT,
    MODE_STANDARD,
    IngestionCoordinator,
)
from .models import IngestionResult, PartitionFetchResult

__all__ = [
    "IngestionCoordinator",
    "IngestionResult",
    "PartitionFetchResult",
    "MODE_STANDARD",
    "MODE_SOURCES_SOUGHT",
    "MODE_SBIR_STTR",
]
