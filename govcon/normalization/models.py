"""Data models for the normalization layer."""

from dataclasses import dataclass
from typing import Optional

from govcon.domain.models import Opportunity, RawOpportunity


@dataclass
class NormalizationResult:
    """Result of reconciling one RawOpportunity with the store.

    Attributes:
        opportunity: Opportunity ready to save
        existing: Stored record with the same solicitation number, if any
        raw: Upstream record the result was built from
    """

    opportunity: Opportunity
    existing: Optional[Opportunity]
    raw: RawOpportunity

    @property
    def is_new(self) -> bool:
        return self.existing is None
