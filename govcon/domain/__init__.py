"""Domain models for the opportunity tracker."""

from .models import (
    AlertMatch,
    CompanyProfile,
    MatchStatus,
    Opportunity,
    OpportunityAlert,
    OpportunityMatch,
    OpportunityStatus,
    RawOpportunity,
)

__all__ = [
    "RawOpportunity",
    "Opportunity",
    "OpportunityStatus",
    "CompanyProfile",
    "OpportunityMatch",
    "MatchStatus",
    "OpportunityAlert",
    "AlertMatch",
]
