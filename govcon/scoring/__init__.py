"""Opportunity/profile match scoring."""

from .engine import MatchScorer
from .exceptions import (
    MatchNotFoundError,
    OpportunityNotFoundError,
    ProfileNotFoundError,
    ScoringError,
)
from .factors import (
    capability_score,
    certification_score,
    clearance_score,
    contract_size_score,
    geographic_score,
    naics_score,
    overall_score,
    past_performance_score,
    pwin_score,
)
from .models import BatchScoreResult, MatchStats, ReasonTag, ScoreBreakdown
from .background import ScoringQueue
from .weights import WEIGHTS

__all__ = [
    "MatchScorer",
    "ScoringQueue",
    "ScoreBreakdown",
    "BatchScoreResult",
    "MatchStats",
    "ReasonTag",
    "WEIGHTS",
    "naics_score",
    "capability_score",
    "past_performance_score",
    "geographic_score",
    "certification_score",
    "clearance_score",
    "contract_size_score",
    "overall_score",
    "pwin_score",
    "ScoringError",
    "ProfileNotFoundError",
    "OpportunityNotFoundError",
    "MatchNotFoundError",
]
