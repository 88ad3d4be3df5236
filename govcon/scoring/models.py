"""Data models produced by the match scorer."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List

REASON_DELIMITER = "; "


@dataclass(frozen=True)
class ReasonTag:
    """
    One structured reason, risk or PWin factor.

    Attributes:
        code: Stable identifier, e.g. "naics.strong"
        severity: "positive", "risk" or "info"
        text: Display text
    """

    code: str
    severity: str
    text: str


def join_tags(tags: List[ReasonTag]) -> str:
    """Render tags as the delimited string stored on the match."""
    return REASON_DELIMITER.join(tag.text for tag in tags)


@dataclass
class ScoreBreakdown:
    """
    Every number and tag computed for one (profile, opportunity) pair.

    Attributes:
        scores: Factor name -> sub-score
        overall: Weighted overall score
        pwin: Win probability estimate
        reasons: Positive signals
        risks: Risk signals
        pwin_factors: Inputs that shaped the PWin estimate
    """

    scores: Dict[str, Decimal]
    overall: Decimal
    pwin: Decimal
    reasons: List[ReasonTag] = field(default_factory=list)
    risks: List[ReasonTag] = field(default_factory=list)
    pwin_factors: List[ReasonTag] = field(default_factory=list)


@dataclass
class BatchScoreResult:
    """
    Summary of scoring every ACTIVE opportunity for one tenant.

    Attributes:
        tenant_id: Tenant that was scored
        processed: Opportunities scored and saved
        failed: Opportunities that raised while scoring
        duration_ms: Wall-clock time of the batch
        profile_missing: True when the batch ended because no profile exists
    """

    tenant_id: str
    processed: int = 0
    failed: int = 0
    duration_ms: int = 0
    profile_missing: bool = False


@dataclass
class MatchStats:
    """Per-tenant counts over stored matches."""

    tenant_id: str
    total: int = 0
    high_scoring: int = 0
    average_score: Decimal = Decimal("0.00")
    by_status: Dict[str, int] = field(default_factory=dict)
