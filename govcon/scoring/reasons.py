"""Deterministic reason, risk and PWin factor rules."""

from decimal import Decimal
from typing import Dict, List

from govcon.domain.models import Opportunity

from .models import ReasonTag

_80 = Decimal("80")
_90 = Decimal("90")
_50 = Decimal("50")


def build_reasons(scores: Dict[str, Decimal]) -> List[ReasonTag]:
    """Positive signals, in a fixed order."""
    tags = []
    if scores["naics"] >= _80:
        tags.append(ReasonTag("naics.strong", "positive", "Strong NAICS code alignment"))
    if scores["certification"] >= _90:
        tags.append(ReasonTag("certification.met", "positive", "Meets set-aside requirements"))
    if scores["geographic"] >= _80:
        tags.append(
            ReasonTag("geographic.near", "positive", "Located in or near place of performance")
        )
    if scores["clearance"] >= _90:
        tags.append(ReasonTag("clearance.met", "positive", "Has required security clearances"))
    return tags


def build_risks(scores: Dict[str, Decimal], opportunity: Opportunity) -> List[ReasonTag]:
    """Risk signals, in a fixed order."""
    tags = []
    if scores["certification"] < _50:
        tags.append(
            ReasonTag("certification.unmet", "risk", "Does not meet set-aside requirements")
        )
    if scores["clearance"] < _50:
        tags.append(ReasonTag("clearance.missing", "risk", "Missing required security clearances"))
    if scores["contract_size"] < _50:
        tags.append(
            ReasonTag(
                "contract_size.large", "risk", "Contract size may be too large for company capacity"
            )
        )
    if opportunity.incumbent_contractor:
        tags.append(ReasonTag("incumbent.present", "risk", "Has incumbent contractor"))
    return tags


def build_pwin_factors(overall: Decimal, opportunity: Opportunity) -> List[ReasonTag]:
    tags = [ReasonTag("pwin.overall", "info", f"Overall match score: {overall}%")]
    if opportunity.incumbent_contractor:
        tags.append(
            ReasonTag(
                "pwin.incumbent", "info", f"Incumbent advantage: {opportunity.incumbent_contractor}"
            )
        )
    return tags
