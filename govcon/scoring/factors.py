"""Sub-score functions for opportunity/profile fit.

Every function is pure, takes the opportunity and profile (or the parts it
needs) and returns a Decimal in [0, 100] quantized to two places. Missing
optional inputs degrade to a neutral score rather than failing.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from govcon.domain.models import CompanyProfile, Opportunity
from govcon.utils.text import word_set

from .weights import COMPETITION_FACTOR, INCUMBENT_FACTOR, WEIGHTS

ZERO = Decimal("0")
HUNDRED = Decimal("100")
NEUTRAL_CAPABILITY = Decimal("50")
NEUTRAL_SIZE = Decimal("70")

_TWO_PLACES = Decimal("0.01")
_FOUR_PLACES = Decimal("0.0001")

# Set-aside category -> markers found in SAM codes or descriptions.
# Checked in order; the first category that is present and held wins.
SET_ASIDE_CATEGORIES = [
    ("8a", ("8(A)", "8A", "8AN")),
    ("hubzone", ("HUBZONE", "HZC", "HZS")),
    ("veteran", ("SDVOSB", "VETERAN", "SDVOSBC", "SDVOSBS")),
    ("woman", ("WOSB", "EDWOSB", "WOMEN")),
    ("small", ("SMALL", "SBA", "SBP")),
]


def quantize(value: Decimal) -> Decimal:
    """Round to two decimal places, half up."""
    return Decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def clamp(value: Decimal) -> Decimal:
    return max(ZERO, min(HUNDRED, value))


def naics_score(opportunity_code: Optional[str], primary: Iterable[str], secondary: Iterable[str]) -> Decimal:
    """
    NAICS alignment.

    100 when the opportunity code is one of the primary codes, 80 when it is
    a secondary code, 50 when its first four digits match any profile code,
    otherwise 0. Missing codes on either side score 0.

    Example:
        >>> naics_score("541519", ["541512"], [])
        Decimal('50.00')
    """
    code = (opportunity_code or "").strip()
    primary = [c.strip() for c in primary if c and c.strip()]
    secondary = [c.strip() for c in secondary if c and c.strip()]
    if not code or not (primary or secondary):
        return quantize(ZERO)

    if code in primary:
        return quantize(HUNDRED)
    if code in secondary:
        return quantize(Decimal("80"))

    prefix = code[:4]
    if len(prefix) == 4 and any(c[:4] == prefix for c in primary + secondary):
        return quantize(Decimal("50"))
    return quantize(ZERO)


def capability_score(capabilities: Optional[str], description: Optional[str]) -> Decimal:
    """
    Word overlap between the capabilities statement and the opportunity description.

    ``min(100, 200 * |shared words| / |description words|)``; 50 when either
    text is missing or the description has no words.
    """
    if not capabilities or not capabilities.strip() or not description or not description.strip():
        return quantize(NEUTRAL_CAPABILITY)

    description_words = word_set(description)
    if not description_words:
        return quantize(NEUTRAL_CAPABILITY)

    shared = word_set(capabilities) & description_words
    raw = Decimal(200) * len(shared) / len(description_words)
    return quantize(min(HUNDRED, raw))


def past_performance_score(summary: Optional[str]) -> Decimal:
    """70 when a past-performance summary exists, else 30."""
    if summary and summary.strip():
        return quantize(Decimal("70"))
    return quantize(Decimal("30"))


def geographic_score(
    place_of_performance: Optional[str],
    headquarters_state: Optional[str],
    service_regions: Iterable[str],
) -> Decimal:
    """
    Geographic fit.

    100 with no place of performance or when it equals the headquarters
    state, 80 when it is a declared service region, otherwise 40.
    """
    state = (place_of_performance or "").strip().upper()
    if not state:
        return quantize(HUNDRED)
    if headquarters_state and state == headquarters_state.strip().upper():
        return quantize(HUNDRED)
    if state in {r.strip().upper() for r in service_regions if r}:
        return quantize(Decimal("80"))
    return quantize(Decimal("40"))


def set_aside_categories(set_aside: Optional[str]) -> List[str]:
    """
    Every category whose marker appears in a set-aside code or description.

    Categories come back in checking order. A description such as
    "Service-Disabled Veteran-Owned Small Business" falls into both
    "veteran" and "small".
    """
    text = (set_aside or "").strip().upper()
    if not text:
        return []
    return [
        category
        for category, markers in SET_ASIDE_CATEGORIES
        if any(marker in text for marker in markers)
    ]


def certification_score(set_aside: Optional[str], profile: CompanyProfile) -> Decimal:
    """
    Certification fit against the opportunity's set-aside.

    100 with no set-aside. Otherwise the first category that both appears
    in the set-aside and is held by the profile decides: 8(a), HUBZone,
    veteran-owned and woman-owned score 100, small business 90. A
    set-aside the profile qualifies for under no category scores 0.
    """
    if not (set_aside or "").strip():
        return quantize(HUNDRED)

    flags = {
        "8a": (profile.is_8a, HUNDRED),
        "hubzone": (profile.is_hubzone, HUNDRED),
        "veteran": (profile.is_veteran_owned, HUNDRED),
        "woman": (profile.is_woman_owned, HUNDRED),
        "small": (profile.is_small_business, Decimal("90")),
    }
    for category in set_aside_categories(set_aside):
        held, score = flags[category]
        if held:
            return quantize(score)
    return quantize(ZERO)


def clearance_score(opportunity: Opportunity, profile: CompanyProfile) -> Decimal:
    """
    Clearance and ITAR fit.

    100 when neither requirement applies; otherwise the mean of 100/0 per
    applicable requirement.
    """
    checks = []
    if opportunity.clearance_required and opportunity.clearance_required.strip():
        checks.append(HUNDRED if profile.has_facility_clearance else ZERO)
    if opportunity.itar_controlled:
        checks.append(HUNDRED if profile.is_itar_registered else ZERO)

    if not checks:
        return quantize(HUNDRED)
    return quantize(sum(checks) / len(checks))


def contract_size_score(estimated_value: Optional[Decimal], annual_revenue: Optional[Decimal]) -> Decimal:
    """
    Contract size relative to annual revenue.

    Ratio in [0.05, 0.5] scores 100, up to 1.0 (including below 0.05) 70,
    above 1.0 30. Missing value or non-positive revenue scores 70.
    """
    if estimated_value is None or annual_revenue is None or annual_revenue <= 0:
        return quantize(NEUTRAL_SIZE)

    ratio = (Decimal(estimated_value) / Decimal(annual_revenue)).quantize(
        _FOUR_PLACES, rounding=ROUND_HALF_UP
    )
    if Decimal("0.05") <= ratio <= Decimal("0.5"):
        return quantize(HUNDRED)
    if ratio <= Decimal("1.0"):
        return quantize(NEUTRAL_SIZE)
    return quantize(Decimal("30"))


def overall_score(scores: dict) -> Decimal:
    """
    Weighted sum of the seven sub-scores.

    Args:
        scores: Factor name (as in WEIGHTS) -> sub-score

    Raises:
        KeyError: If a factor is missing
    """
    total = sum(Decimal(scores[name]) * weight for name, weight in WEIGHTS.items())
    return quantize(clamp(total))


def pwin_score(overall: Decimal, has_incumbent: bool) -> Decimal:
    """Win probability: overall x competition factor x incumbent factor."""
    incumbent = INCUMBENT_FACTOR if has_incumbent else Decimal("1.0")
    return quantize(Decimal(overall) * COMPETITION_FACTOR * incumbent)
