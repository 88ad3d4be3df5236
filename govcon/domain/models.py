"""Core domain models for opportunities, profiles, matches and alerts.

- RawOpportunity: record as returned by a source fetcher, before upsert
- Opportunity: canonical stored opportunity, keyed by solicitation number
- CompanyProfile: one tenant's capabilities, certifications and size
- OpportunityMatch: score of one opportunity for one tenant
- OpportunityAlert: a user's saved matching rule
- AlertMatch: (user, alert, name) triple produced by alert evaluation
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from govcon.utils.timestamps import ensure_utc


class OpportunityStatus(str, Enum):
    """Lifecycle of a stored opportunity."""

    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"
    AWARDED = "AWARDED"
    ARCHIVED = "ARCHIVED"


class MatchStatus(str, Enum):
    """Capture status a tenant assigns to a scored opportunity."""

    NEW = "NEW"
    REVIEWING = "REVIEWING"
    QUALIFIED = "QUALIFIED"
    PURSUING = "PURSUING"
    BID_SUBMITTED = "BID_SUBMITTED"
    WON = "WON"
    LOST = "LOST"
    DISQUALIFIED = "DISQUALIFIED"


def _split_codes(value) -> List[str]:
    """Accept a list or a comma-separated string; drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _keyword_list(value) -> List[str]:
    """Accept a list or a single keyword; keywords may contain commas."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


class RawOpportunity(BaseModel):
    """Opportunity record as returned by a source fetcher.

    Dates are kept as the upstream strings; parsing happens during upsert so
    that one malformed date never fails the whole fetch. The solicitation
    number may be missing or blank, in which case the record is skipped.
    """

    notice_id: Optional[str] = Field(None, description="Upstream notice id")
    title: Optional[str] = Field(None, description="Opportunity title")
    solicitation_number: Optional[str] = Field(None, description="Natural key")
    posted_date: Optional[str] = Field(None, description="Posted date as sent upstream")
    response_deadline: Optional[str] = Field(None, description="Response deadline as sent upstream")
    naics_code: Optional[str] = Field(None, description="Industry classification code")
    type: Optional[str] = Field(None, description="Notice type, e.g. 'Solicitation'")
    url: Optional[str] = Field(None, description="Detail page link")

    # Optional enrichment carried by some upstream records
    description: Optional[str] = None
    set_aside_type: Optional[str] = None
    place_of_performance_state: Optional[str] = None
    award_amount: Optional[Decimal] = None
    incumbent_contractor: Optional[str] = None

    @field_validator(
        "notice_id", "title", "posted_date", "response_deadline", "naics_code",
        "type", "url", "description", "set_aside_type", "place_of_performance_state",
        "incumbent_contractor",
    )
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace; blank strings become None."""
        if v is None:
            return None
        stripped = str(v).strip()
        return stripped or None

    model_config = {"json_schema_extra": {"example": {
        "notice_id": "4a1b2c3d4e5f",
        "title": "Enterprise Cybersecurity Modernization",
        "solicitation_number": "W91QUZ-25-R-0001",
        "posted_date": "2025-11-01",
        "response_deadline": "2025-12-01T17:00:00-05:00",
        "naics_code": "541512",
        "type": "Solicitation",
        "url": "https://sam.gov/opp/4a1b2c3d4e5f/view",
    }}}


class Opportunity(BaseModel):
    """Canonical opportunity record.

    Unique by ``solicitation_number``. Only the ingestion upsert mutates the
    descriptive fields; status is additionally moved by maintenance sweeps.
    """

    id: str = Field(..., description="Opaque external id (upstream notice id)")
    solicitation_number: str = Field(..., description="Natural key used for upsert")
    title: Optional[str] = None
    description: Optional[str] = None
    naics_code: Optional[str] = None
    type: Optional[str] = None
    posted_date: Optional[date] = None
    response_deadline: Optional[date] = None
    url: Optional[str] = None
    status: OpportunityStatus = OpportunityStatus.ACTIVE
    source: str = "SAM.gov"

    set_aside_type: Optional[str] = None
    place_of_performance_state: Optional[str] = None
    award_amount: Optional[Decimal] = None
    estimated_value_low: Optional[Decimal] = None
    estimated_value_high: Optional[Decimal] = None
    incumbent_contractor: Optional[str] = None
    clearance_required: Optional[str] = None
    itar_controlled: bool = False

    is_sbir: bool = False
    is_sttr: bool = False
    sbir_phase: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_fetched_at: Optional[datetime] = None

    @field_validator("solicitation_number")
    @classmethod
    def require_solicitation_number(cls, v: str) -> str:
        """The natural key can never be blank on a stored record."""
        if not v or not v.strip():
            raise ValueError("solicitation_number cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("created_at", "updated_at", "last_fetched_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class CompanyProfile(BaseModel):
    """A tenant's company profile, read-only input to scoring."""

    tenant_id: str
    legal_name: Optional[str] = None
    primary_naics: List[str] = Field(default_factory=list)
    secondary_naics: List[str] = Field(default_factory=list)
    capabilities_statement: Optional[str] = None
    past_performance_summary: Optional[str] = None
    headquarters_state: Optional[str] = None
    service_regions: List[str] = Field(default_factory=list)

    is_small_business: bool = False
    is_8a: bool = False
    is_hubzone: bool = False
    is_veteran_owned: bool = Field(False, description="Service-disabled veteran-owned")
    is_woman_owned: bool = False
    has_facility_clearance: bool = False
    is_itar_registered: bool = False
    annual_revenue: Optional[Decimal] = None

    @field_validator("primary_naics", "secondary_naics", mode="before")
    @classmethod
    def split_naics(cls, v) -> List[str]:
        return _split_codes(v)

    @field_validator("service_regions", mode="before")
    @classmethod
    def split_regions(cls, v) -> List[str]:
        return [code.upper() for code in _split_codes(v)]

    @field_validator("headquarters_state")
    @classmethod
    def upper_state(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().upper()


class OpportunityMatch(BaseModel):
    """Scoring result for one (tenant, opportunity) pair.

    At most one live match exists per pair; recomputation overwrites the
    scores but never the status a user already set.
    """

    id: str
    tenant_id: str
    opportunity_id: str

    naics_score: Decimal = Decimal("0")
    capability_score: Decimal = Decimal("0")
    past_performance_score: Decimal = Decimal("0")
    geographic_score: Decimal = Decimal("0")
    certification_score: Decimal = Decimal("0")
    clearance_score: Decimal = Decimal("0")
    contract_size_score: Decimal = Decimal("0")
    overall_score: Decimal = Decimal("0")
    pwin_score: Decimal = Decimal("0")

    match_status: Optional[MatchStatus] = None
    match_reasons: str = ""
    risk_factors: str = ""
    pwin_factors: str = ""

    user_rating: Optional[int] = Field(None, ge=1, le=5)
    user_feedback: Optional[str] = None
    last_calculated_at: Optional[datetime] = None

    @field_validator("last_calculated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class OpportunityAlert(BaseModel):
    """A user's alert rule. Name is unique per user."""

    id: str
    user_id: str
    tenant_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    naics_codes: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    min_value: Optional[Decimal] = None
    max_value: Optional[Decimal] = None
    enabled: bool = True
    last_checked_at: Optional[datetime] = None
    last_match_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("naics_codes", mode="before")
    @classmethod
    def split_codes(cls, v) -> List[str]:
        return _split_codes(v)

    @field_validator("keywords", mode="before")
    @classmethod
    def clean_keywords(cls, v) -> List[str]:
        return _keyword_list(v)

    @field_validator("last_checked_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def has_value_bounds(self) -> bool:
        return self.min_value is not None or self.max_value is not None


class AlertMatch(BaseModel):
    """An enabled alert that matched an opportunity."""

    user_id: str
    alert_id: str
    alert_name: str
