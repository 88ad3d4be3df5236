"""Database schema definition and ORM models.

ORM models convert to and from the pydantic domain models. Timestamps are
stored as ISO 8601 strings, dates as YYYY-MM-DD, code and keyword lists as
JSON arrays.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Index,
    JSON,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from govcon.domain.models import (
    CompanyProfile,
    MatchStatus,
    Opportunity,
    OpportunityAlert,
    OpportunityMatch,
    OpportunityStatus,
)

logger = logging.getLogger(__name__)

Base = declarative_base()

_SCORE = Numeric(5, 2)
_MONEY = Numeric(16, 2)


class OpportunityModel(Base):
    """ORM model for the opportunities table."""

    __tablename__ = "opportunities"

    id = Column(String(100), primary_key=True, nullable=False)
    solicitation_number = Column(String(255), nullable=False, unique=True)

    title = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    naics_code = Column(String(10), nullable=True)
    type = Column(String(100), nullable=True)
    posted_date = Column(String(10), nullable=True)
    response_deadline = Column(String(10), nullable=True)
    url = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=OpportunityStatus.ACTIVE.value)
    source = Column(String(50), nullable=False, default="SAM.gov")

    set_aside_type = Column(String(100), nullable=True)
    place_of_performance_state = Column(String(10), nullable=True)
    award_amount = Column(_MONEY, nullable=True)
    estimated_value_low = Column(_MONEY, nullable=True)
    estimated_value_high = Column(_MONEY, nullable=True)
    incumbent_contractor = Column(String(255), nullable=True)
    clearance_required = Column(String(100), nullable=True)
    itar_controlled = Column(Boolean, nullable=False, default=False)

    is_sbir = Column(Boolean, nullable=False, default=False)
    is_sttr = Column(Boolean, nullable=False, default=False)
    sbir_phase = Column(String(10), nullable=True)

    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)
    last_fetched_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_opportunities_status", "status"),
        Index("idx_opportunities_naics", "naics_code"),
    )

    def to_domain(self) -> Opportunity:
        return Opportunity(
            id=self.id,
            solicitation_number=self.solicitation_number,
            title=self.title,
            description=self.description,
            naics_code=self.naics_code,
            type=self.type,
            posted_date=_parse_date(self.posted_date),
            response_deadline=_parse_date(self.response_deadline),
            url=self.url,
            status=OpportunityStatus(self.status),
            source=self.source,
            set_aside_type=self.set_aside_type,
            place_of_performance_state=self.place_of_performance_state,
            award_amount=self.award_amount,
            estimated_value_low=self.estimated_value_low,
            estimated_value_high=self.estimated_value_high,
            incumbent_contractor=self.incumbent_contractor,
            clearance_required=self.clearance_required,
            itar_controlled=bool(self.itar_controlled),
            is_sbir=bool(self.is_sbir),
            is_sttr=bool(self.is_sttr),
            sbir_phase=self.sbir_phase,
            created_at=_parse_datetime(self.created_at),
            updated_at=_parse_datetime(self.updated_at),
            last_fetched_at=_parse_datetime(self.last_fetched_at),
        )

    @classmethod
    def from_domain(cls, opportunity: Opportunity) -> "OpportunityModel":
        model = cls(id=opportunity.id)
        model.copy_from(opportunity)
        return model

    def copy_from(self, opportunity: Opportunity) -> None:
        """Overwrite every column except the primary key."""
        self.solicitation_number = opportunity.solicitation_number
        self.title = opportunity.title
        self.description = opportunity.description
        self.naics_code = opportunity.naics_code
        self.type = opportunity.type
        self.posted_date = _format_date(opportunity.posted_date)
        self.response_deadline = _format_date(opportunity.response_deadline)
        self.url = opportunity.url
        self.status = OpportunityStatus(opportunity.status).value
        self.source = opportunity.source
        self.set_aside_type = opportunity.set_aside_type
        self.place_of_performance_state = opportunity.place_of_performance_state
        self.award_amount = opportunity.award_amount
        self.estimated_value_low = opportunity.estimated_value_low
        self.estimated_value_high = opportunity.estimated_value_high
        self.incumbent_contractor = opportunity.incumbent_contractor
        self.clearance_required = opportunity.clearance_required
        self.itar_controlled = opportunity.itar_controlled
        self.is_sbir = opportunity.is_sbir
        self.is_sttr = opportunity.is_sttr
        self.sbir_phase = opportunity.sbir_phase
        self.created_at = _format_datetime(opportunity.created_at)
        self.updated_at = _format_datetime(opportunity.updated_at)
        self.last_fetched_at = _format_datetime(opportunity.last_fetched_at)


class CompanyProfileModel(Base):
    """ORM model for the company_profiles table (one row per tenant)."""

    __tablename__ = "company_profiles"

    tenant_id = Column(String(100), primary_key=True, nullable=False)
    legal_name = Column(String(255), nullable=True)
    primary_naics = Column(JSON, nullable=True)
    secondary_naics = Column(JSON, nullable=True)
    capabilities_statement = Column(Text, nullable=True)
    past_performance_summary = Column(Text, nullable=True)
    headquarters_state = Column(String(10), nullable=True)
    service_regions = Column(JSON, nullable=True)

    is_small_business = Column(Boolean, nullable=False, default=False)
    is_8a = Column(Boolean, nullable=False, default=False)
    is_hubzone = Column(Boolean, nullable=False, default=False)
    is_veteran_owned = Column(Boolean, nullable=False, default=False)
    is_woman_owned = Column(Boolean, nullable=False, default=False)
    has_facility_clearance = Column(Boolean, nullable=False, default=False)
    is_itar_registered = Column(Boolean, nullable=False, default=False)
    annual_revenue = Column(_MONEY, nullable=True)

    def to_domain(self) -> CompanyProfile:
        return CompanyProfile(
            tenant_id=self.tenant_id,
            legal_name=self.legal_name,
            primary_naics=_as_list(self.primary_naics),
            secondary_naics=_as_list(self.secondary_naics),
            capabilities_statement=self.capabilities_statement,
            past_performance_summary=self.past_performance_summary,
            headquarters_state=self.headquarters_state,
            service_regions=_as_list(self.service_regions),
            is_small_business=bool(self.is_small_business),
            is_8a=bool(self.is_8a),
            is_hubzone=bool(self.is_hubzone),
            is_veteran_owned=bool(self.is_veteran_owned),
            is_woman_owned=bool(self.is_woman_owned),
            has_facility_clearance=bool(self.has_facility_clearance),
            is_itar_registered=bool(self.is_itar_registered),
            annual_revenue=self.annual_revenue,
        )

    @classmethod
    def from_domain(cls, profile: CompanyProfile) -> "CompanyProfileModel":
        model = cls(tenant_id=profile.tenant_id)
        model.copy_from(profile)
        return model

    def copy_from(self, profile: CompanyProfile) -> None:
        self.legal_name = profile.legal_name
        self.primary_naics = _as_list(profile.primary_naics)
        self.secondary_naics = _as_list(profile.secondary_naics)
        self.capabilities_statement = profile.capabilities_statement
        self.past_performance_summary = profile.past_performance_summary
        self.headquarters_state = profile.headquarters_state
        self.service_regions = _as_list(profile.service_regions)
        self.is_small_business = profile.is_small_business
        self.is_8a = profile.is_8a
        self.is_hubzone = profile.is_hubzone
        self.is_veteran_owned = profile.is_veteran_owned
        self.is_woman_owned = profile.is_woman_owned
        self.has_facility_clearance = profile.has_facility_clearance
        self.is_itar_registered = profile.is_itar_registered
        self.annual_revenue = profile.annual_revenue


class OpportunityMatchModel(Base):
    """ORM model for the opportunity_matches table.

    One live row per (tenant_id, opportunity_id).
    """

    __tablename__ = "opportunity_matches"

    id = Column(String(36), primary_key=True, nullable=False)
    tenant_id = Column(String(100), nullable=False)
    opportunity_id = Column(String(100), nullable=False)

    naics_score = Column(_SCORE, nullable=False, default=0)
    capability_score = Column(_SCORE, nullable=False, default=0)
    past_performance_score = Column(_SCORE, nullable=False, default=0)
    geographic_score = Column(_SCORE, nullable=False, default=0)
    certification_score = Column(_SCORE, nullable=False, default=0)
    clearance_score = Column(_SCORE, nullable=False, default=0)
    contract_size_score = Column(_SCORE, nullable=False, default=0)
    overall_score = Column(_SCORE, nullable=False, default=0)
    pwin_score = Column(_SCORE, nullable=False, default=0)

    match_status = Column(String(20), nullable=True)
    match_reasons = Column(Text, nullable=True)
    risk_factors = Column(Text, nullable=True)
    pwin_factors = Column(Text, nullable=True)

    user_rating = Column(Integer, nullable=True)
    user_feedback = Column(Text, nullable=True)
    last_calculated_at = Column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "opportunity_id", name="uq_match_tenant_opportunity"),
        Index("idx_matches_tenant_score", "tenant_id", "overall_score"),
    )

    def to_domain(self) -> OpportunityMatch:
        return OpportunityMatch(
            id=self.id,
            tenant_id=self.tenant_id,
            opportunity_id=self.opportunity_id,
            naics_score=self.naics_score,
            capability_score=self.capability_score,
            past_performance_score=self.past_performance_score,
            geographic_score=self.geographic_score,
            certification_score=self.certification_score,
            clearance_score=self.clearance_score,
            contract_size_score=self.contract_size_score,
            overall_score=self.overall_score,
            pwin_score=self.pwin_score,
            match_status=MatchStatus(self.match_status) if self.match_status else None,
            match_reasons=self.match_reasons or "",
            risk_factors=self.risk_factors or "",
            pwin_factors=self.pwin_factors or "",
            user_rating=self.user_rating,
            user_feedback=self.user_feedback,
            last_calculated_at=_parse_datetime(self.last_calculated_at),
        )

    @classmethod
    def from_domain(cls, match: OpportunityMatch) -> "OpportunityMatchModel":
        model = cls(id=match.id, tenant_id=match.tenant_id, opportunity_id=match.opportunity_id)
        model.copy_from(match)
        return model

    def copy_from(self, match: OpportunityMatch) -> None:
        """Overwrite scores, text and feedback; identity columns stay."""
        self.naics_score = match.naics_score
        self.capability_score = match.capability_score
        self.past_performance_score = match.past_performance_score
        self.geographic_score = match.geographic_score
        self.certification_score = match.certification_score
        self.clearance_score = match.clearance_score
        self.contract_size_score = match.contract_size_score
        self.overall_score = match.overall_score
        self.pwin_score = match.pwin_score
        self.match_status = match.match_status.value if match.match_status else None
        self.match_reasons = match.match_reasons
        self.risk_factors = match.risk_factors
        self.pwin_factors = match.pwin_factors
        self.user_rating = match.user_rating
        self.user_feedback = match.user_feedback
        self.last_calculated_at = _format_datetime(match.last_calculated_at)


class OpportunityAlertModel(Base):
    """ORM model for the opportunity_alerts table."""

    __tablename__ = "opportunity_alerts"

    id = Column(String(36), primary_key=True, nullable=False)
    user_id = Column(String(100), nullable=False)
    tenant_id = Column(String(100), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    naics_codes = Column(JSON, nullable=True)
    keywords = Column(JSON, nullable=True)
    min_value = Column(_MONEY, nullable=True)
    max_value = Column(_MONEY, nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)
    last_checked_at = Column(String(50), nullable=True)
    last_match_count = Column(Integer, nullable=False, default=0)
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_alert_user_name"),
        Index("idx_alerts_enabled", "enabled"),
    )

    def to_domain(self) -> OpportunityAlert:
        return OpportunityAlert(
            id=self.id,
            user_id=self.user_id,
            tenant_id=self.tenant_id,
            name=self.name,
            description=self.description,
            naics_codes=_as_list(self.naics_codes),
            keywords=_as_list(self.keywords),
            min_value=self.min_value,
            max_value=self.max_value,
            enabled=bool(self.enabled),
            last_checked_at=_parse_datetime(self.last_checked_at),
            last_match_count=self.last_match_count or 0,
            created_at=_parse_datetime(self.created_at),
            updated_at=_parse_datetime(self.updated_at),
        )

    @classmethod
    def from_domain(cls, alert: OpportunityAlert) -> "OpportunityAlertModel":
        model = cls(id=alert.id, user_id=alert.user_id)
        model.copy_from(alert)
        return model

    def copy_from(self, alert: OpportunityAlert) -> None:
        self.tenant_id = alert.tenant_id
        self.name = alert.name
        self.description = alert.description
        self.naics_codes = _as_list(alert.naics_codes)
        self.keywords = _as_list(alert.keywords)
        self.min_value = alert.min_value
        self.max_value = alert.max_value
        self.enabled = alert.enabled
        self.last_checked_at = _format_datetime(alert.last_checked_at)
        self.last_match_count = alert.last_match_count
        self.created_at = _format_datetime(alert.created_at)
        self.updated_at = _format_datetime(alert.updated_at)


def _as_list(values: Optional[List[str]]) -> List[str]:
    return list(values or [])


def _format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as an ISO 8601 UTC string with a Z suffix."""
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO 8601 string back into an aware UTC datetime."""
    if not dt_str:
        return None

    dt_str = dt_str.rstrip("Z")
    try:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        from sqlalchemy import inspect

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
