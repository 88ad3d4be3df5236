"""Opportunity normalization: RawOpportunity -> Opportunity.

Builds new opportunities and overwrites the mutable fields of existing ones.
Both paths share the same field derivation (dates, SBIR/STTR flags) so a
record normalizes identically whether it is new or an update.
"""

import logging
import re
import uuid
from datetime import datetime
from typing import Optional

from govcon.domain.models import Opportunity, OpportunityStatus, RawOpportunity
from govcon.logging import get_logger
from govcon.persistence.repositories import OpportunityRepository
from govcon.utils.timestamps import ensure_utc, parse_opportunity_date, utc_now

from .models import NormalizationResult

logger = get_logger(__name__, component="normalization")

DEFAULT_SOURCE = "SAM.gov"

# Checked highest first so "Phase II" is never read as "Phase I"
_PHASE_PATTERNS = [
    ("III", re.compile(r"\bPHASE\s+(?:III|3)\b")),
    ("II", re.compile(r"\bPHASE\s+(?:II|2)\b")),
    ("I", re.compile(r"\bPHASE\s+(?:I|1)\b")),
]


def detect_sbir_phase(title: Optional[str]) -> Optional[str]:
    """Detect an SBIR/STTR phase from a title.

    Args:
        title: Opportunity title

    Returns:
        "I", "II", "III" or None

    Example:
        >>> detect_sbir_phase("SBIR Phase 2: Autonomous Sensing")
        'II'
    """
    if not title:
        return None
    upper = title.upper()
    for phase, pattern in _PHASE_PATTERNS:
        if pattern.search(upper):
            return phase
    return None


class OpportunityNormalizer:
    """Turns upstream records into canonical opportunities.

    ``fetched_at`` is shared by every record of one ingestion run so all of
    them carry the same ``last_fetched_at``.
    """

    def __init__(
        self,
        opportunity_repo: Optional[OpportunityRepository] = None,
        fetched_at: Optional[datetime] = None,
        source: str = DEFAULT_SOURCE,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.opportunity_repo = opportunity_repo
        self.fetched_at = ensure_utc(fetched_at or utc_now())
        self.source = source
        self.logger = logger_instance or logger

    def normalize(self, raw: RawOpportunity) -> NormalizationResult:
        """Look up the stored record by solicitation number and build or update it.

        Raises:
            ValueError: If the record has no solicitation number
            PersistenceError: From the repository lookup
        """
        if self.opportunity_repo is None:
            raise RuntimeError("normalize() requires an OpportunityRepository")

        key = self._require_key(raw)
        existing = self.opportunity_repo.find_by_solicitation_number(key)
        if existing:
            opportunity = self.apply(existing, raw)
        else:
            opportunity = self.build(raw)
            if raw.notice_id and self.opportunity_repo.get_by_id(raw.notice_id):
                # Notice id already taken by another solicitation
                self.logger.warning(
                    f"Notice id {raw.notice_id} already used; generating a new id for {key}",
                    extra={"event": "normalization.id_collision", "notice_id": raw.notice_id},
                )
                opportunity = opportunity.model_copy(update={"id": uuid.uuid4().hex})
        return NormalizationResult(opportunity=opportunity, existing=existing, raw=raw)

    def build(self, raw: RawOpportunity) -> Opportunity:
        """Construct a new ACTIVE opportunity from an upstream record.

        The upstream notice id becomes the opportunity id; records without
        one get a generated id.
        """
        key = self._require_key(raw)
        title = raw.title
        return Opportunity(
            id=raw.notice_id or uuid.uuid4().hex,
            solicitation_number=key,
            title=title,
            description=raw.description,
            naics_code=raw.naics_code,
            type=raw.type,
            posted_date=parse_opportunity_date(raw.posted_date),
            response_deadline=parse_opportunity_date(raw.response_deadline),
            url=raw.url,
            status=OpportunityStatus.ACTIVE,
            source=self.source,
            set_aside_type=raw.set_aside_type,
            place_of_performance_state=_upper(raw.place_of_performance_state),
            award_amount=raw.award_amount,
            incumbent_contractor=raw.incumbent_contractor,
            is_sbir=_title_has(title, "SBIR"),
            is_sttr=_title_has(title, "STTR"),
            sbir_phase=detect_sbir_phase(title),
            created_at=self.fetched_at,
            updated_at=self.fetched_at,
            last_fetched_at=self.fetched_at,
        )

    def apply(self, existing: Opportunity, raw: RawOpportunity) -> Opportunity:
        """Overwrite the mutable fields of ``existing`` from ``raw``.

        Title, dates, NAICS code, type, URL and SBIR/STTR flags always follow
        the upstream record. Enrichment fields are only replaced when the
        upstream record carries them. Identity, status and creation time are
        kept.
        """
        title = raw.title
        updates = {
            "title": title,
            "posted_date": parse_opportunity_date(raw.posted_date),
            "response_deadline": parse_opportunity_date(raw.response_deadline),
            "naics_code": raw.naics_code,
            "type": raw.type,
            "url": raw.url,
            "is_sbir": _title_has(title, "SBIR"),
            "is_sttr": _title_has(title, "STTR"),
            "sbir_phase": detect_sbir_phase(title),
            "updated_at": self.fetched_at,
            "last_fetched_at": self.fetched_at,
        }

        optional = {
            "description": raw.description,
            "set_aside_type": raw.set_aside_type,
            "place_of_performance_state": _upper(raw.place_of_performance_state),
            "award_amount": raw.award_amount,
            "incumbent_contractor": raw.incumbent_contractor,
        }
        updates.update({field: value for field, value in optional.items() if value is not None})

        return existing.model_copy(update=updates)

    @staticmethod
    def _require_key(raw: RawOpportunity) -> str:
        key = (raw.solicitation_number or "").strip()
        if not key:
            raise ValueError("Record has no solicitation number")
        return key


def _title_has(title: Optional[str], marker: str) -> bool:
    return bool(title) and marker in title.upper()


def _upper(value: Optional[str]) -> Optional[str]:
    return value.upper() if value else None
