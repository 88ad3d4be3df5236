"""Match scoring: one tenant profile against one or all ACTIVE opportunities."""

import time
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from govcon.domain.models import (
    CompanyProfile,
    MatchStatus,
    Opportunity,
    OpportunityMatch,
    OpportunityStatus,
)
from govcon.logging import get_logger
from govcon.logging.context import log_context
from govcon.persistence.database import get_session
from govcon.persistence.exceptions import DataIntegrityError, PersistenceError
from govcon.persistence.repositories import (
    CompanyProfileRepository,
    MatchRepository,
    OpportunityRepository,
)
from govcon.utils.timestamps import utc_now

from . import factors
from .exceptions import MatchNotFoundError, OpportunityNotFoundError, ProfileNotFoundError
from .models import BatchScoreResult, MatchStats, ScoreBreakdown, join_tags
from .reasons import build_pwin_factors, build_reasons, build_risks

logger = get_logger(__name__, component="scoring")

DEFAULT_PAGE_SIZE = 200
HIGH_SCORE_THRESHOLD = Decimal("70")


class MatchScorer:
    """
    Scores opportunities for a tenant and keeps one match row per pair.

    Recomputing a match overwrites its scores and reason text but keeps the
    status and feedback a user already gave it.
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE, session_scope=get_session):
        """
        Initialize the scorer.

        Args:
            page_size: ACTIVE opportunities loaded per page in batch scoring
            session_scope: Context manager factory yielding a Session
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self._session_scope = session_scope

    def score(self, opportunity: Opportunity, profile: CompanyProfile) -> ScoreBreakdown:
        """Compute sub-scores, overall, PWin and tags without touching the store."""
        scores = {
            "naics": factors.naics_score(
                opportunity.naics_code, profile.primary_naics, profile.secondary_naics
            ),
            "capability": factors.capability_score(
                profile.capabilities_statement, opportunity.description
            ),
            "past_performance": factors.past_performance_score(profile.past_performance_summary),
            "geographic": factors.geographic_score(
                opportunity.place_of_performance_state,
                profile.headquarters_state,
                profile.service_regions,
            ),
            "certification": factors.certification_score(opportunity.set_aside_type, profile),
            "clearance": factors.clearance_score(opportunity, profile),
            "contract_size": factors.contract_size_score(
                opportunity.estimated_value_high, profile.annual_revenue
            ),
        }
        overall = factors.overall_score(scores)
        pwin = factors.pwin_score(overall, bool(opportunity.incumbent_contractor))

        return ScoreBreakdown(
            scores=scores,
            overall=overall,
            pwin=pwin,
            reasons=build_reasons(scores),
            risks=build_risks(scores, opportunity),
            pwin_factors=build_pwin_factors(overall, opportunity),
        )

    def calculate_match(self, tenant_id: str, opportunity_id: str) -> OpportunityMatch:
        """
        Score one opportunity for a tenant and persist the match.

        Args:
            tenant_id: Tenant whose profile is scored
            opportunity_id: Opportunity to score

        Returns:
            The saved OpportunityMatch

        Raises:
            ProfileNotFoundError: If the tenant has no profile
            OpportunityNotFoundError: If the opportunity does not exist
            PersistenceError: If the store fails
        """
        with log_context(tenant_id=tenant_id):
            with self._session_scope() as session:
                profile = CompanyProfileRepository(session).find_by_tenant(tenant_id)
                if profile is None:
                    raise ProfileNotFoundError(tenant_id)

                opportunity = OpportunityRepository(session).get_by_id(opportunity_id)
                if opportunity is None:
                    raise OpportunityNotFoundError(opportunity_id)

                match = self._score_and_save(MatchRepository(session), profile, opportunity)

            logger.info(
                f"Calculated match for opportunity {opportunity_id}",
                extra={
                    "event": "scoring.match.calculated",
                    "opportunity_id": opportunity_id,
                    "overall_score": match.overall_score,
                    "pwin_score": match.pwin_score,
                },
            )
            return match

    def calculate_all_matches(self, tenant_id: str) -> BatchScoreResult:
        """
        Score every ACTIVE opportunity for a tenant, one page at a time.

        A failing opportunity is logged and counted; the batch continues. A
        missing profile ends the batch with a warning.

        Returns:
            BatchScoreResult with processed/failed counts

        Raises:
            PersistenceError: If the store fails for a reason other than one
                record's integrity
        """
        with log_context(tenant_id=tenant_id):
            started = time.monotonic()
            result = BatchScoreResult(tenant_id=tenant_id)

            with self._session_scope() as session:
                profile = CompanyProfileRepository(session).find_by_tenant(tenant_id)

            if profile is None:
                logger.warning(
                    f"No company profile for tenant {tenant_id}; skipping batch scoring",
                    extra={"event": "scoring.batch.profile_missing"},
                )
                result.profile_missing = True
                return result

            logger.info(
                "Batch scoring started",
                extra={"event": "scoring.batch.started", "page_size": self.page_size},
            )

            page_index = 0
            while True:
                with self._session_scope() as session:
                    page = OpportunityRepository(session).find_by_status(
                        OpportunityStatus.ACTIVE, page_index, self.page_size
                    )
                    match_repo = MatchRepository(session)
                    for opportunity in page.items:
                        try:
                            with session.begin_nested():
                                self._score_and_save(match_repo, profile, opportunity)
                            result.processed += 1
                        except DataIntegrityError as e:
                            result.failed += 1
                            logger.error(
                                f"Failed to save match for opportunity {opportunity.id}: {e}",
                                extra={
                                    "event": "scoring.match.failed",
                                    "opportunity_id": opportunity.id,
                                },
                            )
                        except PersistenceError:
                            raise
                        except Exception as e:
                            result.failed += 1
                            logger.error(
                                f"Failed to score opportunity {opportunity.id}: {e}",
                                exc_info=True,
                                extra={
                                    "event": "scoring.match.failed",
                                    "opportunity_id": opportunity.id,
                                },
                            )

                if not page.has_next:
                    break
                page_index += 1

            result.duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                "Batch scoring completed",
                extra={
                    "event": "scoring.batch.completed",
                    "processed": result.processed,
                    "failed": result.failed,
                    "duration_ms": result.duration_ms,
                },
            )
            return result

    def update_match_status(self, tenant_id: str, match_id: str, status: MatchStatus) -> OpportunityMatch:
        """
        Move a match to a new capture status.

        Raises:
            MatchNotFoundError: If the match does not exist for this tenant
        """
        with self._session_scope() as session:
            repo = MatchRepository(session)
            match = self._get_owned(repo, tenant_id, match_id)
            saved = repo.save(match.model_copy(update={"match_status": MatchStatus(status)}))

        logger.info(
            f"Match {match_id} status set to {saved.match_status.value}",
            extra={"event": "scoring.match.status_changed", "match_id": match_id},
        )
        return saved

    def add_user_feedback(
        self, tenant_id: str, match_id: str, rating: int, feedback: Optional[str] = None
    ) -> OpportunityMatch:
        """
        Record a 1-5 rating and optional comment on a match.

        Raises:
            ValueError: If the rating is outside 1-5
            MatchNotFoundError: If the match does not exist for this tenant
        """
        if not 1 <= rating <= 5:
            raise ValueError(f"rating must be between 1 and 5, got {rating}")

        with self._session_scope() as session:
            repo = MatchRepository(session)
            match = self._get_owned(repo, tenant_id, match_id)
            return repo.save(
                match.model_copy(update={"user_rating": rating, "user_feedback": feedback})
            )

    def get_top_matches(
        self, tenant_id: str, limit: int = 10, min_score: Decimal = HIGH_SCORE_THRESHOLD
    ) -> List[OpportunityMatch]:
        """Best matches for a tenant, highest overall score first."""
        with self._session_scope() as session:
            return MatchRepository(session).find_top(tenant_id, limit, Decimal(min_score))

    def get_match_stats(self, tenant_id: str) -> MatchStats:
        """Totals, high-scoring count, average score and per-status counts."""
        with self._session_scope() as session:
            matches = MatchRepository(session).find_by_tenant(tenant_id)

        stats = MatchStats(tenant_id=tenant_id, total=len(matches))
        if not matches:
            return stats

        stats.high_scoring = sum(1 for m in matches if m.overall_score >= HIGH_SCORE_THRESHOLD)
        stats.average_score = factors.quantize(
            sum(m.overall_score for m in matches) / len(matches)
        )
        for m in matches:
            key = m.match_status.value if m.match_status else "NONE"
            stats.by_status[key] = stats.by_status.get(key, 0) + 1
        return stats

    def _score_and_save(
        self, match_repo: MatchRepository, profile: CompanyProfile, opportunity: Opportunity
    ) -> OpportunityMatch:
        breakdown = self.score(opportunity, profile)
        existing = match_repo.find_by_tenant_and_opportunity(profile.tenant_id, opportunity.id)

        match = OpportunityMatch(
            id=existing.id if existing else str(uuid4()),
            tenant_id=profile.tenant_id,
            opportunity_id=opportunity.id,
            naics_score=breakdown.scores["naics"],
            capability_score=breakdown.scores["capability"],
            past_performance_score=breakdown.scores["past_performance"],
            geographic_score=breakdown.scores["geographic"],
            certification_score=breakdown.scores["certification"],
            clearance_score=breakdown.scores["clearance"],
            contract_size_score=breakdown.scores["contract_size"],
            overall_score=breakdown.overall,
            pwin_score=breakdown.pwin,
            # Never regress a status a user already set
            match_status=(existing.match_status if existing and existing.match_status else MatchStatus.NEW),
            match_reasons=join_tags(breakdown.reasons),
            risk_factors=join_tags(breakdown.risks),
            pwin_factors=join_tags(breakdown.pwin_factors),
            user_rating=existing.user_rating if existing else None,
            user_feedback=existing.user_feedback if existing else None,
            last_calculated_at=utc_now(),
        )
        return match_repo.save(match)

    @staticmethod
    def _get_owned(repo: MatchRepository, tenant_id: str, match_id: str) -> OpportunityMatch:
        match = repo.get_by_id(match_id)
        if match is None or match.tenant_id != tenant_id:
            raise MatchNotFoundError(match_id)
        return match
