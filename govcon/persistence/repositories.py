"""Data access layer (repositories) for persistence operations.

Repositories wrap one session, return domain models rather than ORM rows
and translate SQLAlchemy failures into PersistenceError subclasses.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from govcon.domain.models import (
    CompanyProfile,
    Opportunity,
    OpportunityAlert,
    OpportunityMatch,
    OpportunityStatus,
)

from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .schema import (
    CompanyProfileModel,
    OpportunityAlertModel,
    OpportunityMatchModel,
    OpportunityModel,
)

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of a paged query.

    Attributes:
        items: Records on this page
        page: Zero-based page index
        page_size: Requested page size
        total: Total matching records across all pages
    """

    items: List = field(default_factory=list)
    page: int = 0
    page_size: int = 0
    total: int = 0

    @property
    def has_next(self) -> bool:
        return (self.page + 1) * self.page_size < self.total


def _wrap(error: SQLAlchemyError, action: str) -> PersistenceError:
    """Map a SQLAlchemy error onto the persistence hierarchy."""
    if isinstance(error, IntegrityError):
        return DataIntegrityError(f"Failed to {action} due to constraint violation: {error}")
    if isinstance(error, OperationalError):
        return DatabaseConnectionError(f"Failed to {action}: {error}")
    return PersistenceError(f"Failed to {action}: {error}")


class OpportunityRepository:
    """Keyed store for opportunities."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, opportunity_id: str) -> Optional[Opportunity]:
        """Retrieve an opportunity by its external id.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(OpportunityModel, opportunity_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving opportunity {opportunity_id}: {e}", exc_info=True)
            raise _wrap(e, "retrieve opportunity") from e

    def find_by_solicitation_number(self, solicitation_number: str) -> Optional[Opportunity]:
        """Look up an opportunity by its natural key.

        Args:
            solicitation_number: Upstream solicitation number

        Returns:
            Opportunity if found, None otherwise

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(OpportunityModel).where(
                OpportunityModel.solicitation_number == solicitation_number
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving opportunity {solicitation_number}: {e}", exc_info=True
            )
            raise _wrap(e, "retrieve opportunity") from e

    def save(self, opportunity: Opportunity) -> Opportunity:
        """Insert a new opportunity or overwrite the row with the same id.

        Args:
            opportunity: Opportunity to persist

        Returns:
            The persisted opportunity

        Raises:
            DataIntegrityError: If the solicitation number belongs to another row
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(OpportunityModel, opportunity.id)
            if existing:
                existing.copy_from(opportunity)
                model = existing
            else:
                model = OpportunityModel.from_domain(opportunity)
                self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except SQLAlchemyError as e:
            logger.error(
                f"Error saving opportunity {opportunity.solicitation_number}: {e}", exc_info=True
            )
            raise _wrap(e, "save opportunity") from e

    def find_by_status(
        self, status: OpportunityStatus, page: int = 0, page_size: int = 200
    ) -> Page:
        """Return one page of opportunities in the given status.

        Ordered by id so paging is stable across calls.

        Raises:
            PersistenceError: If database error occurs
        """
        if page < 0 or page_size < 1:
            raise ValueError("page must be >= 0 and page_size >= 1")

        status_value = OpportunityStatus(status).value
        try:
            total = self.session.execute(
                select(func.count())
                .select_from(OpportunityModel)
                .where(OpportunityModel.status == status_value)
            ).scalar_one()
            stmt = (
                select(OpportunityModel)
                .where(OpportunityModel.status == status_value)
                .order_by(OpportunityModel.id)
                .offset(page * page_size)
                .limit(page_size)
            )
            models = self.session.execute(stmt).scalars().all()
            return Page(
                items=[m.to_domain() for m in models],
                page=page,
                page_size=page_size,
                total=total,
            )
        except SQLAlchemyError as e:
            logger.error(f"Error paging opportunities by status {status_value}: {e}", exc_info=True)
            raise _wrap(e, "page opportunities") from e

    def count(self) -> int:
        try:
            return self.session.execute(
                select(func.count()).select_from(OpportunityModel)
            ).scalar_one()
        except SQLAlchemyError as e:
            raise _wrap(e, "count opportunities") from e


class CompanyProfileRepository:
    """Lookup and save for tenant company profiles."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_tenant(self, tenant_id: str) -> Optional[CompanyProfile]:
        """Return the tenant's profile, or None if it has not been set up."""
        try:
            model = self.session.get(CompanyProfileModel, tenant_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving profile for tenant {tenant_id}: {e}", exc_info=True)
            raise _wrap(e, "retrieve company profile") from e

    def save(self, profile: CompanyProfile) -> CompanyProfile:
        try:
            existing = self.session.get(CompanyProfileModel, profile.tenant_id)
            if existing:
                existing.copy_from(profile)
                model = existing
            else:
                model = CompanyProfileModel.from_domain(profile)
                self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except SQLAlchemyError as e:
            logger.error(f"Error saving profile for tenant {profile.tenant_id}: {e}", exc_info=True)
            raise _wrap(e, "save company profile") from e


class MatchRepository:
    """Store for (tenant, opportunity) match rows."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, match_id: str) -> Optional[OpportunityMatch]:
        try:
            model = self.session.get(OpportunityMatchModel, match_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving match {match_id}: {e}", exc_info=True)
            raise _wrap(e, "retrieve match") from e

    def find_by_tenant_and_opportunity(
        self, tenant_id: str, opportunity_id: str
    ) -> Optional[OpportunityMatch]:
        """Return the live match for the pair, if one exists."""
        try:
            stmt = select(OpportunityMatchModel).where(
                OpportunityMatchModel.tenant_id == tenant_id,
                OpportunityMatchModel.opportunity_id == opportunity_id,
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving match {tenant_id}/{opportunity_id}: {e}", exc_info=True
            )
            raise _wrap(e, "retrieve match") from e

    def save(self, match: OpportunityMatch) -> OpportunityMatch:
        """Insert or overwrite the single row for the match's (tenant, opportunity).

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(OpportunityMatchModel).where(
                OpportunityMatchModel.tenant_id == match.tenant_id,
                OpportunityMatchModel.opportunity_id == match.opportunity_id,
            )
            existing = self.session.execute(stmt).scalar_one_or_none()
            if existing:
                existing.copy_from(match)
                model = existing
            else:
                model = OpportunityMatchModel.from_domain(match)
                self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except SQLAlchemyError as e:
            logger.error(
                f"Error saving match {match.tenant_id}/{match.opportunity_id}: {e}", exc_info=True
            )
            raise _wrap(e, "save match") from e

    def find_top(
        self, tenant_id: str, limit: int = 10, min_score: Decimal = Decimal("70")
    ) -> List[OpportunityMatch]:
        """Highest-scoring matches for a tenant at or above ``min_score``."""
        try:
            stmt = (
                select(OpportunityMatchModel)
                .where(
                    OpportunityMatchModel.tenant_id == tenant_id,
                    OpportunityMatchModel.overall_score >= min_score,
                )
                .order_by(OpportunityMatchModel.overall_score.desc(), OpportunityMatchModel.id)
                .limit(limit)
            )
            return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving top matches for {tenant_id}: {e}", exc_info=True)
            raise _wrap(e, "retrieve top matches") from e

    def find_by_tenant(self, tenant_id: str) -> List[OpportunityMatch]:
        try:
            stmt = select(OpportunityMatchModel).where(OpportunityMatchModel.tenant_id == tenant_id)
            return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving matches for {tenant_id}: {e}", exc_info=True)
            raise _wrap(e, "retrieve matches") from e


class AlertRepository:
    """CRUD for user alert rules."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, alert_id: str) -> Optional[OpportunityAlert]:
        try:
            model = self.session.get(OpportunityAlertModel, alert_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alert {alert_id}: {e}", exc_info=True)
            raise _wrap(e, "retrieve alert") from e

    def find_by_user(self, user_id: str) -> List[OpportunityAlert]:
        """All of a user's alerts, ordered by name."""
        try:
            stmt = (
                select(OpportunityAlertModel)
                .where(OpportunityAlertModel.user_id == user_id)
                .order_by(OpportunityAlertModel.name)
            )
            return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alerts for user {user_id}: {e}", exc_info=True)
            raise _wrap(e, "retrieve alerts") from e

    def exists_by_user_and_name(
        self, user_id: str, name: str, exclude_id: Optional[str] = None
    ) -> bool:
        """Whether the user already has an alert called ``name``.

        Args:
            user_id: Owner of the alerts
            name: Alert name to check
            exclude_id: Alert id to ignore (the alert being renamed)
        """
        try:
            stmt = select(OpportunityAlertModel.id).where(
                OpportunityAlertModel.user_id == user_id,
                OpportunityAlertModel.name == name,
            )
            if exclude_id is not None:
                stmt = stmt.where(OpportunityAlertModel.id != exclude_id)
            return self.session.execute(stmt.limit(1)).first() is not None
        except SQLAlchemyError as e:
            raise _wrap(e, "check alert name") from e

    def find_enabled(self) -> List[OpportunityAlert]:
        """Every enabled alert across all users."""
        try:
            stmt = (
                select(OpportunityAlertModel)
                .where(OpportunityAlertModel.enabled.is_(True))
                .order_by(OpportunityAlertModel.user_id, OpportunityAlertModel.name)
            )
            return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving enabled alerts: {e}", exc_info=True)
            raise _wrap(e, "retrieve enabled alerts") from e

    def find_enabled_by_user(self, user_id: str) -> List[OpportunityAlert]:
        try:
            stmt = (
                select(OpportunityAlertModel)
                .where(
                    OpportunityAlertModel.user_id == user_id,
                    OpportunityAlertModel.enabled.is_(True),
                )
                .order_by(OpportunityAlertModel.name)
            )
            return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving enabled alerts for {user_id}: {e}", exc_info=True)
            raise _wrap(e, "retrieve enabled alerts") from e

    def save(self, alert: OpportunityAlert) -> OpportunityAlert:
        """Insert or update an alert.

        Raises:
            DataIntegrityError: If the (user, name) pair already exists
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(OpportunityAlertModel, alert.id)
            if existing:
                existing.copy_from(alert)
                model = existing
            else:
                model = OpportunityAlertModel.from_domain(alert)
                self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except SQLAlchemyError as e:
            logger.error(f"Error saving alert {alert.id}: {e}", exc_info=True)
            raise _wrap(e, "save alert") from e

    def delete(self, alert_id: str) -> None:
        """Delete an alert.

        Raises:
            RecordNotFoundError: If no alert has that id
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(OpportunityAlertModel, alert_id)
            if model is None:
                raise RecordNotFoundError(f"Alert not found: {alert_id}")
            self.session.delete(model)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting alert {alert_id}: {e}", exc_info=True)
            raise _wrap(e, "delete alert") from e
