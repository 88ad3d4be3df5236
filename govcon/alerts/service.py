"""Alert management: create, update, delete, toggle and read a user's alerts."""

from typing import List
from uuid import uuid4

from govcon.domain.models import OpportunityAlert
from govcon.logging import get_logger
from govcon.persistence.database import get_session
from govcon.persistence.exceptions import DataIntegrityError
from govcon.persistence.repositories import AlertRepository
from govcon.utils.timestamps import utc_now

from .exceptions import AlertNotFoundError, DuplicateAlertNameError, InvalidAlertError
from .models import AlertCreateRequest, AlertUpdateRequest

logger = get_logger(__name__, component="alerts")


class AlertService:
    """
    User-scoped alert CRUD.

    Alert names are unique per user. The check runs before insert and
    before rename; the database constraint backs it up.
    """

    def __init__(self, session_scope=get_session):
        self._session_scope = session_scope

    def create_alert(self, user_id: str, request: AlertCreateRequest) -> OpportunityAlert:
        """
        Create an alert for a user.

        Raises:
            DuplicateAlertNameError: If the user already has an alert with that name
            InvalidAlertError: If min_value exceeds max_value
        """
        _check_bounds(request.min_value, request.max_value)
        now = utc_now()

        with self._session_scope() as session:
            repo = AlertRepository(session)
            if repo.exists_by_user_and_name(user_id, request.name):
                raise DuplicateAlertNameError(request.name)

            alert = OpportunityAlert(
                id=str(uuid4()),
                user_id=user_id,
                tenant_id=request.tenant_id,
                name=request.name,
                description=request.description,
                naics_codes=request.naics_codes,
                keywords=request.keywords,
                min_value=request.min_value,
                max_value=request.max_value,
                enabled=request.enabled,
                created_at=now,
                updated_at=now,
            )
            try:
                saved = repo.save(alert)
            except DataIntegrityError as e:
                raise DuplicateAlertNameError(request.name) from e

        logger.info(
            f"Created alert '{saved.name}'",
            extra={"event": "alerts.alert.created", "user_id": user_id, "alert_id": saved.id},
        )
        return saved

    def update_alert(
        self, user_id: str, alert_id: str, request: AlertUpdateRequest
    ) -> OpportunityAlert:
        """
        Apply the non-None fields of ``request`` to an alert.

        Raises:
            AlertNotFoundError: If the alert does not belong to the user
            DuplicateAlertNameError: If the new name is taken by another of the user's alerts
            InvalidAlertError: If the resulting min_value exceeds max_value
        """
        with self._session_scope() as session:
            repo = AlertRepository(session)
            alert = _get_owned(repo, user_id, alert_id)

            changes = request.model_dump(exclude_none=True)
            if "name" in changes and changes["name"] != alert.name:
                if repo.exists_by_user_and_name(user_id, changes["name"], exclude_id=alert_id):
                    raise DuplicateAlertNameError(changes["name"])

            updated = alert.model_copy(update={**changes, "updated_at": utc_now()})
            _check_bounds(updated.min_value, updated.max_value)

            try:
                saved = repo.save(updated)
            except DataIntegrityError as e:
                raise DuplicateAlertNameError(updated.name) from e

        logger.info(
            f"Updated alert '{saved.name}'",
            extra={
                "event": "alerts.alert.updated",
                "user_id": user_id,
                "alert_id": alert_id,
                "fields": sorted(changes),
            },
        )
        return saved

    def delete_alert(self, user_id: str, alert_id: str) -> None:
        """
        Raises:
            AlertNotFoundError: If the alert does not belong to the user
        """
        with self._session_scope() as session:
            repo = AlertRepository(session)
            _get_owned(repo, user_id, alert_id)
            repo.delete(alert_id)

        logger.info(
            "Deleted alert",
            extra={"event": "alerts.alert.deleted", "user_id": user_id, "alert_id": alert_id},
        )

    def toggle_alert(self, user_id: str, alert_id: str) -> OpportunityAlert:
        """Flip the enabled flag."""
        with self._session_scope() as session:
            repo = AlertRepository(session)
            alert = _get_owned(repo, user_id, alert_id)
            saved = repo.save(
                alert.model_copy(update={"enabled": not alert.enabled, "updated_at": utc_now()})
            )

        logger.info(
            f"Alert '{saved.name}' {'enabled' if saved.enabled else 'disabled'}",
            extra={"event": "alerts.alert.toggled", "user_id": user_id, "alert_id": alert_id},
        )
        return saved

    def record_check(self, user_id: str, alert_id: str, match_count: int) -> OpportunityAlert:
        """Stamp last_checked_at and last_match_count after a notification pass."""
        with self._session_scope() as session:
            repo = AlertRepository(session)
            alert = _get_owned(repo, user_id, alert_id)
            return repo.save(
                alert.model_copy(
                    update={"last_checked_at": utc_now(), "last_match_count": match_count}
                )
            )

    def get_alert(self, user_id: str, alert_id: str) -> OpportunityAlert:
        with self._session_scope() as session:
            return _get_owned(AlertRepository(session), user_id, alert_id)

    def list_alerts(self, user_id: str) -> List[OpportunityAlert]:
        with self._session_scope() as session:
            return AlertRepository(session).find_by_user(user_id)


def _get_owned(repo: AlertRepository, user_id: str, alert_id: str) -> OpportunityAlert:
    alert = repo.get_by_id(alert_id)
    # Another user's alert is reported exactly like a missing one
    if alert is None or alert.user_id != user_id:
        raise AlertNotFoundError(alert_id)
    return alert


def _check_bounds(min_value, max_value) -> None:
    if min_value is not None and max_value is not None and min_value > max_value:
        raise InvalidAlertError(
            f"min_value ({min_value}) cannot be greater than max_value ({max_value})"
        )
