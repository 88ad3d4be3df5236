"""Alert rule evaluation against opportunities.

An alert matches when all three predicates hold. A predicate whose
criterion is absent from the alert is satisfied.

1. NAICS: the opportunity code starts with one of the alert's codes.
2. Keywords: one keyword appears, case-insensitively, in the title or
   description.
3. Value range: the opportunity's value (award amount, else estimated
   high, else estimated low) lies within the alert's bounds. With no value
   at all, any bound on the alert fails the predicate.
"""

import logging
from decimal import Decimal
from typing import Callable, List, Optional

from govcon.domain.models import AlertMatch, Opportunity, OpportunityAlert
from govcon.logging import get_logger
from govcon.persistence.database import get_session
from govcon.persistence.repositories import AlertRepository
from govcon.utils.text import contains_keyword

logger = get_logger(__name__, component="alerts")


def resolve_value(opportunity: Opportunity) -> Optional[Decimal]:
    """Comparison value: award amount, else estimated high, else estimated low."""
    for value in (
        opportunity.award_amount,
        opportunity.estimated_value_high,
        opportunity.estimated_value_low,
    ):
        if value is not None:
            return value
    return None


def naics_matches(opportunity: Opportunity, alert: OpportunityAlert) -> bool:
    if not alert.naics_codes:
        return True
    code = (opportunity.naics_code or "").strip()
    if not code:
        return False
    return any(code.startswith(prefix) for prefix in alert.naics_codes)


def keywords_match(opportunity: Opportunity, alert: OpportunityAlert) -> bool:
    if not alert.keywords:
        return True
    return any(
        contains_keyword(opportunity.title, keyword)
        or contains_keyword(opportunity.description, keyword)
        for keyword in alert.keywords
    )


def value_matches(opportunity: Opportunity, alert: OpportunityAlert) -> bool:
    if not alert.has_value_bounds:
        return True
    value = resolve_value(opportunity)
    if value is None:
        return False
    if alert.min_value is not None and value < alert.min_value:
        return False
    if alert.max_value is not None and value > alert.max_value:
        return False
    return True


def matches_alert(opportunity: Opportunity, alert: OpportunityAlert) -> bool:
    """
    Whether ``opportunity`` satisfies every criterion ``alert`` sets.

    Example:
        >>> alert = OpportunityAlert(id="a1", user_id="u1", name="Cyber", keywords=["cybersecurity"])
        >>> opp = Opportunity(id="n1", solicitation_number="S1",
        ...                   title="Enterprise Cybersecurity Modernization")
        >>> matches_alert(opp, alert)
        True
    """
    return (
        naics_matches(opportunity, alert)
        and keywords_match(opportunity, alert)
        and value_matches(opportunity, alert)
    )


class AlertEvaluator:
    """
    Evaluates an opportunity against stored enabled alerts.

    Read-only: alert rows are never modified during evaluation.
    """

    def __init__(
        self,
        session_scope=get_session,
        predicate: Callable[[Opportunity, OpportunityAlert], bool] = matches_alert,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self._session_scope = session_scope
        self._predicate = predicate
        self.logger = logger_instance or logger

    def evaluate_opportunity(self, opportunity: Opportunity) -> List[AlertMatch]:
        """
        Match an opportunity against every enabled alert of every user.

        Returns:
            One AlertMatch per matching alert, for a notification consumer
        """
        with self._session_scope() as session:
            alerts = AlertRepository(session).find_enabled()

        matches = [
            AlertMatch(user_id=alert.user_id, alert_id=alert.id, alert_name=alert.name)
            for alert in alerts
            if self._predicate(opportunity, alert)
        ]

        self.logger.info(
            f"Opportunity {opportunity.solicitation_number} matched {len(matches)} alerts",
            extra={
                "event": "alerts.opportunity.evaluated",
                "opportunity_id": opportunity.id,
                "alerts_checked": len(alerts),
                "match_count": len(matches),
            },
        )
        return matches

    def evaluate_opportunity_for_user(
        self, user_id: str, opportunity: Opportunity
    ) -> List[OpportunityAlert]:
        """Return the user's enabled alerts that match the opportunity."""
        with self._session_scope() as session:
            alerts = AlertRepository(session).find_enabled_by_user(user_id)

        matched = [alert for alert in alerts if self._predicate(opportunity, alert)]
        self.logger.debug(
            f"Opportunity {opportunity.solicitation_number} matched {len(matched)} alerts for user",
            extra={
                "event": "alerts.user.evaluated",
                "user_id": user_id,
                "opportunity_id": opportunity.id,
                "match_count": len(matched),
            },
        )
        return matched
