"""Exceptions raised by the match scorer."""


class ScoringError(Exception):
    """Base exception for scoring errors that are the caller's to fix."""

    pass


class ProfileNotFoundError(ScoringError):
    """The tenant has no company profile; scoring cannot run."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Company profile not found for tenant: {tenant_id}")
        self.tenant_id = tenant_id


class OpportunityNotFoundError(ScoringError):
    """The opportunity id does not exist."""

    def __init__(self, opportunity_id: str) -> None:
        super().__init__(f"Opportunity not found: {opportunity_id}")
        self.opportunity_id = opportunity_id


class MatchNotFoundError(ScoringError):
    """No match with that id exists for the tenant."""

    def __init__(self, match_id: str) -> None:
        super().__init__(f"Match not found: {match_id}")
        self.match_id = match_id
