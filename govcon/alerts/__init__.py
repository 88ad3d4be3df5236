"""Alert rules: evaluation and management."""

from .evaluator import AlertEvaluator, matches_alert, resolve_value
from .exceptions import (
    AlertError,
    AlertNotFoundError,
    DuplicateAlertNameError,
    InvalidAlertError,
)
from .models import AlertCreateRequest, AlertUpdateRequest
from .service import AlertService

__all__ = [
    "matches_alert",
    "resolve_value",
    "AlertEvaluator",
    "AlertService",
    "AlertCreateRequest",
    "AlertUpdateRequest",
    "AlertError",
    "AlertNotFoundError",
    "DuplicateAlertNameError",
    "InvalidAlertError",
]
