"""Exceptions raised by alert management."""


class AlertError(Exception):
    """Base exception for alert errors caused by the caller's input."""

    pass


class AlertNotFoundError(AlertError):
    """No alert with that id belongs to the user."""

    def __init__(self, alert_id: str) -> None:
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id


class DuplicateAlertNameError(AlertError):
    """The user already has another alert with this name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Alert with name '{name}' already exists")
        self.name = name


class InvalidAlertError(AlertError):
    """Alert fields are inconsistent, e.g. min_value above max_value."""

    pass
