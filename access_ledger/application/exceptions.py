"""Application-layer exceptions. Do not reuse domain exceptions."""


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class StaleRoleVersionError(ApplicationError):
    """Raised when a role write's expected version no longer matches the stored version."""

    def __init__(self, message: str, expected_version: int, actual_version: int | None) -> None:
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(message)


class NotificationFailureError(ApplicationError):
    """Raised by a notifier when a role-change event could not be delivered."""
