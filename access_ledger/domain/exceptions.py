"""Domain-specific exceptions. Pure domain layer, no infrastructure."""

from typing import Optional


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when domain validation rules are violated."""


class UnknownVerbError(DomainValidationError):
    """Raised when a verb name is outside view/create/update/delete/export."""


class InvalidRoleTransitionError(DomainError):
    """Raised when a role status transition is not allowed (e.g. draft -> inactive)."""


class ConfigurationError(DomainError):
    """Raised when stored permission data has the wrong type entirely and cannot be decoded."""

    def __init__(self, message: str, module: Optional[str] = None) -> None:
        self.module = module
        super().__init__(message)
