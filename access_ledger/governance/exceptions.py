"""Governance-layer exceptions. Typed, no HTTP."""


class GovernanceError(Exception):
    """Base for all governance-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuditWriteFailure(GovernanceError):
    """Raised when an audit record could not be appended after bounded retries or timeout."""


class AuditImmutableError(GovernanceError):
    """Raised on any attempt to update or delete an audit record."""


class SequenceConflictError(GovernanceError):
    """Raised by a repository when the chain position being inserted is already taken."""

    def __init__(self, message: str, position: int) -> None:
        self.position = position
        super().__init__(message)


class RoleNotFoundError(GovernanceError):
    """Raised when a role slug does not exist."""


class PrincipalNotFoundError(GovernanceError):
    """Raised when a principal id does not exist."""


class DuplicateRoleError(GovernanceError):
    """Raised when creating a role whose name or slug already exists."""


class SystemRoleImmutableError(GovernanceError):
    """Raised when renaming, re-permissioning or deleting a system role."""


class RoleInUseError(GovernanceError):
    """Raised when editing permissions of, or deleting, a role that principals still reference."""

    def __init__(self, message: str, assignments: int) -> None:
        self.assignments = assignments
        super().__init__(message)
