"""Security-layer exceptions. Typed, no HTTP."""

from typing import Optional


class SecurityError(Exception):
    """Base for all security-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthorizationDenied(SecurityError):
    """Raised when a principal lacks the module.verb an operation requires."""

    def __init__(self, message: str, module: Optional[str] = None, verb: Optional[str] = None) -> None:
        self.module = module
        self.verb = verb
        super().__init__(message)


class PermissionStoreUnavailableError(SecurityError):
    """Raised when role data cannot be read in time. Callers fail closed."""
