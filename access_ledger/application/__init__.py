# Application layer: ports that governance depends on and infrastructure implements.

from access_ledger.application.exceptions import (
    ApplicationError,
    NotificationFailureError,
    StaleRoleVersionError,
)
from access_ledger.application.notifier import (
    LoggingRoleChangeNotifier,
    RoleChangeEvent,
    RoleChangeNotifier,
)
from access_ledger.application.principal_repository import PrincipalRepository
from access_ledger.application.role_repository import RoleRepository

__all__ = [
    "ApplicationError",
    "LoggingRoleChangeNotifier",
    "NotificationFailureError",
    "PrincipalRepository",
    "RoleChangeEvent",
    "RoleChangeNotifier",
    "RoleRepository",
    "StaleRoleVersionError",
]
