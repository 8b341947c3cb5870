"""Role-change notification port. Best effort: delivery failures never undo the change."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

EXCHANGE_RBAC_EVENTS = "rbac_events"


@dataclass(frozen=True)
class RoleChangeEvent:
    """Published after a role or principal permission change is committed and audited."""

    event_type: str  # e.g. role.created, role.updated, principal.role_assigned
    subject: str  # role slug or principal id
    actor_id: str
    version: Optional[int] = None
    tenant_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def routing_key(self) -> str:
        return self.event_type

    def to_message(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "subject": self.subject,
            "actor_id": self.actor_id,
            "version": self.version,
            "tenant_id": self.tenant_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


class RoleChangeNotifier(Protocol):
    async def notify(self, event: RoleChangeEvent) -> None:
        """Deliver the event. May raise NotificationFailureError."""
        ...


class LoggingRoleChangeNotifier:
    """Used when no broker is configured: logs only."""

    async def notify(self, event: RoleChangeEvent) -> None:
        logger.info("role_change_notification", extra=event.to_message())
