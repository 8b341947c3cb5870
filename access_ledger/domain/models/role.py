"""Role definitions. Pure business semantics; no ORM or infrastructure."""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from access_ledger.domain.exceptions import DomainValidationError, InvalidRoleTransitionError
from access_ledger.domain.models.permission import PermissionCode, decode_permission


class RoleStatus(str, Enum):
    """Lifecycle: draft -> active <-> inactive."""

    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"


_STATUS_TRANSITIONS: Dict[RoleStatus, FrozenSet[RoleStatus]] = {
    RoleStatus.DRAFT: frozenset({RoleStatus.ACTIVE}),
    RoleStatus.ACTIVE: frozenset({RoleStatus.INACTIVE}),
    RoleStatus.INACTIVE: frozenset({RoleStatus.ACTIVE}),
}

_SLUG_STRIP = re.compile(r"[^a-z0-9_-]")


def slugify(name: str) -> str:
    """'Platform Support' -> 'platform-support'. Raises DomainValidationError if nothing remains."""
    slug = _SLUG_STRIP.sub("", re.sub(r"\s+", "-", name.strip().lower()))
    if not slug:
        raise DomainValidationError(f"Cannot derive a slug from role name '{name}'")
    return slug


def _validate_transition(current: RoleStatus, new: RoleStatus) -> None:
    allowed = _STATUS_TRANSITIONS.get(current, frozenset())
    if new not in allowed:
        raise InvalidRoleTransitionError(
            f"Invalid role status transition from {current.value} to {new.value}"
        )


@dataclass(frozen=True)
class RoleDefinition:
    """
    Named set of per-module permission codes. Immutable; edits produce a new instance
    with version + 1 so repositories can compare-and-swap on ``version``.
    """

    slug: str
    name: str
    permissions: Mapping[str, PermissionCode]
    status: RoleStatus = RoleStatus.DRAFT
    is_default: bool = False
    description: str = ""
    version: int = 1
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == RoleStatus.ACTIVE

    @property
    def is_system(self) -> bool:
        return self.is_default

    @classmethod
    def build(
        cls,
        *,
        name: str,
        permissions: Mapping[str, Any],
        slug: Optional[str] = None,
        description: str = "",
        is_default: bool = False,
        status: RoleStatus = RoleStatus.DRAFT,
        created_by: Optional[str] = None,
    ) -> "RoleDefinition":
        """Create from raw permission data in any historic shape. Raises ConfigurationError."""
        if not name or not name.strip():
            raise DomainValidationError("Role name must not be empty")
        if slug is not None and slugify(slug) != slug:
            raise DomainValidationError(f"Invalid role slug '{slug}'; use lowercase letters, digits, '-' or '_'")
        return cls(
            slug=slug or slugify(name),
            name=name.strip(),
            permissions=decode_permissions(permissions),
            status=status,
            is_default=is_default,
            description=description,
            created_by=created_by,
        )

    def transition_to(self, new_status: RoleStatus, actor: Optional[str] = None) -> "RoleDefinition":
        """Return a copy in ``new_status``. Raises InvalidRoleTransitionError if not allowed."""
        _validate_transition(self.status, new_status)
        return self._next(status=new_status, updated_by=actor)

    def edited(self, actor: Optional[str] = None, **changes: Any) -> "RoleDefinition":
        """Return a copy with name/description/permissions changed and version bumped."""
        return self._next(updated_by=actor, **changes)

    def claimed(self) -> "RoleDefinition":
        """Copy with only ``version`` bumped. Assigning the role claims it so a concurrent
        delete or permission edit loses its compare-and-swap."""
        return replace(self, version=self.version + 1)

    def _next(self, **changes: Any) -> "RoleDefinition":
        return replace(
            self,
            version=self.version + 1,
            updated_at=datetime.now(timezone.utc),
            **changes,
        )

    def compact_permissions(self) -> Dict[str, str]:
        return {module: code.encode() for module, code in self.permissions.items()}

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for audit snapshots and JSON logging."""
        return {
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "is_default": self.is_default,
            "permissions": self.compact_permissions(),
            "version": self.version,
        }


def decode_permissions(permissions: Mapping[str, Any]) -> Dict[str, PermissionCode]:
    """Decode every module entry. Raises ConfigurationError on the first undecodable value."""
    return {module: decode_permission(value, module) for module, value in permissions.items()}
