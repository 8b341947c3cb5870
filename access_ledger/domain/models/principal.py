"""Principal: an authenticated actor being authorized."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Principal:
    """
    Resolved identity with role references and per-principal permission data.
    overrides: module -> compact code | verb object | bool (applied last, per verb).
    legacy_permissions: module -> bool | verb object (pre-role flat permissions).
    Never deleted; deactivate instead.
    """

    principal_id: str
    role_slugs: Tuple[str, ...] = ()
    overrides: Mapping[str, Any] = field(default_factory=dict)
    legacy_permissions: Mapping[str, Any] = field(default_factory=dict)
    is_active: bool = True
    tenant_id: Optional[str] = None
    display_role: Optional[str] = None

    @property
    def role_label(self) -> str:
        """Role label recorded on audit entries at the time of the action."""
        if self.display_role:
            return self.display_role
        if self.role_slugs:
            return ",".join(self.role_slugs)
        return "legacy"

    def with_role(self, slug: str) -> "Principal":
        if slug in self.role_slugs:
            return self
        return replace(self, role_slugs=self.role_slugs + (slug,))

    def without_role(self, slug: str) -> "Principal":
        return replace(self, role_slugs=tuple(s for s in self.role_slugs if s != slug))

    def with_override(self, module: str, value: Any) -> "Principal":
        overrides: Dict[str, Any] = dict(self.overrides)
        if value is None:
            overrides.pop(module, None)
        else:
            overrides[module] = value
        return replace(self, overrides=overrides)

    def with_active(self, is_active: bool) -> "Principal":
        return replace(self, is_active=is_active)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principal_id": self.principal_id,
            "role_slugs": list(self.role_slugs),
            "overrides": dict(self.overrides),
            "legacy_permissions": dict(self.legacy_permissions),
            "is_active": self.is_active,
            "tenant_id": self.tenant_id,
        }
