"""Pydantic schemas for roles and principals. Permission values accept every historic shape."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleDefinition, RoleStatus

# bool, compact string, verb object or verb list. The domain decoder rejects anything else.
PermissionValue = Any


class RoleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    permissions: Dict[str, PermissionValue] = Field(default_factory=dict)
    activate: bool = False


class RoleUpdateRequest(BaseModel):
    expected_version: int = Field(..., ge=1, description="Version the edit was based on")
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: Optional[Dict[str, PermissionValue]] = None


class RoleTransitionRequest(BaseModel):
    expected_version: Optional[int] = Field(None, ge=1)


class RoleResponse(BaseModel):
    slug: str
    name: str
    description: str
    status: RoleStatus
    is_default: bool
    permissions: Dict[str, str]
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_role(cls, role: RoleDefinition) -> "RoleResponse":
        return cls(
            slug=role.slug,
            name=role.name,
            description=role.description,
            status=role.status,
            is_default=role.is_default,
            permissions=role.compact_permissions(),
            version=role.version,
            created_at=role.created_at,
            updated_at=role.updated_at,
        )


class PrincipalCreateRequest(BaseModel):
    principal_id: str = Field(..., min_length=1)
    role_slugs: List[str] = Field(default_factory=list)
    legacy_permissions: Dict[str, PermissionValue] = Field(default_factory=dict)
    tenant_id: Optional[str] = None
    display_role: Optional[str] = None


class OverrideRequest(BaseModel):
    """Override for one module. ``null`` clears it."""

    value: PermissionValue = None


class PrincipalResponse(BaseModel):
    principal_id: str
    role_slugs: List[str]
    overrides: Dict[str, Any]
    is_active: bool
    tenant_id: Optional[str] = None

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        return cls(
            principal_id=principal.principal_id,
            role_slugs=list(principal.role_slugs),
            overrides=dict(principal.overrides),
            is_active=principal.is_active,
            tenant_id=principal.tenant_id,
        )
