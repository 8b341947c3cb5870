"""Pydantic schemas for authorization checks."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CheckRequest(BaseModel):
    principal_id: str = Field(..., min_length=1)
    module: str = Field(..., min_length=1)
    verb: str = Field(..., min_length=1, description="view/create/update/delete/export or a legacy verb name")


class CompositeCheckRequest(BaseModel):
    principal_id: str = Field(..., min_length=1)
    requirements: List[str] = Field(..., min_length=1, description="'module.verb' strings")


class DecisionResponse(BaseModel):
    allowed: bool
    reason: str
    requirement: Optional[str] = None


class PermissionIssueResponse(BaseModel):
    source: str
    module: str
    message: str


class EffectivePermissionsResponse(BaseModel):
    principal_id: str
    is_active: bool
    all_access: bool
    permissions: Dict[str, str] = Field(default_factory=dict, description="module -> compact code")
    issues: List[PermissionIssueResponse] = Field(default_factory=list)
