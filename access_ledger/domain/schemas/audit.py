"""Pydantic schemas for the audit ledger API."""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class AuditEntryRequest(BaseModel):
    """
    Caller-supplied entry. The actor is always the authenticated caller. Action,
    outcome and severity accept legacy vocabulary and are normalized on append.
    """

    action: str = Field(..., min_length=1)
    entity_type: str = Field(..., min_length=1)
    entity_id: Optional[str] = None
    tenant_id: Optional[str] = None
    outcome: Optional[str] = None
    severity: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None

    @field_validator("details", "before", "after")
    @classmethod
    def must_be_json_serializable(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if v is None:
            return v
        try:
            json.dumps(v)
        except (TypeError, ValueError) as e:
            raise ValueError("value must be JSON-serializable") from e
        return v


class AuditRecordResponse(BaseModel):
    position: int
    timestamp: datetime
    actor_id: str
    actor_role: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    tenant_id: Optional[str] = None
    outcome: str
    severity: str
    details: Dict[str, Any] = Field(default_factory=dict)
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    hash: str
    previous_hash: Optional[str] = None


class AuditListResponse(BaseModel):
    items: List[AuditRecordResponse]
    total: int
    limit: int
    offset: int


class BrokenLinkResponse(BaseModel):
    position: int
    expected_previous_hash: Optional[str] = None
    actual_previous_hash: Optional[str] = None


class HashMismatchResponse(BaseModel):
    position: int
    stored_hash: str
    computed_hash: str


class IntegrityReportResponse(BaseModel):
    total_records: int
    intact: bool
    broken_links: List[BrokenLinkResponse] = Field(default_factory=list)
    hash_mismatches: List[HashMismatchResponse] = Field(default_factory=list)
    verified_at: datetime
