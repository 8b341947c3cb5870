"""Authorization API: effective permissions and allow/deny checks."""

from typing import Annotated

from fastapi import APIRouter, Depends

from access_ledger.api.dependencies import Services, get_active_caller, get_gate, get_services, require_permission
from access_ledger.domain.models.permission import Verb
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.schemas.authz import (
    CheckRequest,
    CompositeCheckRequest,
    DecisionResponse,
    EffectivePermissionsResponse,
    PermissionIssueResponse,
)
from access_ledger.security.authorization_gate import AuthorizationGate, Decision

router = APIRouter()


def _decision_response(decision: Decision) -> DecisionResponse:
    return DecisionResponse(allowed=decision.allowed, reason=decision.reason, requirement=decision.requirement)


@router.get("/principals/{principal_id}/permissions", response_model=EffectivePermissionsResponse)
async def effective_permissions(
    principal_id: str,
    _caller: Annotated[Principal, Depends(require_permission("roles", Verb.VIEW))],
    services: Annotated[Services, Depends(get_services)],
    gate: Annotated[AuthorizationGate, Depends(get_gate)],
):
    target = await services.principals.get(principal_id)
    resolved = await gate.resolve(target)
    return EffectivePermissionsResponse(
        principal_id=target.principal_id,
        is_active=target.is_active,
        all_access=resolved.all_access,
        permissions=resolved.to_compact(),
        issues=[
            PermissionIssueResponse(source=i.source, module=i.module, message=i.message)
            for i in resolved.issues
        ],
    )


@router.post("/check", response_model=DecisionResponse)
async def check(
    body: CheckRequest,
    _caller: Annotated[Principal, Depends(get_active_caller)],
    services: Annotated[Services, Depends(get_services)],
    gate: Annotated[AuthorizationGate, Depends(get_gate)],
):
    target = await services.principals.get(body.principal_id)
    return _decision_response(await gate.check(target, body.module, body.verb))


@router.post("/check-any", response_model=DecisionResponse)
async def check_any(
    body: CompositeCheckRequest,
    _caller: Annotated[Principal, Depends(get_active_caller)],
    services: Annotated[Services, Depends(get_services)],
    gate: Annotated[AuthorizationGate, Depends(get_gate)],
):
    target = await services.principals.get(body.principal_id)
    return _decision_response(await gate.check_any(target, body.requirements))


@router.post("/check-all", response_model=DecisionResponse)
async def check_all(
    body: CompositeCheckRequest,
    _caller: Annotated[Principal, Depends(get_active_caller)],
    services: Annotated[Services, Depends(get_services)],
    gate: Annotated[AuthorizationGate, Depends(get_gate)],
):
    target = await services.principals.get(body.principal_id)
    return _decision_response(await gate.check_all(target, body.requirements))
