"""Principal administration API: role assignment, overrides, deactivation."""

from typing import Annotated

from fastapi import APIRouter, Depends

from access_ledger.api.dependencies import Services, get_services, require_permission
from access_ledger.domain.models.permission import Verb
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.schemas.role import OverrideRequest, PrincipalCreateRequest, PrincipalResponse

router = APIRouter()

CanView = Annotated[Principal, Depends(require_permission("roles", Verb.VIEW))]
CanUpdate = Annotated[Principal, Depends(require_permission("roles", Verb.UPDATE))]


@router.get("/{principal_id}", response_model=PrincipalResponse)
async def get_principal(
    principal_id: str,
    _caller: CanView,
    services: Annotated[Services, Depends(get_services)],
):
    return PrincipalResponse.from_principal(await services.principals.get(principal_id))


@router.post("", response_model=PrincipalResponse, status_code=201)
async def register_principal(
    body: PrincipalCreateRequest,
    caller: CanUpdate,
    services: Annotated[Services, Depends(get_services)],
):
    principal = await services.principals.register(
        body.principal_id,
        actor=caller,
        role_slugs=body.role_slugs,
        legacy_permissions=body.legacy_permissions,
        tenant_id=body.tenant_id,
        display_role=body.display_role,
    )
    return PrincipalResponse.from_principal(principal)


@router.put("/{principal_id}/roles/{slug}", response_model=PrincipalResponse)
async def assign_role(
    principal_id: str,
    slug: str,
    caller: CanUpdate,
    services: Annotated[Services, Depends(get_services)],
):
    return PrincipalResponse.from_principal(await services.principals.assign_role(principal_id, slug, actor=caller))


@router.delete("/{principal_id}/roles/{slug}", response_model=PrincipalResponse)
async def revoke_role(
    principal_id: str,
    slug: str,
    caller: CanUpdate,
    services: Annotated[Services, Depends(get_services)],
):
    return PrincipalResponse.from_principal(await services.principals.revoke_role(principal_id, slug, actor=caller))


@router.put("/{principal_id}/overrides/{module}", response_model=PrincipalResponse)
async def set_override(
    principal_id: str,
    module: str,
    body: OverrideRequest,
    caller: CanUpdate,
    services: Annotated[Services, Depends(get_services)],
):
    principal = await services.principals.set_override(principal_id, module, body.value, actor=caller)
    return PrincipalResponse.from_principal(principal)


@router.delete("/{principal_id}/overrides/{module}", response_model=PrincipalResponse)
async def clear_override(
    principal_id: str,
    module: str,
    caller: CanUpdate,
    services: Annotated[Services, Depends(get_services)],
):
    principal = await services.principals.set_override(principal_id, module, None, actor=caller)
    return PrincipalResponse.from_principal(principal)


@router.post("/{principal_id}/deactivate", response_model=PrincipalResponse)
async def deactivate_principal(
    principal_id: str,
    caller: CanUpdate,
    services: Annotated[Services, Depends(get_services)],
):
    return PrincipalResponse.from_principal(await services.principals.deactivate(principal_id, actor=caller))


@router.post("/{principal_id}/reactivate", response_model=PrincipalResponse)
async def reactivate_principal(
    principal_id: str,
    caller: CanUpdate,
    services: Annotated[Services, Depends(get_services)],
):
    return PrincipalResponse.from_principal(await services.principals.reactivate(principal_id, actor=caller))
