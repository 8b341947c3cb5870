"""Role administration API. Guarded by the ``roles`` module permissions."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, Response

from access_ledger.api.dependencies import Services, get_services, require_permission
from access_ledger.domain.models.permission import Verb
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleStatus
from access_ledger.domain.schemas.role import (
    RoleCreateRequest,
    RoleResponse,
    RoleTransitionRequest,
    RoleUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    _caller: Annotated[Principal, Depends(require_permission("roles", Verb.VIEW))],
    services: Annotated[Services, Depends(get_services)],
    status: Optional[RoleStatus] = None,
):
    return [RoleResponse.from_role(role) for role in await services.roles.list(status)]


@router.get("/{slug}", response_model=RoleResponse)
async def get_role(
    slug: str,
    _caller: Annotated[Principal, Depends(require_permission("roles", Verb.VIEW))],
    services: Annotated[Services, Depends(get_services)],
):
    return RoleResponse.from_role(await services.roles.get(slug))


@router.post("", response_model=RoleResponse, status_code=201)
async def create_role(
    body: RoleCreateRequest,
    caller: Annotated[Principal, Depends(require_permission("roles", Verb.CREATE))],
    services: Annotated[Services, Depends(get_services)],
):
    role = await services.roles.create(
        name=body.name,
        slug=body.slug,
        description=body.description,
        permissions=body.permissions,
        activate=body.activate,
        actor=caller,
    )
    return RoleResponse.from_role(role)


@router.patch("/{slug}", response_model=RoleResponse)
async def update_role(
    slug: str,
    body: RoleUpdateRequest,
    caller: Annotated[Principal, Depends(require_permission("roles", Verb.UPDATE))],
    services: Annotated[Services, Depends(get_services)],
):
    role = await services.roles.update(
        slug,
        actor=caller,
        expected_version=body.expected_version,
        name=body.name,
        description=body.description,
        permissions=body.permissions,
    )
    return RoleResponse.from_role(role)


@router.post("/{slug}/activate", response_model=RoleResponse)
async def activate_role(
    slug: str,
    caller: Annotated[Principal, Depends(require_permission("roles", Verb.UPDATE))],
    services: Annotated[Services, Depends(get_services)],
    body: Optional[RoleTransitionRequest] = None,
):
    expected = body.expected_version if body else None
    return RoleResponse.from_role(await services.roles.activate(slug, actor=caller, expected_version=expected))


@router.post("/{slug}/deactivate", response_model=RoleResponse)
async def deactivate_role(
    slug: str,
    caller: Annotated[Principal, Depends(require_permission("roles", Verb.UPDATE))],
    services: Annotated[Services, Depends(get_services)],
    body: Optional[RoleTransitionRequest] = None,
):
    expected = body.expected_version if body else None
    return RoleResponse.from_role(await services.roles.deactivate(slug, actor=caller, expected_version=expected))


@router.delete("/{slug}", status_code=204)
async def delete_role(
    slug: str,
    caller: Annotated[Principal, Depends(require_permission("roles", Verb.DELETE))],
    services: Annotated[Services, Depends(get_services)],
    expected_version: Annotated[Optional[int], Query(ge=1)] = None,
):
    await services.roles.delete(slug, actor=caller, expected_version=expected_version)
    return Response(status_code=204)
