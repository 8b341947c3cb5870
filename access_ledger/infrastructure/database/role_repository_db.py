"""DB-backed role repository (roles table). Optimistic concurrency on ``version``."""

import logging
from datetime import timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from access_ledger.application.exceptions import StaleRoleVersionError
from access_ledger.domain.exceptions import ConfigurationError
from access_ledger.domain.models.permission import PermissionCode, decode_permission
from access_ledger.domain.models.role import RoleDefinition, RoleStatus
from access_ledger.governance.exceptions import DuplicateRoleError, RoleNotFoundError
from access_ledger.infrastructure.database.models import RoleRow

logger = logging.getLogger(__name__)


def decode_stored_permissions(slug: str, stored: Mapping[str, Any]) -> Dict[str, PermissionCode]:
    """Rows written by older versions may hold any shape. Undecodable modules grant nothing."""
    decoded = {}
    for module, value in (stored or {}).items():
        try:
            decoded[module] = decode_permission(value, module)
        except ConfigurationError as exc:
            logger.error(
                "permission_config_error",
                extra={"source": f"role:{slug}", "permission_module": module, "error": exc.message},
            )
    return decoded


def _utc(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_role(row: RoleRow) -> RoleDefinition:
    return RoleDefinition(
        slug=row.slug,
        name=row.name,
        description=row.description or "",
        status=RoleStatus(row.status),
        is_default=row.is_default,
        permissions=decode_stored_permissions(row.slug, row.permissions),
        version=row.version,
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
        created_by=row.created_by,
        updated_by=row.updated_by,
    )


def _values(role: RoleDefinition) -> Dict[str, Any]:
    return {
        "name": role.name,
        "description": role.description,
        "status": role.status.value,
        "is_default": role.is_default,
        "permissions": role.compact_permissions(),
        "version": role.version,
        "updated_at": role.updated_at,
        "updated_by": role.updated_by,
    }


class DbRoleRepository:
    """Implements RoleRepository."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._sessions = session_factory

    async def get(self, slug: str) -> Optional[RoleDefinition]:
        async with self._sessions() as session:
            row = await session.get(RoleRow, slug)
            return _to_role(row) if row is not None else None

    async def get_many(self, slugs: Sequence[str]) -> List[RoleDefinition]:
        if not slugs:
            return []
        async with self._sessions() as session:
            rows = (await session.execute(select(RoleRow).where(RoleRow.slug.in_(list(slugs))))).scalars().all()
            return [_to_role(row) for row in rows]

    async def get_by_name(self, name: str) -> Optional[RoleDefinition]:
        async with self._sessions() as session:
            stmt = select(RoleRow).where(func.lower(RoleRow.name) == name.strip().lower())
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _to_role(row) if row is not None else None

    async def list(self, status: Optional[RoleStatus] = None) -> List[RoleDefinition]:
        async with self._sessions() as session:
            stmt = select(RoleRow).order_by(RoleRow.is_default.desc(), RoleRow.name)
            if status is not None:
                stmt = stmt.where(RoleRow.status == status.value)
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_role(row) for row in rows]

    async def add(self, role: RoleDefinition) -> None:
        async with self._sessions() as session:
            session.add(
                RoleRow(
                    slug=role.slug,
                    created_at=role.created_at,
                    created_by=role.created_by,
                    **_values(role),
                )
            )
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateRoleError(f"Role already exists: {role.slug}") from exc

    async def save(self, role: RoleDefinition, expected_version: int) -> None:
        async with self._sessions() as session:
            stmt = (
                update(RoleRow)
                .where(RoleRow.slug == role.slug, RoleRow.version == expected_version)
                .values(**_values(role))
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                await self._raise_conflict(role.slug, expected_version)
            await session.commit()

    async def remove(self, slug: str, expected_version: int) -> None:
        async with self._sessions() as session:
            stmt = delete(RoleRow).where(RoleRow.slug == slug, RoleRow.version == expected_version)
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                await self._raise_conflict(slug, expected_version)
            await session.commit()

    async def _raise_conflict(self, slug: str, expected_version: int) -> None:
        current = await self.get(slug)
        if current is None:
            raise RoleNotFoundError(f"Role not found: {slug}")
        raise StaleRoleVersionError(
            f"Role {slug} is at version {current.version}, expected {expected_version}",
            expected_version=expected_version,
            actual_version=current.version,
        )
