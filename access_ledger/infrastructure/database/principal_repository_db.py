"""DB-backed principal repository (principals table). Delete only to undo an unaudited registration."""

from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from access_ledger.domain.models.principal import Principal
from access_ledger.infrastructure.database.models import PrincipalRow


def _to_principal(row: PrincipalRow) -> Principal:
    return Principal(
        principal_id=row.principal_id,
        role_slugs=tuple(row.role_slugs or ()),
        overrides=dict(row.overrides or {}),
        legacy_permissions=dict(row.legacy_permissions or {}),
        is_active=row.is_active,
        tenant_id=row.tenant_id,
        display_role=row.display_role,
    )


class DbPrincipalRepository:
    """Implements PrincipalRepository."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._sessions = session_factory

    async def get(self, principal_id: str) -> Optional[Principal]:
        async with self._sessions() as session:
            row = await session.get(PrincipalRow, principal_id)
            return _to_principal(row) if row is not None else None

    async def save(self, principal: Principal) -> None:
        async with self._sessions() as session:
            await session.merge(
                PrincipalRow(
                    principal_id=principal.principal_id,
                    role_slugs=list(principal.role_slugs),
                    overrides=dict(principal.overrides),
                    legacy_permissions=dict(principal.legacy_permissions),
                    is_active=principal.is_active,
                    tenant_id=principal.tenant_id,
                    display_role=principal.display_role,
                )
            )
            await session.commit()

    async def discard(self, principal_id: str) -> None:
        async with self._sessions() as session:
            await session.execute(delete(PrincipalRow).where(PrincipalRow.principal_id == principal_id))
            await session.commit()

    async def count_with_role(self, slug: str) -> int:
        async with self._sessions() as session:
            stmt = select(func.count()).select_from(PrincipalRow).where(PrincipalRow.role_slugs.any(slug))
            return int((await session.execute(stmt)).scalar_one())

    async def list(self, role_slug: Optional[str] = None) -> List[Principal]:
        async with self._sessions() as session:
            stmt = select(PrincipalRow).order_by(PrincipalRow.principal_id)
            if role_slug is not None:
                stmt = stmt.where(PrincipalRow.role_slugs.any(role_slug))
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_principal(row) for row in rows]
