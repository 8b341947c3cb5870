"""In-memory role repository with the same compare-and-swap semantics as the DB one."""

from typing import Dict, List, Optional, Sequence

from access_ledger.application.exceptions import StaleRoleVersionError
from access_ledger.domain.models.role import RoleDefinition, RoleStatus
from access_ledger.governance.exceptions import DuplicateRoleError, RoleNotFoundError


class InMemoryRoleRepository:
    """Implements RoleRepository."""

    def __init__(self) -> None:
        self._roles: Dict[str, RoleDefinition] = {}

    async def get(self, slug: str) -> Optional[RoleDefinition]:
        return self._roles.get(slug)

    async def get_many(self, slugs: Sequence[str]) -> List[RoleDefinition]:
        return [self._roles[slug] for slug in slugs if slug in self._roles]

    async def get_by_name(self, name: str) -> Optional[RoleDefinition]:
        wanted = name.strip().lower()
        for role in self._roles.values():
            if role.name.lower() == wanted:
                return role
        return None

    async def list(self, status: Optional[RoleStatus] = None) -> List[RoleDefinition]:
        roles = [r for r in self._roles.values() if status is None or r.status == status]
        return sorted(roles, key=lambda r: (not r.is_default, r.name))

    async def add(self, role: RoleDefinition) -> None:
        if role.slug in self._roles:
            raise DuplicateRoleError(f"Role already exists: {role.slug}")
        self._roles[role.slug] = role

    async def save(self, role: RoleDefinition, expected_version: int) -> None:
        self._check_version(role.slug, expected_version)
        self._roles[role.slug] = role

    async def remove(self, slug: str, expected_version: int) -> None:
        self._check_version(slug, expected_version)
        del self._roles[slug]

    def _check_version(self, slug: str, expected_version: int) -> None:
        current = self._roles.get(slug)
        if current is None:
            raise RoleNotFoundError(f"Role not found: {slug}")
        if current.version != expected_version:
            raise StaleRoleVersionError(
                f"Role {slug} is at version {current.version}, expected {expected_version}",
                expected_version=expected_version,
                actual_version=current.version,
            )
