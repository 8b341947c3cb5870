"""Role repository protocol. Governance depends on this; infrastructure implements it."""

from typing import List, Optional, Protocol, Sequence

from access_ledger.domain.models.role import RoleDefinition, RoleStatus


class RoleRepository(Protocol):
    """Roles keyed by slug. Writes are compare-and-swap on ``version``."""

    async def get(self, slug: str) -> Optional[RoleDefinition]:
        ...

    async def get_many(self, slugs: Sequence[str]) -> List[RoleDefinition]:
        """Return the roles that exist among ``slugs``; unknown slugs are skipped."""
        ...

    async def get_by_name(self, name: str) -> Optional[RoleDefinition]:
        """Case-insensitive name lookup."""
        ...

    async def list(self, status: Optional[RoleStatus] = None) -> List[RoleDefinition]:
        ...

    async def add(self, role: RoleDefinition) -> None:
        """Insert a new role. Raises DuplicateRoleError if the slug exists."""
        ...

    async def save(self, role: RoleDefinition, expected_version: int) -> None:
        """Replace the stored role if its version equals expected_version, else StaleRoleVersionError."""
        ...

    async def remove(self, slug: str, expected_version: int) -> None:
        """Delete if the stored version equals expected_version, else StaleRoleVersionError."""
        ...
