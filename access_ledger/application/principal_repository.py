"""Principal repository protocol. Principals are deactivated, never deleted."""

from typing import List, Optional, Protocol

from access_ledger.domain.models.principal import Principal


class PrincipalRepository(Protocol):
    async def get(self, principal_id: str) -> Optional[Principal]:
        ...

    async def save(self, principal: Principal) -> None:
        """Insert or replace by principal_id."""
        ...

    async def count_with_role(self, slug: str) -> int:
        """Number of principals (active or not) that reference ``slug``."""
        ...

    async def discard(self, principal_id: str) -> None:
        """Remove a principal that was never committed. No-op if absent."""
        ...

    async def list(self, role_slug: Optional[str] = None) -> List[Principal]:
        ...
