"""In-memory principal repository."""

from typing import Dict, List, Optional

from access_ledger.domain.models.principal import Principal


class InMemoryPrincipalRepository:
    """Implements PrincipalRepository."""

    def __init__(self) -> None:
        self._principals: Dict[str, Principal] = {}

    async def get(self, principal_id: str) -> Optional[Principal]:
        return self._principals.get(principal_id)

    async def save(self, principal: Principal) -> None:
        self._principals[principal.principal_id] = principal

    async def discard(self, principal_id: str) -> None:
        self._principals.pop(principal_id, None)

    async def count_with_role(self, slug: str) -> int:
        return sum(1 for p in self._principals.values() if slug in p.role_slugs)

    async def list(self, role_slug: Optional[str] = None) -> List[Principal]:
        principals = [
            p for p in self._principals.values() if role_slug is None or role_slug in p.role_slugs
        ]
        return sorted(principals, key=lambda p: p.principal_id)
