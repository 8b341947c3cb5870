"""Effective permission resolution. Pure: no I/O, no awaits, no FastAPI."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Set, Tuple

from access_ledger.domain.catalog import LEGACY_MODULE_ALIASES, MODULES
from access_ledger.domain.exceptions import ConfigurationError
from access_ledger.domain.models.permission import ALL_VERBS, PermissionCode, Verb, decode_permission
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionIssue:
    """A stored permission value that could not be decoded. That module grants nothing from ``source``."""

    source: str
    module: str
    message: str


@dataclass(frozen=True)
class EffectivePermissionMap:
    """module -> granted verbs. ``all_access`` is the super-role bypass."""

    modules: Mapping[str, FrozenSet[Verb]] = field(default_factory=dict)
    all_access: bool = False
    issues: Tuple[PermissionIssue, ...] = ()

    def allows(self, module: str, verb: Verb) -> bool:
        if self.all_access:
            return True
        return verb in self.modules.get(module, frozenset())

    def verbs_for(self, module: str) -> FrozenSet[Verb]:
        if self.all_access:
            return ALL_VERBS
        return self.modules.get(module, frozenset())

    def to_compact(self) -> Dict[str, str]:
        """module -> compact code, modules with no verbs omitted."""
        keys = set(self.modules) | (set(MODULES) if self.all_access else set())
        compact = {}
        for module in sorted(keys):
            code = PermissionCode(granted=self.verbs_for(module)).encode()
            if code:
                compact[module] = code
        return compact


class PermissionResolver:
    """
    Merge, in order (later steps win):
      1. super flag -> everything
      2. legacy flat permissions (seed)
      3. union of active roles
      4. principal overrides, authoritative per verb
      5. legacy module aliases, only for current keys that grant nothing and carry no override
    """

    def __init__(
        self,
        *,
        legacy_enabled: bool = True,
        module_aliases: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._legacy_enabled = legacy_enabled
        self._aliases = dict(LEGACY_MODULE_ALIASES if module_aliases is None else module_aliases)

    def resolve(
        self,
        roles: Iterable[RoleDefinition],
        overrides: Mapping[str, Any],
        legacy_permissions: Mapping[str, Any],
        is_super: bool = False,
    ) -> EffectivePermissionMap:
        if is_super:
            return EffectivePermissionMap(
                modules={module: ALL_VERBS for module in MODULES},
                all_access=True,
            )

        verbs: Dict[str, Set[Verb]] = {}
        issues = []

        if self._legacy_enabled and legacy_permissions:
            seeded = []
            for module, value in legacy_permissions.items():
                code = self._decode(value, module, "legacy", issues)
                if code is None:
                    continue
                verbs.setdefault(module, set()).update(code.granted)
                if code.granted:
                    seeded.append(module)
            if seeded:
                logger.warning(
                    "legacy_permission_fallback",
                    extra={"modules": sorted(seeded)},
                )

        for role in roles:
            if not role.is_active:
                continue
            for module, code in role.permissions.items():
                verbs.setdefault(module, set()).update(code.granted)

        overridden = set()
        for module, value in overrides.items():
            code = self._decode(value, module, "override", issues)
            if code is None:
                continue
            overridden.add(module)
            current = verbs.setdefault(module, set())
            current.update(code.granted)
            current.difference_update(code.revoked)

        for legacy_key, current_key in self._aliases.items():
            if verbs.get(legacy_key) and not verbs.get(current_key) and current_key not in overridden:
                verbs[current_key] = set(verbs[legacy_key])

        return EffectivePermissionMap(
            modules={module: frozenset(granted) for module, granted in verbs.items()},
            issues=tuple(issues),
        )

    def resolve_principal(
        self,
        principal: Principal,
        roles: Iterable[RoleDefinition],
        is_super: bool = False,
    ) -> EffectivePermissionMap:
        return self.resolve(roles, principal.overrides, principal.legacy_permissions, is_super)

    @staticmethod
    def _decode(value: Any, module: str, source: str, issues: list) -> Optional[PermissionCode]:
        try:
            return decode_permission(value, module)
        except ConfigurationError as exc:
            issues.append(PermissionIssue(source=source, module=module, message=exc.message))
            logger.error(
                "permission_config_error",
                extra={"source": source, "permission_module": module, "error": exc.message},
            )
            return None
