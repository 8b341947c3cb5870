"""Permission codes: the five verbs, the compact r/c/u/d/e string and its historic shapes.

Stored permission data comes in several shapes for the same logical field:

    "rcu"                                   compact code
    {"view": True, "create": False}         verb object (legacy booleans)
    ["read", "create"]                      verb list (legacy role actions)
    True / False                            bare boolean (grant / revoke everything)

``classify`` turns a raw value into one tagged variant and ``normalize`` is the
only place that branches on the variant. Everything downstream works with
``PermissionCode``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from access_ledger.domain.exceptions import ConfigurationError, UnknownVerbError


class Verb(str, Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"

    @property
    def code(self) -> str:
        return _VERB_TO_CODE[self]

    @classmethod
    def parse(cls, value: Union["Verb", str]) -> "Verb":
        """Accept a Verb, a current verb name or a legacy verb name. Raises UnknownVerbError."""
        if isinstance(value, Verb):
            return value
        verb = _lookup_verb_name(value) if isinstance(value, str) else None
        if verb is None:
            raise UnknownVerbError(f"Unknown verb '{value}'")
        return verb


_VERB_TO_CODE: Dict[Verb, str] = {
    Verb.VIEW: "r",
    Verb.CREATE: "c",
    Verb.UPDATE: "u",
    Verb.DELETE: "d",
    Verb.EXPORT: "e",
}
_CODE_TO_VERB: Dict[str, Verb] = {code: verb for verb, code in _VERB_TO_CODE.items()}

# Verb names used by older role documents.
LEGACY_VERB_NAMES: Dict[str, Verb] = {
    "read": Verb.VIEW,
    "edit": Verb.UPDATE,
    "remove": Verb.DELETE,
    "download": Verb.EXPORT,
}

ALL_VERBS: FrozenSet[Verb] = frozenset(Verb)
READ_VERBS: FrozenSet[Verb] = frozenset({Verb.VIEW})
WRITE_VERBS: FrozenSet[Verb] = frozenset({Verb.CREATE, Verb.UPDATE, Verb.DELETE, Verb.EXPORT})


def _lookup_verb_name(name: str) -> Optional[Verb]:
    key = name.strip().lower()
    try:
        return Verb(key)
    except ValueError:
        return LEGACY_VERB_NAMES.get(key)


# ---------------------------------------------------------------------------
# Tagged union at the decode boundary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompactCode:
    code: str

    @property
    def unknown_characters(self) -> str:
        return "".join(ch for ch in self.code if ch not in _CODE_TO_VERB)


@dataclass(frozen=True)
class VerbObject:
    verbs: Mapping[str, Any]


@dataclass(frozen=True)
class VerbList:
    names: Tuple[Any, ...]


@dataclass(frozen=True)
class BareBool:
    value: bool


RawPermission = Union[CompactCode, VerbObject, VerbList, BareBool]


@dataclass(frozen=True)
class PermissionCode:
    """
    Canonical decoded permission for one module.
    granted: verbs present / marked true. revoked: verbs explicitly marked false.
    Only overrides give ``revoked`` any meaning.
    """

    granted: FrozenSet[Verb] = field(default_factory=frozenset)
    revoked: FrozenSet[Verb] = field(default_factory=frozenset)

    def encode(self) -> str:
        """Compact storage form in canonical r/c/u/d/e order."""
        return "".join(verb.code for verb in Verb if verb in self.granted)

    def __contains__(self, verb: object) -> bool:
        return verb in self.granted


def classify(value: Any, module: Optional[str] = None) -> RawPermission:
    """Tag a raw stored value. Raises ConfigurationError for a wrong type entirely."""
    if isinstance(value, bool):
        return BareBool(value)
    if value is None:
        return CompactCode("")
    if isinstance(value, str):
        return CompactCode(value)
    if isinstance(value, Mapping):
        return VerbObject(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return VerbList(tuple(value))
    raise ConfigurationError(
        f"Cannot decode permission for module '{module}': unsupported type {type(value).__name__}",
        module=module,
    )


def normalize(raw: RawPermission) -> PermissionCode:
    """Single normalization point for every historic shape.

    Unknown code characters, unknown verb names and non-boolean flag values are
    ignored rather than rejected; legacy data contains all three.
    """
    if isinstance(raw, BareBool):
        if raw.value:
            return PermissionCode(granted=ALL_VERBS)
        return PermissionCode(revoked=ALL_VERBS)
    if isinstance(raw, CompactCode):
        return PermissionCode(
            granted=frozenset(_CODE_TO_VERB[ch] for ch in raw.code if ch in _CODE_TO_VERB)
        )
    if isinstance(raw, VerbList):
        granted = set()
        for name in raw.names:
            verb = _lookup_verb_name(name) if isinstance(name, str) else None
            if verb is not None:
                granted.add(verb)
        return PermissionCode(granted=frozenset(granted))
    granted = set()
    revoked = set()
    for name, flag in raw.verbs.items():
        verb = _lookup_verb_name(name) if isinstance(name, str) else None
        if verb is None or not isinstance(flag, bool):
            continue
        if flag:
            granted.add(verb)
            revoked.discard(verb)
        elif verb not in granted:
            revoked.add(verb)
    return PermissionCode(granted=frozenset(granted), revoked=frozenset(revoked))


def decode_permission(value: Any, module: Optional[str] = None) -> PermissionCode:
    return normalize(classify(value, module))


def encode_permissions(permissions: Mapping[str, Any]) -> Dict[str, str]:
    """Convert any mix of historic shapes to compact storage strings. Raises ConfigurationError."""
    return {module: decode_permission(value, module).encode() for module, value in permissions.items()}
