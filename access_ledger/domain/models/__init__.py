from access_ledger.domain.models.permission import (
    ALL_VERBS,
    READ_VERBS,
    WRITE_VERBS,
    BareBool,
    CompactCode,
    PermissionCode,
    Verb,
    VerbList,
    VerbObject,
    classify,
    decode_permission,
    encode_permissions,
    normalize,
)
from access_ledger.domain.models.principal import Principal
from access_ledger.domain.models.role import RoleDefinition, RoleStatus, slugify

__all__ = [
    "ALL_VERBS",
    "BareBool",
    "CompactCode",
    "PermissionCode",
    "Principal",
    "READ_VERBS",
    "RoleDefinition",
    "RoleStatus",
    "Verb",
    "VerbList",
    "VerbObject",
    "WRITE_VERBS",
    "classify",
    "decode_permission",
    "encode_permissions",
    "normalize",
    "slugify",
]
