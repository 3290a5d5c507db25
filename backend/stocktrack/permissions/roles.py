# Overview: Closed role enumeration and the capabilities each role holds.

from enum import Enum

from .definitions import CAPABILITY_DEFINITIONS


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"


ALL_CAPABILITIES = frozenset(code for code, *_ in CAPABILITY_DEFINITIONS)

DEFAULT_ROLE_CAPABILITIES = {
    Role.ADMIN: ALL_CAPABILITIES - {"CREATE_TRANSFER"},
    Role.MANAGER: frozenset({
        "VIEW_CATALOG",
        "VIEW_INVENTORY",
        "VIEW_TRANSFERS",
        "CREATE_TRANSFER",
        "CANCEL_TRANSFER",
        "VIEW_SALES",
        "CREATE_SALE",
        "CANCEL_SALE",
    }),
    Role.STAFF: frozenset({
        "VIEW_CATALOG",
        "VIEW_INVENTORY",
        "VIEW_SALES",
        "CREATE_SALE",
    }),
}
