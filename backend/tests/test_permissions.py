"""
Role capability table tests.

Verifies:
- Every capability referenced by the roles is defined
- Admins approve but never originate transfers
- Staff cannot touch stock other than by selling
"""

import pytest

from stocktrack.errors import Forbidden
from stocktrack.permissions import (
    CAPABILITY_DEFINITIONS,
    DEFAULT_ROLE_CAPABILITIES,
    Actor,
    Role,
    get_capability_definition,
    has_capability,
    require_capability,
)


def test_role_capabilities_are_defined():
    codes = {code for code, *_ in CAPABILITY_DEFINITIONS}
    for role, capabilities in DEFAULT_ROLE_CAPABILITIES.items():
        assert capabilities <= codes, role


@pytest.mark.parametrize(
    "role,code,allowed",
    [
        (Role.ADMIN, "APPROVE_TRANSFER", True),
        (Role.ADMIN, "CREATE_TRANSFER", False),
        (Role.ADMIN, "ASSIGN_STOCK", True),
        (Role.MANAGER, "CREATE_TRANSFER", True),
        (Role.MANAGER, "APPROVE_TRANSFER", False),
        (Role.MANAGER, "ADJUST_STOCK", False),
        (Role.MANAGER, "CANCEL_SALE", True),
        (Role.STAFF, "CREATE_SALE", True),
        (Role.STAFF, "CANCEL_SALE", False),
        (Role.STAFF, "VIEW_TRANSFERS", False),
        (Role.STAFF, "MANAGE_CATALOG", False),
    ],
)
def test_capability_table(role, code, allowed):
    assert has_capability(role, code) is allowed


def test_require_capability_raises_forbidden():
    actor = Actor(user_id=1, role=Role.STAFF, warehouse_id=1)

    with pytest.raises(Forbidden) as exc:
        require_capability(actor, "ASSIGN_STOCK")

    assert exc.value.details == {"required_capability": "ASSIGN_STOCK"}


def test_unknown_capability_is_a_programming_error():
    actor = Actor(user_id=1, role=Role.ADMIN)

    with pytest.raises(ValueError):
        require_capability(actor, "LAUNCH_ROCKETS")


def test_capability_definition_lookup():
    definition = get_capability_definition("APPROVE_TRANSFER")

    assert definition["category"] == "TRANSFERS"
    assert get_capability_definition("NOPE") is None
