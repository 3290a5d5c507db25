# Overview: Actor context and the single capability check used by services.

from __future__ import annotations

from dataclasses import dataclass

from ..errors import Forbidden
from .definitions import CAPABILITY_DEFINITIONS
from .roles import DEFAULT_ROLE_CAPABILITIES, Role


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a service operation."""
    user_id: int
    role: Role
    warehouse_id: int | None = None

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=Role(user.role), warehouse_id=user.warehouse_id)


def has_capability(role: Role, code: str) -> bool:
    return code in DEFAULT_ROLE_CAPABILITIES.get(Role(role), frozenset())


def require_capability(actor: Actor, code: str) -> None:
    """Raise Forbidden unless the actor's role grants the capability."""
    if not validate_capability_code(code):
        raise ValueError(f"Unknown capability: {code}")
    if not has_capability(actor.role, code):
        raise Forbidden(
            f"Role {actor.role.value} lacks capability {code}",
            details={"required_capability": code},
        )


def get_capability_definition(code):
    """Get full definition for a capability code."""
    for cap in CAPABILITY_DEFINITIONS:
        if cap[0] == code:
            return {
                "code": cap[0],
                "name": cap[1],
                "description": cap[2],
                "category": cap[3],
            }
    return None


def validate_capability_code(code):
    return get_capability_definition(code) is not None
