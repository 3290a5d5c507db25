# Overview: Role and capability package.
# Re-exports the public API so callers import from stocktrack.permissions.

from .definitions import CAPABILITY_DEFINITIONS, CapabilityCategory
from .roles import Role, DEFAULT_ROLE_CAPABILITIES
from .helpers import (
    Actor,
    has_capability,
    require_capability,
    get_capability_definition,
    validate_capability_code,
)

__all__ = [
    "CAPABILITY_DEFINITIONS",
    "CapabilityCategory",
    "Role",
    "DEFAULT_ROLE_CAPABILITIES",
    "Actor",
    "has_capability",
    "require_capability",
    "get_capability_definition",
    "validate_capability_code",
]
