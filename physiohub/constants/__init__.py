"""Constants package for PhysioHub."""

from .auth import ALGORITHM, BEARER_PREFIX
from .roles import (
    DEFAULT_ROLE,
    ROLE_HIERARCHY,
    TENANT_OWNER_ROLE,
    RoleName,
    is_at_least,
    is_higher_role,
)

__all__ = [
    # Role constants
    "RoleName",
    "DEFAULT_ROLE",
    "TENANT_OWNER_ROLE",
    "ROLE_HIERARCHY",
    "is_at_least",
    "is_higher_role",
    # Auth constants
    "ALGORITHM",
    "BEARER_PREFIX",
]
