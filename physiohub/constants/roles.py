"""
Role Constants for PhysioHub

Roles a tenant user can hold. Every role here must have an entry in
``physiohub.permissions_config.permissions.ROLE_PERMISSIONS``.
"""

from enum import Enum


class RoleName(str, Enum):
    """Enumeration of tenant role names."""

    COLLABORATOR = "collaborator"
    SERVICE_MANAGER = "service_manager"
    HOSPITAL_ADMIN = "hospital_admin"
    TENANT_ADMIN = "tenant_admin"


# Role given to the first user of a freshly registered tenant
TENANT_OWNER_ROLE = RoleName.TENANT_ADMIN

# Default role for staff invited into a tenant
DEFAULT_ROLE = RoleName.COLLABORATOR

# Role hierarchy (higher number = broader scope)
ROLE_HIERARCHY = {
    RoleName.COLLABORATOR: 1,
    RoleName.SERVICE_MANAGER: 2,
    RoleName.HOSPITAL_ADMIN: 3,
    RoleName.TENANT_ADMIN: 4,
}


def role_rank(role: str) -> int:
    """Hierarchy rank of ``role``; unknown roles rank 0."""
    try:
        return ROLE_HIERARCHY.get(RoleName(role), 0)
    except ValueError:
        return 0


def is_higher_role(role1: str, role2: str) -> bool:
    """
    Check if role1 has a broader scope than role2.

    Args:
        role1: First role name
        role2: Second role name

    Returns:
        bool: True if role1 > role2 in hierarchy
    """
    return role_rank(role1) > role_rank(role2)


def is_at_least(role: str, minimum: RoleName) -> bool:
    """True when ``role`` ranks at or above ``minimum``."""
    return role_rank(role) >= ROLE_HIERARCHY[minimum]
