from physiohub.constants.roles import RoleName

# Granted to tenant admins; implies every other permission
TENANT_MANAGE = "tenant:manage"

# Role permissions. "resource:*" grants every action on that resource.
ROLE_PERMISSIONS = {
    RoleName.TENANT_ADMIN: [
        TENANT_MANAGE,
        "hospitals:*",
        "services:*",
        "users:*",
        "patients:*",
        "indicators:*",
        "reports:*",
        "settings:*",
    ],
    RoleName.HOSPITAL_ADMIN: [
        "hospitals:read",
        "hospitals:update",
        "services:*",
        "users:create",
        "users:read",
        "users:update",
        "patients:*",
        "indicators:*",
        "reports:read",
    ],
    RoleName.SERVICE_MANAGER: [
        "services:read",
        "users:read",
        "patients:*",
        "indicators:*",
        "reports:read",
    ],
    RoleName.COLLABORATOR: [
        "patients:read",
        "patients:create",
        "patients:update",
        "indicators:create",
        "indicators:read",
        "indicators:update",
    ],
}

_missing = set(RoleName) - set(ROLE_PERMISSIONS)
if _missing:
    raise RuntimeError(f"Roles without a permission set: {sorted(r.value for r in _missing)}")


def get_role_permissions(role: str) -> list:
    """
    Returns the permissions granted to ``role``.

    Raises:
        ValueError: for a role that is not a RoleName
    """
    try:
        role_name = RoleName(role)
    except ValueError:
        raise ValueError(f"Invalid role: {role}")
    return list(ROLE_PERMISSIONS[role_name])


def has_permission(granted: list[str], required: str) -> bool:
    """Exact match, a ``resource:*`` wildcard, or ``tenant:manage``."""
    if TENANT_MANAGE in granted or required in granted:
        return True
    resource = required.split(":", 1)[0]
    return f"{resource}:*" in granted
