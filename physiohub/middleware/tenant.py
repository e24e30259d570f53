"""
Tenant request dependencies.

The per-request state machine is expressed as nested FastAPI dependencies,
so no stage can run before the one it depends on:

    get_current_tenant      Unresolved    -> TenantResolved
    get_current_user        TenantResolved -> Authenticated
    require_*               Authenticated -> Authorized

Resolution is a dependency rather than an HTTP middleware because the
``{tenantSlug}`` path parameter only exists once routing has matched.

Routes put authorization checks in the decorator's ``dependencies`` list so
they run before ``get_tenant_session`` opens a schema-scoped connection.
"""

import logging
from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from physiohub.constants.auth import BEARER_PREFIX
from physiohub.constants.roles import RoleName
from physiohub.database import get_db, get_tenant_database
from physiohub.exceptions import (
    CrossTenantTokenError,
    PermissionDeniedError,
    PhysioHubError,
    TokenMissingError,
    ValidationError,
)
from physiohub.permissions_config.permissions import has_permission
from physiohub.schemas.auth import TokenClaims
from physiohub.schemas.tenant import TenantInfo
from physiohub.services.auth_service import TenantAuthService
from physiohub.tenancy.resolver import TenantResolver

logger = logging.getLogger(__name__)

tenant_resolver = TenantResolver()

# Roles allowed into every service of their tenant
_SERVICE_WIDE_ROLES = frozenset(
    {RoleName.TENANT_ADMIN.value, RoleName.HOSPITAL_ADMIN.value, RoleName.SERVICE_MANAGER.value}
)


def get_auth_service(request: Request) -> TenantAuthService:
    return request.app.state.auth_service


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    return header[len(BEARER_PREFIX) :].strip() or None


async def get_current_tenant(request: Request, db: AsyncSession = Depends(get_db)) -> TenantInfo:
    """Resolve the request's tenant or fail with 400/403/404."""
    tenant = await tenant_resolver.resolve(request, db)
    request.state.tenant = tenant
    return tenant


async def get_optional_tenant(request: Request, db: AsyncSession = Depends(get_db)) -> TenantInfo | None:
    """Resolve the tenant if the request names one."""
    tenant = await tenant_resolver.resolve_optional(request, db)
    request.state.tenant = tenant
    return tenant


async def get_current_user(
    request: Request,
    tenant: TenantInfo = Depends(get_current_tenant),
    auth: TenantAuthService = Depends(get_auth_service),
) -> TokenClaims:
    """
    Verify the bearer token against the resolved tenant.

    The token must have been issued for this tenant's slug *and* id; a valid
    token of another tenant is rejected, never re-scoped.
    """
    token = _bearer_token(request)
    if token is None:
        raise TokenMissingError()

    claims = auth.verify(token, expected_tenant_slug=tenant.slug)
    if claims.tenant_id != tenant.id:
        logger.warning("Token of tenant %s presented to tenant %s", claims.tenant_id, tenant.id)
        raise CrossTenantTokenError()

    request.state.user = claims
    return claims


async def get_optional_user(
    request: Request,
    tenant: TenantInfo | None = Depends(get_optional_tenant),
    auth: TenantAuthService = Depends(get_auth_service),
) -> TokenClaims | None:
    """Authenticated user if a valid token for the tenant is present, else None."""
    token = _bearer_token(request)
    if tenant is None or token is None:
        return None
    try:
        claims = auth.verify(token, expected_tenant_slug=tenant.slug)
    except PhysioHubError as e:
        logger.debug("Ignoring unusable token on optional-auth route: %s", e.error_code.value)
        return None
    if claims.tenant_id != tenant.id:
        return None
    request.state.user = claims
    return claims


def require_permission(permission: str):
    async def checker(user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        if has_permission(user.permissions, permission):
            return user
        logger.warning("Permission '%s' denied for user %s (role %s)", permission, user.sub, user.role)
        raise PermissionDeniedError(required_permission=permission)

    return checker


def require_any_permission(*permissions: str):
    async def checker(user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        if any(has_permission(user.permissions, p) for p in permissions):
            return user
        raise PermissionDeniedError(details={"required_any": list(permissions)})

    return checker


def require_role(*roles: str | RoleName):
    allowed = {r.value if isinstance(r, RoleName) else r for r in roles}

    async def checker(user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        if user.role in allowed:
            return user
        raise PermissionDeniedError(
            message=f"Role '{user.role}' does not have access to this resource",
            details={"required_roles": sorted(allowed)},
        )

    return checker


def require_hospital_access(param: str = "hospitalId"):
    """Tenant admins reach every hospital; everyone else only their own."""

    async def checker(request: Request, user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        requested = request.path_params.get(param)
        if not requested:
            raise ValidationError(f"Parameter {param} is required", field=param)
        if user.role == RoleName.TENANT_ADMIN.value or user.hospital_id == requested:
            return user
        raise PermissionDeniedError(message="Access to this hospital denied", details={"hospital_id": requested})

    return checker


def require_service_access(param: str = "serviceId"):
    """Managers and admins reach every service; collaborators only their own."""

    async def checker(request: Request, user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        requested = request.path_params.get(param)
        if not requested:
            raise ValidationError(f"Parameter {param} is required", field=param)
        if user.role in _SERVICE_WIDE_ROLES or user.service_id == requested:
            return user
        raise PermissionDeniedError(message="Access to this service denied", details={"service_id": requested})

    return checker


async def get_tenant_session(
    request: Request,
    tenant: TenantInfo = Depends(get_current_tenant),
    user: TokenClaims = Depends(get_current_user),
) -> AsyncGenerator[AsyncSession, None]:
    """Session whose connection is switched to the tenant's schema for the request."""
    database = get_tenant_database(request)
    async with database.tenant_session(tenant.schema) as session:
        yield session
