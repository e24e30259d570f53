import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from physiohub.database import get_db
from physiohub.exceptions import ResourceNotFoundError
from physiohub.middleware.tenant import get_auth_service, get_current_tenant, get_current_user, get_optional_user
from physiohub.schemas.auth import LoginRequest, LogoutRequest, RefreshRequest, TokenClaims
from physiohub.schemas.tenant import TenantInfo
from physiohub.services.auth_service import TenantAuthService

# Initialize logger
logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login")
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    auth: TenantAuthService = Depends(get_auth_service),
):
    """Authenticate a user inside one tenant and return an access/refresh token pair."""
    result = await auth.authenticate(payload.email, payload.password, payload.tenant_slug, db)
    return {"success": True, "message": "Authenticated", "data": result.model_dump(by_alias=True)}


@router.post("/refresh")
async def refresh(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    auth: TenantAuthService = Depends(get_auth_service),
):
    tokens = await auth.refresh(payload.refresh_token, payload.tenant_slug, db)
    return {"success": True, "data": tokens.model_dump(by_alias=True)}


@router.post("/validate")
async def validate(request: Request, auth: TenantAuthService = Depends(get_auth_service)):
    """
    Check a token without renewing it.

    Always answers 200; ``data.valid`` carries the verdict. A missing,
    malformed or mistyped body counts as an invalid token.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}
    return {"success": True, "data": auth.validate(body.get("token"), body.get("tenantSlug"))}


@router.post("/logout")
async def logout(payload: LogoutRequest | None = None, user: TokenClaims | None = Depends(get_optional_user)):
    # Tokens are stateless; the client discards them
    if user is not None:
        logger.info("User %s logged out of tenant %s", user.sub, user.tenant_slug)
    return {"success": True, "message": "Logged out"}


@router.get("/me")
async def me(
    tenant: TenantInfo = Depends(get_current_tenant),
    claims: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    auth: TenantAuthService = Depends(get_auth_service),
):
    user = await auth.load_user(claims, db)
    if user is None:
        raise ResourceNotFoundError("User", claims.sub)
    return {
        "success": True,
        "data": {
            "user": {
                "id": user.id,
                "email": user.email,
                "name": user.name,
                "role": user.role,
                "permissions": claims.permissions,
                "hospitalId": claims.hospital_id,
                "serviceId": claims.service_id,
                "lastLoginAt": user.last_login_at.isoformat() if user.last_login_at else None,
            },
            "tenant": {
                "id": tenant.id,
                "name": tenant.name,
                "slug": tenant.slug,
                "status": tenant.status,
                "plan": tenant.plan,
            },
        },
    }
