"""
Tenant-scoped authentication.

Tokens are bound to one tenant: the ``aud`` claim carries the tenant slug and
``tenant_id`` its id, and both are checked on every verification. Access and
refresh tokens use different secrets and issuers, so one can never be
replayed as the other.
"""

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from physiohub.auth import dummy_verify, verify_password
from physiohub.config import Settings, settings
from physiohub.constants.auth import ALGORITHM, REQUIRED_ACCESS_CLAIMS, REQUIRED_REFRESH_CLAIMS
from physiohub.exceptions import (
    CrossTenantTokenError,
    ErrorCode,
    InvalidCredentialsError,
    InvalidTokenError,
    PhysioHubError,
    TenantNotFoundError,
    TokenExpiredError,
    TokenMissingError,
)
from physiohub.models.tenant import Tenant
from physiohub.models.user import GlobalUser
from physiohub.permissions_config.permissions import get_role_permissions
from physiohub.schemas.auth import AuthResult, TokenClaims, TokenPair, UserInfo
from physiohub.schemas.tenant import TenantPublicInfo
from physiohub.services.tenant_service import get_tenant_by_slug
from physiohub.tenancy.schema_client import TenantDatabase
from physiohub.utils.background import spawn

logger = logging.getLogger(__name__)

_STAFF_PROFILE = text("SELECT hospital_id, service_id FROM users WHERE global_user_id = :global_user_id")


class TenantAuthService:
    """Issues and verifies tenant-bound JWTs."""

    def __init__(self, database: TenantDatabase, config: Settings = settings):
        self.database = database
        self.config = config

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def authenticate(self, email: str, password: str, tenant_slug: str, db: AsyncSession) -> AuthResult:
        """
        Authenticate a user of the given tenant.

        An unknown email, an inactive user and a wrong password produce the
        same error, and all three cost one bcrypt verification.

        Raises:
            TenantNotFoundError: tenant unknown or not accessible
            InvalidCredentialsError: credentials rejected
        """
        tenant = await get_tenant_by_slug(tenant_slug, db)
        if tenant is None or not tenant.is_accessible:
            raise TenantNotFoundError(tenant_slug)

        result = await db.execute(
            select(GlobalUser).where(GlobalUser.tenant_id == tenant.id, GlobalUser.email == email.strip().lower())
        )
        user = result.scalars().first()

        if user is None or not user.is_active:
            dummy_verify(password)
            logger.warning("Login rejected for tenant %s: unknown or inactive user", tenant.slug)
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            logger.warning("Login rejected for tenant %s: wrong password (user %s)", tenant.slug, user.id)
            raise InvalidCredentialsError()

        permissions = get_role_permissions(user.role)
        hospital_id, service_id = await self._load_staff_profile(tenant.schema, user.id)
        tokens = self.issue_tokens(user, tenant, permissions, hospital_id, service_id)

        spawn(self._touch_last_login(user.id), f"last_login_at for user {user.id}")
        logger.info("User %s logged into tenant %s", user.id, tenant.slug)

        return AuthResult(
            token=tokens.token,
            refresh_token=tokens.refresh_token,
            user=UserInfo(
                id=user.id,
                email=user.email,
                name=user.name,
                role=user.role,
                permissions=permissions,
                hospital_id=hospital_id,
                service_id=service_id,
            ),
            tenant=TenantPublicInfo(
                id=tenant.id, name=tenant.name, slug=tenant.slug, status=tenant.status, plan=tenant.plan
            ),
        )

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_tokens(
        self,
        user: GlobalUser,
        tenant: Tenant,
        permissions: list[str],
        hospital_id: str | None = None,
        service_id: str | None = None,
    ) -> TokenPair:
        now = datetime.now(timezone.utc)
        access_claims = {
            "sub": user.id,
            "tenant_id": tenant.id,
            "tenant_slug": tenant.slug,
            "email": user.email,
            "role": user.role,
            "permissions": permissions,
            "aud": tenant.slug,
            "iss": self.config.jwt_issuer,
            "iat": now,
            "exp": now + timedelta(hours=self.config.access_token_expire_hours),
        }
        if hospital_id:
            access_claims["hospital_id"] = hospital_id
        if service_id:
            access_claims["service_id"] = service_id

        refresh_claims = {
            "sub": user.id,
            "tenant_id": tenant.id,
            "aud": tenant.slug,
            "iss": self.config.refresh_issuer,
            "iat": now,
            "exp": now + timedelta(days=self.config.refresh_token_expire_days),
        }
        return TokenPair(
            token=jwt.encode(access_claims, self.config.secret_key, algorithm=ALGORITHM),
            refresh_token=jwt.encode(refresh_claims, self.config.refresh_secret_key, algorithm=ALGORITHM),
        )

    def _decode(
        self,
        token: str | None,
        secret: str,
        issuer: str,
        required: tuple[str, ...],
        expected_tenant_slug: str | None,
    ) -> dict:
        if not token:
            raise TokenMissingError()
        try:
            # Audience is compared below so a mismatch gets its own error code
            payload = jwt.decode(token, secret, algorithms=[ALGORITHM], issuer=issuer, options={"verify_aud": False})
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.debug("JWT rejected: %s", e)
            raise InvalidTokenError()

        missing = [claim for claim in required if claim not in payload]
        if missing:
            logger.debug("JWT missing claims: %s", missing)
            raise InvalidTokenError()

        if expected_tenant_slug is not None:
            audience = payload["aud"]
            audiences = audience if isinstance(audience, list) else [audience]
            if expected_tenant_slug not in audiences:
                logger.warning("Token for tenant %s presented to tenant %s", audience, expected_tenant_slug)
                raise CrossTenantTokenError()
        return payload

    def verify(self, token: str | None, expected_tenant_slug: str | None = None) -> TokenClaims:
        """
        Verify an access token.

        Raises:
            TokenMissingError, TokenExpiredError, InvalidTokenError,
            CrossTenantTokenError
        """
        payload = self._decode(
            token, self.config.secret_key, self.config.jwt_issuer, REQUIRED_ACCESS_CLAIMS, expected_tenant_slug
        )
        try:
            return TokenClaims(**payload)
        except PydanticValidationError:
            raise InvalidTokenError()

    async def refresh(self, refresh_token: str, tenant_slug: str, db: AsyncSession) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        User and tenant are reloaded so that deactivation, suspension and
        role changes take effect at the next refresh.
        """
        tenant = await get_tenant_by_slug(tenant_slug, db)
        if tenant is None:
            raise InvalidTokenError("Refresh token is no longer valid")

        payload = self._decode(
            refresh_token,
            self.config.refresh_secret_key,
            self.config.refresh_issuer,
            REQUIRED_REFRESH_CLAIMS,
            tenant.slug,
        )
        if payload["tenant_id"] != tenant.id:
            raise CrossTenantTokenError()

        if not tenant.is_accessible:
            logger.info("Refresh refused: tenant %s is %s", tenant.slug, tenant.status)
            raise InvalidTokenError("Refresh token is no longer valid")

        result = await db.execute(
            select(GlobalUser).where(GlobalUser.id == payload["sub"], GlobalUser.tenant_id == tenant.id)
        )
        user = result.scalars().first()
        if user is None or not user.is_active:
            logger.info("Refresh refused: user %s missing or deactivated", payload["sub"])
            raise InvalidTokenError("Refresh token is no longer valid")

        permissions = get_role_permissions(user.role)
        hospital_id, service_id = await self._load_staff_profile(tenant.schema, user.id)
        return self.issue_tokens(user, tenant, permissions, hospital_id, service_id)

    def validate(self, token, tenant_slug) -> dict:
        """Report whether ``token`` is valid for ``tenant_slug``. Never raises, whatever the input."""
        if not isinstance(token, str) or not isinstance(tenant_slug, str) or not token or not tenant_slug:
            return {
                "valid": False,
                "error": "token and tenantSlug are required",
                "code": ErrorCode.VALIDATION_FAILED.value,
            }
        try:
            claims = self.verify(token, tenant_slug)
        except PhysioHubError as e:
            return {"valid": False, "error": e.message, "code": e.error_code.value}
        except Exception:
            logger.exception("Unexpected error while validating a token")
            return {"valid": False, "error": "Token validation failed", "code": ErrorCode.INTERNAL_ERROR.value}

        return {
            "valid": True,
            "userId": claims.sub,
            "tenantId": claims.tenant_id,
            "role": claims.role,
            "permissions": claims.permissions,
            "expiresAt": datetime.fromtimestamp(claims.exp, tz=timezone.utc).isoformat(),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def load_user(self, claims: TokenClaims, db: AsyncSession) -> GlobalUser | None:
        result = await db.execute(
            select(GlobalUser).where(GlobalUser.id == claims.sub, GlobalUser.tenant_id == claims.tenant_id)
        )
        return result.scalars().first()

    async def _load_staff_profile(self, schema: str, user_id: str) -> tuple[str | None, str | None]:
        async def _read(session: AsyncSession):
            result = await session.execute(_STAFF_PROFILE, {"global_user_id": user_id})
            return result.first()

        row = await self.database.with_tenant(schema, _read)
        if row is None:
            return None, None
        return row[0], row[1]

    async def _touch_last_login(self, user_id: str) -> None:
        async with self.database.session() as db:
            await db.execute(
                update(GlobalUser).where(GlobalUser.id == user_id).values(last_login_at=datetime.now(timezone.utc))
            )
            await db.commit()
