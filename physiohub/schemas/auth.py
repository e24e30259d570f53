from pydantic import BaseModel, ConfigDict, EmailStr, Field

from physiohub.schemas.tenant import TenantPublicInfo


class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(_CamelRequest):
    email: EmailStr
    password: str = Field(..., min_length=1)
    tenant_slug: str = Field(..., alias="tenantSlug", min_length=1, max_length=63)


class RefreshRequest(_CamelRequest):
    refresh_token: str = Field(..., alias="refreshToken", min_length=1)
    tenant_slug: str = Field(..., alias="tenantSlug", min_length=1, max_length=63)


class LogoutRequest(_CamelRequest):
    refresh_token: str | None = Field(None, alias="refreshToken")


class TokenClaims(BaseModel):
    """Verified claims of an access token."""

    model_config = ConfigDict(frozen=True)

    sub: str
    tenant_id: str
    tenant_slug: str
    email: str | None = None
    role: str
    permissions: list[str] = []
    hospital_id: str | None = None
    service_id: str | None = None
    aud: str
    iss: str
    iat: int | None = None
    exp: int

    @property
    def user_id(self) -> str:
        return self.sub


class UserInfo(BaseModel):
    id: str
    email: str
    name: str
    role: str
    permissions: list[str]
    hospital_id: str | None = Field(None, serialization_alias="hospitalId")
    service_id: str | None = Field(None, serialization_alias="serviceId")


class TokenPair(BaseModel):
    token: str
    refresh_token: str = Field(..., serialization_alias="refreshToken")


class AuthResult(TokenPair):
    user: UserInfo
    tenant: TenantPublicInfo
