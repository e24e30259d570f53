import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from physiohub.models.tenant import TenantPlan


class TenantInfo(BaseModel):
    """Tenant resolved for the current request. Lives for one request only."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    slug: str
    schema_name: str
    status: str
    plan: str

    @property
    def schema(self) -> str:
        """PostgreSQL schema holding this tenant's private tables."""
        return self.schema_name

    @classmethod
    def from_tenant(cls, tenant) -> "TenantInfo":
        return cls(
            id=tenant.id,
            name=tenant.name,
            slug=tenant.slug,
            schema_name=tenant.schema,
            status=tenant.status,
            plan=tenant.plan,
        )


class TenantPublicInfo(BaseModel):
    id: str
    name: str
    slug: str
    status: str
    plan: str


class TenantRegister(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    slug: str = Field(..., min_length=3, max_length=50, description="Lowercase letters, digits and hyphens")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    plan: TenantPlan = TenantPlan.basic
    subdomain: str | None = Field(None, min_length=3, max_length=50)
    admin_name: str | None = Field(None, alias="adminName", max_length=200)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("slug", "subdomain")
    @classmethod
    def validate_slug(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not re.fullmatch(r"[a-z0-9-]+", value) or value.startswith("-") or value.endswith("-"):
            raise ValueError("may contain only lowercase letters, digits and inner hyphens")
        return value

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, value: str) -> str:
        if not re.search(r"[a-z]", value):
            raise ValueError("password must contain a lowercase letter")
        if not re.search(r"[A-Z]", value):
            raise ValueError("password must contain an uppercase letter")
        if not re.search(r"\d", value):
            raise ValueError("password must contain a digit")
        return value


class TenantRegistered(BaseModel):
    tenant: TenantPublicInfo
    admin_user_id: str = Field(..., serialization_alias="adminUserId")
    trial_ends_at: str | None = Field(None, serialization_alias="trialEndsAt")
