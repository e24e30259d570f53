"""
Tests for request and response schemas
"""

import pytest
from pydantic import ValidationError

from physiohub.schemas.auth import AuthResult, LoginRequest, TokenClaims, UserInfo
from physiohub.schemas.tenant import TenantInfo, TenantPublicInfo, TenantRegister
from utils.mocks import make_tenant


class TestTenantRegister:
    def valid(self, **overrides):
        data = {"name": "Clinica Acme", "slug": "acme", "email": "owner@acme.com", "password": "Secret123"}
        data.update(overrides)
        return data

    def test_defaults(self):
        payload = TenantRegister(**self.valid())
        assert payload.plan.value == "basic"
        assert payload.subdomain is None
        assert payload.admin_name is None

    def test_camel_case_admin_name(self):
        assert TenantRegister(**self.valid(adminName="Ana")).admin_name == "Ana"

    @pytest.mark.parametrize("slug", ["ac", "Acme", "acme_1", "acme-", "-acme", "a" * 51])
    def test_invalid_slug(self, slug):
        with pytest.raises(ValidationError):
            TenantRegister(**self.valid(slug=slug))

    @pytest.mark.parametrize("password", ["Short1", "nouppercase1", "NOLOWERCASE1", "NoDigitsHere"])
    def test_weak_password(self, password):
        with pytest.raises(ValidationError):
            TenantRegister(**self.valid(password=password))

    def test_unknown_plan(self):
        with pytest.raises(ValidationError):
            TenantRegister(**self.valid(plan="platinum"))


class TestTenantInfo:
    def test_from_tenant(self):
        tenant = make_tenant("acme")
        info = TenantInfo.from_tenant(tenant)
        assert info.schema == tenant.schema
        assert info.schema.startswith("tenant_")

    def test_is_immutable(self):
        info = TenantInfo.from_tenant(make_tenant("acme"))
        with pytest.raises(ValidationError):
            info.slug = "globex"


class TestAuthSchemas:
    def test_login_accepts_camel_case(self):
        request = LoginRequest(email="a@acme.com", password="x", tenantSlug="acme")
        assert request.tenant_slug == "acme"

    def test_token_claims_require_tenant(self):
        with pytest.raises(ValidationError):
            TokenClaims(sub="u", tenant_slug="acme", role="collaborator", aud="acme", iss="i", exp=1)

    def test_auth_result_serializes_camel_case(self):
        result = AuthResult(
            token="a",
            refresh_token="r",
            user=UserInfo(id="u", email="a@acme.com", name="A", role="collaborator", permissions=[], hospital_id="h"),
            tenant=TenantPublicInfo(id="t", name="Acme", slug="acme", status="active", plan="basic"),
        )
        data = result.model_dump(by_alias=True)
        assert data["refreshToken"] == "r"
        assert data["user"]["hospitalId"] == "h"
        assert data["user"]["serviceId"] is None
