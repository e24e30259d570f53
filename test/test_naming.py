"""
Tests for tenant schema naming

Schema names are derived from tenant ids and validated before any
identifier reaches SQL.
"""

import uuid

import pytest

from physiohub.exceptions import InvalidSchemaNameError
from physiohub.tenancy.naming import is_valid_slug, schema_name_for, validate_schema_name

TENANT_ID = "3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b"


class TestSchemaNameFor:
    def test_dashes_become_underscores(self):
        assert schema_name_for(TENANT_ID) == "tenant_3f2b8c1e_9a4d_4e6f_8b7a_1c2d3e4f5a6b"

    def test_uppercase_uuid_is_canonicalised(self):
        assert schema_name_for(TENANT_ID.upper()) == schema_name_for(TENANT_ID)

    def test_accepts_uuid_instances(self):
        assert schema_name_for(uuid.UUID(TENANT_ID)) == schema_name_for(TENANT_ID)

    def test_fits_postgres_identifier_limit(self):
        assert len(schema_name_for(TENANT_ID)) <= 63

    def test_distinct_ids_give_distinct_schemas(self):
        ids = {str(uuid.uuid4()) for _ in range(50)}
        assert len({schema_name_for(i) for i in ids}) == 50

    @pytest.mark.parametrize("bad_id", ["", "acme", "1; DROP SCHEMA public", "3f2b8c1e-9a4d-4e6f-8b7a"])
    def test_non_uuid_rejected(self, bad_id):
        with pytest.raises(InvalidSchemaNameError):
            schema_name_for(bad_id)

    def test_custom_prefix(self):
        assert schema_name_for(TENANT_ID, prefix="t_").startswith("t_3f2b8c1e")


class TestValidateSchemaName:
    def test_valid_name_returned_unchanged(self):
        name = schema_name_for(TENANT_ID)
        assert validate_schema_name(name) == name

    @pytest.mark.parametrize(
        "name",
        [
            "public",
            "tenant_acme",
            'tenant_3f2b8c1e_9a4d_4e6f_8b7a_1c2d3e4f5a6b"; DROP TABLE x; --',
            "TENANT_3F2B8C1E_9A4D_4E6F_8B7A_1C2D3E4F5A6B",
            "tenant_3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b",
        ],
    )
    def test_rejects_anything_else(self, name):
        with pytest.raises(InvalidSchemaNameError):
            validate_schema_name(name)

    def test_rejects_non_string(self):
        with pytest.raises(InvalidSchemaNameError):
            validate_schema_name(None)


class TestIsValidSlug:
    @pytest.mark.parametrize("slug", ["acme", "clinica-sao-jose", "h1", "a"])
    def test_valid(self, slug):
        assert is_valid_slug(slug)

    @pytest.mark.parametrize("slug", ["", None, "Acme", "-acme", "acme-", "ac me", "acme.com", "a" * 64])
    def test_invalid(self, slug):
        assert not is_valid_slug(slug)
