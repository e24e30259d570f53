"""
Tenant schemas on a real PostgreSQL database

Provisioning, clinical constraints, cross-tenant isolation and search_path
restoration, checked against the server rather than against call logs.
Needs the PostgreSQL test database (see ``TEST_DATABASE_URL`` in conftest).
"""

import uuid

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, ProgrammingError

from physiohub.exceptions import SchemaNotFoundError
from physiohub.tenancy.naming import schema_name_for
from physiohub.tenancy.provisioner import SchemaProvisioner
from physiohub.tenancy.schema_client import current_tenant_schema

pytestmark = [pytest.mark.postgres, pytest.mark.asyncio]

INSERT_BARTHEL = text(
    "INSERT INTO barthel_scales (evaluation_date, feeding, transfers) "
    "VALUES (NOW(), :feeding, :transfers) RETURNING total_score"
)


async def client_names(session):
    result = await session.execute(text("SELECT name FROM clients ORDER BY name"))
    return [row[0] for row in result]


def barthel_record(feeding, transfers=0):
    async def operation(session):
        return (await session.execute(INSERT_BARTHEL, {"feeding": feeding, "transfers": transfers})).scalar_one()

    return operation


async def connection_state(database):
    """search_path and visibility of a tenant table on the pooled connection."""
    async with database.engine.connect() as conn:
        path = (await conn.execute(text("SELECT current_setting('search_path')"))).scalar_one()
        clients = (await conn.execute(text("SELECT to_regclass('clients')"))).scalar_one()
    return path, clients


class TestProvisioning:
    async def test_provisioning_twice_succeeds(self, pg_database, provisioned_schemas):
        provisioner = SchemaProvisioner(pg_database)
        schema = provisioned_schemas["a"]

        await provisioner.create_tenant_schema(schema)
        await provisioner.verify_tenant_schema(schema)

        assert await pg_database.with_tenant(schema, client_names) == ["Clinica A"]

    async def test_seed_creates_default_services(self, pg_database, provisioned_schemas):
        async def service_codes(session):
            result = await session.execute(text("SELECT code FROM services ORDER BY code"))
            return [row[0] for row in result]

        codes = await pg_database.with_tenant(provisioned_schemas["a"], service_codes)
        assert codes == ["fisioterapia", "psicologia", "servico-social"]

    async def test_unprovisioned_schema_is_refused(self, pg_database):
        schema = schema_name_for(str(uuid.uuid4()))

        with pytest.raises(SchemaNotFoundError):
            await pg_database.with_tenant(schema, client_names)

        assert not await pg_database.schema_exists(schema)


class TestClinicalConstraints:
    async def test_barthel_feeding_rejects_fifteen(self, pg_database, provisioned_schemas):
        schema = provisioned_schemas["a"]

        with pytest.raises(IntegrityError):
            await pg_database.tenant_transaction(schema, barthel_record(15))

        async def count(session):
            return (await session.execute(text("SELECT count(*) FROM barthel_scales"))).scalar_one()

        assert await pg_database.with_tenant(schema, count) == 0

    async def test_barthel_total_is_computed(self, pg_database, provisioned_schemas):
        total = await pg_database.tenant_transaction(provisioned_schemas["a"], barthel_record(10, transfers=15))
        assert total == 25

    async def test_mrc_total_above_sixty_is_rejected(self, pg_database, provisioned_schemas):
        async def insert(session):
            await session.execute(
                text(
                    "INSERT INTO mrc_scales (evaluation_date, muscle_groups, total_score) "
                    "VALUES (NOW(), '{}'::jsonb, 61)"
                )
            )

        with pytest.raises(IntegrityError):
            await pg_database.tenant_transaction(provisioned_schemas["a"], insert)


class TestIsolation:
    async def test_each_schema_sees_only_its_rows(self, pg_database, provisioned_schemas):
        assert await pg_database.with_tenant(provisioned_schemas["a"], client_names) == ["Clinica A"]
        assert await pg_database.with_tenant(provisioned_schemas["b"], client_names) == ["Clinica B"]

    async def test_rows_written_in_one_schema_stay_there(self, pg_database, provisioned_schemas):
        async def add_patient(session):
            await session.execute(text("INSERT INTO patients (name) VALUES ('Maria Souza')"))

        async def patient_names(session):
            result = await session.execute(text("SELECT name FROM patients"))
            return [row[0] for row in result]

        await pg_database.tenant_transaction(provisioned_schemas["a"], add_patient)

        assert await pg_database.with_tenant(provisioned_schemas["a"], patient_names) == ["Maria Souza"]
        assert await pg_database.with_tenant(provisioned_schemas["b"], patient_names) == []

    async def test_other_tenant_staff_is_invisible(self, pg_database, provisioned_schemas):
        async def find_admin_b(session):
            result = await session.execute(
                text("SELECT id FROM users WHERE email = :email"), {"email": "admin@b.example.com"}
            )
            return result.first()

        assert await pg_database.with_tenant(provisioned_schemas["a"], find_admin_b) is None
        assert await pg_database.with_tenant(provisioned_schemas["b"], find_admin_b) is not None


class TestSearchPathRestore:
    async def test_restored_after_normal_operation(self, pg_database, provisioned_schemas):
        before, _ = await connection_state(pg_database)

        await pg_database.with_tenant(provisioned_schemas["a"], client_names)

        path, clients = await connection_state(pg_database)
        assert path == before
        assert clients is None

    async def test_restored_after_database_error(self, pg_database, provisioned_schemas):
        schema = provisioned_schemas["a"]

        async def broken(session):
            await session.execute(text("SELECT * FROM no_such_table"))

        with pytest.raises(ProgrammingError):
            await pg_database.with_tenant(schema, broken)

        path, clients = await connection_state(pg_database)
        assert schema not in path
        assert clients is None
        assert current_tenant_schema() is None

    async def test_restored_after_application_error(self, pg_database, provisioned_schemas):
        schema = provisioned_schemas["a"]

        async def broken(session):
            await session.execute(text("SELECT 1 FROM clients"))
            raise RuntimeError("handler failed")

        with pytest.raises(RuntimeError):
            await pg_database.with_tenant(schema, broken)

        path, clients = await connection_state(pg_database)
        assert schema not in path
        assert clients is None

    async def test_next_tenant_after_failure_sees_own_rows(self, pg_database, provisioned_schemas):
        async def broken(session):
            raise RuntimeError("handler failed")

        with pytest.raises(RuntimeError):
            await pg_database.with_tenant(provisioned_schemas["a"], broken)

        assert await pg_database.with_tenant(provisioned_schemas["b"], client_names) == ["Clinica B"]
