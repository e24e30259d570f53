"""
Pytest configuration and fixtures for PhysioHub tests

Most tests replace the directory session and the tenant database with the
fakes from ``utils.mocks``. Tests marked ``postgres`` run against a real
PostgreSQL test database and are skipped when it cannot be reached.
"""

import asyncio
import os
import sys
import uuid
from unittest.mock import patch

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

from main import app  # noqa: E402
from physiohub.config import Settings, settings  # noqa: E402
from physiohub.database import get_db  # noqa: E402
from physiohub.services.auth_service import TenantAuthService  # noqa: E402
from physiohub.tenancy.naming import schema_name_for  # noqa: E402
from physiohub.tenancy.provisioner import SchemaProvisioner  # noqa: E402
from physiohub.tenancy.schema_client import TenantDatabase  # noqa: E402
from utils.mocks import FakeTenantDatabase, make_tenant  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        secret_key="test-access-secret",
        refresh_secret_key="test-refresh-secret",
        environment="test",
    )


@pytest.fixture
def fake_database() -> FakeTenantDatabase:
    return FakeTenantDatabase()


@pytest.fixture
def auth_service(fake_database, test_settings) -> TenantAuthService:
    return TenantAuthService(fake_database, test_settings)


@pytest.fixture
def tenants():
    """Directory content keyed by slug."""
    return {
        "acme": make_tenant("acme"),
        "globex": make_tenant("globex", status="trial"),
        "frozen": make_tenant("frozen", status="suspended"),
    }


@pytest.fixture
def no_background_tasks():
    """Replace fire-and-forget spawning so no task outlives the test loop."""
    with patch("physiohub.tenancy.resolver.spawn") as resolver_spawn, patch(
        "physiohub.services.auth_service.spawn"
    ) as auth_spawn:
        resolver_spawn.side_effect = lambda coro, description: coro.close()
        auth_spawn.side_effect = lambda coro, description: coro.close()
        yield resolver_spawn, auth_spawn


@pytest.fixture
def client(fake_database, auth_service, tenants, no_background_tasks):
    """
    TestClient for the application with fake databases.

    Tenant lookups are answered from the ``tenants`` fixture.
    """
    async def lookup(slug, db):
        for tenant in tenants.values():
            if slug in (tenant.slug, tenant.subdomain):
                return tenant
        return None

    async def override_get_db():
        yield fake_database.directory_session

    app.state.tenant_db = fake_database
    app.state.auth_service = auth_service
    app.dependency_overrides[get_db] = override_get_db

    with patch("physiohub.tenancy.resolver.get_tenant_by_slug", side_effect=lookup), patch(
        "physiohub.services.auth_service.get_tenant_by_slug", side_effect=lookup
    ):
        yield TestClient(app)

    app.dependency_overrides.clear()


# Test database URL, overridable with TEST_DATABASE_URL.
# Default: appends '_test' to the configured database name
def get_test_database_url():
    """Get test database URL from environment or derive it from the configured one"""
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    base_url, _, db_name = settings.database_url.rpartition("/")
    return f"{base_url}/{db_name or 'physiohub'}_test"


TEST_DATABASE_URL = get_test_database_url()


@pytest_asyncio.fixture
async def pg_database():
    """
    TenantDatabase on the PostgreSQL test database.

    The pool holds a single connection, so every operation reuses the
    connection the previous one returned.
    """
    engine = create_async_engine(TEST_DATABASE_URL, pool_size=1, max_overflow=0, connect_args={"timeout": 5})
    try:
        async with engine.connect():
            pass
    except (OSError, asyncio.TimeoutError, SQLAlchemyError) as e:
        await engine.dispose()
        pytest.skip(f"PostgreSQL test database unavailable: {e}")

    database = TenantDatabase(engine)
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def provisioned_schemas(pg_database):
    """Two provisioned and seeded tenant schemas, dropped again afterwards."""
    provisioner = SchemaProvisioner(pg_database)
    schemas = {}
    try:
        for label in ("a", "b"):
            schema = schema_name_for(str(uuid.uuid4()))
            schemas[label] = schema
            await provisioner.create_tenant_schema(schema)
            await provisioner.seed_tenant_data(
                schema,
                client_name=f"Clinica {label.upper()}",
                hospital_name=f"Clinica {label.upper()} - Principal",
                admin_name=f"Admin {label.upper()}",
                admin_email=f"admin@{label}.example.com",
                global_user_id=str(uuid.uuid4()),
            )
        yield schemas
    finally:
        for schema in schemas.values():
            await provisioner.drop_tenant_schema(schema, confirm=True)
