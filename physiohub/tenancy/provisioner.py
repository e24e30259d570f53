"""
Tenant schema provisioning.

``create_tenant_schema`` runs the schema creation and the whole DDL script in
one transaction (PostgreSQL DDL is transactional), then reads
``information_schema`` back before reporting success. A failure anywhere
leaves no half-built schema behind.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.schema import CreateSchema, DropSchema

from physiohub.exceptions import ConfirmationRequiredError, SchemaProvisioningError
from physiohub.tenancy.ddl import TENANT_DDL, TENANT_TABLES
from physiohub.tenancy.naming import validate_schema_name
from physiohub.tenancy.schema_client import TenantDatabase, switch_schema
from physiohub.utils.slugify import slugify

logger = logging.getLogger(__name__)

_TABLES_IN_SCHEMA = text("SELECT table_name FROM information_schema.tables WHERE table_schema = :schema")

DEFAULT_SERVICES = (
    {"name": "Fisioterapia", "color": "#10B981", "icon": "heart"},
    {"name": "Psicologia", "color": "#3B82F6", "icon": "brain"},
    {"name": "Serviço Social", "color": "#F59E0B", "icon": "users"},
)


class SchemaProvisioner:
    """Creates, verifies, seeds and drops tenant schemas."""

    def __init__(self, database: TenantDatabase):
        self.database = database

    async def create_tenant_schema(self, schema: str) -> None:
        """
        Create ``schema`` and all tenant tables. Safe to call repeatedly.

        Raises:
            SchemaProvisioningError: any DDL statement failed or the
                schema is incomplete afterwards
        """
        validate_schema_name(schema)
        try:
            async with self.database.engine.begin() as conn:
                await conn.execute(CreateSchema(schema, if_not_exists=True))
                await switch_schema(conn, schema, local=True)
                for statement in TENANT_DDL:
                    await conn.execute(text(statement))
        except SQLAlchemyError as e:
            logger.error("Provisioning of schema %s failed: %s", schema, e)
            raise SchemaProvisioningError(schema) from e

        await self.verify_tenant_schema(schema)
        logger.info("Tenant schema provisioned: %s", schema)

    async def verify_tenant_schema(self, schema: str) -> None:
        """Raise SchemaProvisioningError unless every tenant table exists in ``schema``."""
        validate_schema_name(schema)
        async with self.database.engine.connect() as conn:
            result = await conn.execute(_TABLES_IN_SCHEMA, {"schema": schema})
            present = {row[0] for row in result}

        missing = sorted(set(TENANT_TABLES) - present)
        if missing:
            logger.error("Schema %s is missing tables: %s", schema, ", ".join(missing))
            raise SchemaProvisioningError(schema, message=f"Tenant schema incomplete, missing: {', '.join(missing)}")

    async def drop_tenant_schema(self, schema: str, *, confirm: bool = False) -> None:
        """
        Drop ``schema`` and every row in it. Irreversible.

        Raises:
            ConfirmationRequiredError: ``confirm`` was not explicitly True
        """
        if confirm is not True:
            raise ConfirmationRequiredError("drop_tenant_schema")
        validate_schema_name(schema)
        async with self.database.engine.begin() as conn:
            await conn.execute(DropSchema(schema, cascade=True, if_exists=True))
        logger.warning("Tenant schema dropped: %s", schema)

    async def seed_tenant_data(
        self,
        schema: str,
        *,
        client_name: str,
        hospital_name: str,
        admin_name: str,
        admin_email: str,
        global_user_id: str,
    ) -> dict:
        """Insert the initial client, main hospital, default services and admin staff row."""

        async def _seed(session: AsyncSession) -> dict:
            client_id = (
                await session.execute(
                    text(
                        "INSERT INTO clients (name, contact_email, subscription_plan, active) "
                        "VALUES (:name, :email, 'enterprise', true) RETURNING id"
                    ),
                    {"name": client_name, "email": admin_email},
                )
            ).scalar_one()

            hospital_id = (
                await session.execute(
                    text(
                        "INSERT INTO hospitals (client_id, name, code, active) "
                        "VALUES (:client_id, :name, 'principal', true) RETURNING id"
                    ),
                    {"client_id": client_id, "name": hospital_name},
                )
            ).scalar_one()

            for service in DEFAULT_SERVICES:
                await session.execute(
                    text(
                        "INSERT INTO services (hospital_id, name, code, color, icon, active) "
                        "VALUES (:hospital_id, :name, :code, :color, :icon, true)"
                    ),
                    {"hospital_id": hospital_id, "code": slugify(service["name"]), **service},
                )

            await session.execute(
                text(
                    "INSERT INTO users (global_user_id, name, email, specialty, role, hospital_id, active) "
                    "VALUES (:global_user_id, :name, :email, 'Administrador', 'tenant_admin', :hospital_id, true)"
                ),
                {
                    "global_user_id": global_user_id,
                    "name": admin_name,
                    "email": admin_email,
                    "hospital_id": hospital_id,
                },
            )
            return {"client_id": client_id, "hospital_id": hospital_id}

        seeded = await self.database.tenant_transaction(schema, _seed)
        logger.info("Initial data seeded for schema %s", schema)
        return seeded
