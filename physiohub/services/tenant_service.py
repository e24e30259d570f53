"""
Tenant Service

Async operations on the shared tenant directory (public schema).
All functions accept an injected AsyncSession; the ones that also touch a
tenant's private schema take the TenantDatabase as well.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from physiohub.auth import hash_password
from physiohub.config import settings
from physiohub.constants.roles import TENANT_OWNER_ROLE
from physiohub.exceptions import (
    DuplicateSlugError,
    DuplicateTenantError,
    PhysioHubError,
    ResourceNotFoundError,
    SchemaProvisioningError,
)
from physiohub.models.tenant import SUBDOMAIN_CONSTRAINT, Tenant, TenantPlan, TenantSetting, TenantStatus
from physiohub.models.user import GlobalUser
from physiohub.tenancy.provisioner import SchemaProvisioner
from physiohub.tenancy.schema_client import TenantDatabase

logger = logging.getLogger(__name__)

SUSPENSION_REASON_KEY = "suspension_reason"


def default_settings(plan: str) -> dict:
    """Settings every new tenant starts with."""
    return {
        "onboarding_completed": False,
        "welcome_email_sent": False,
        "default_features": {
            "dashboard": True,
            "indicators": True,
            "reports": plan != TenantPlan.basic.value,
        },
    }


async def get_tenant_by_id(tenant_id: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by primary key, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalars().first()


async def get_tenant_by_slug(slug: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant whose slug or subdomain equals ``slug``, or None."""
    result = await db.execute(select(Tenant).where(or_(Tenant.slug == slug, Tenant.subdomain == slug)))
    return result.scalars().first()


async def list_tenants(db: AsyncSession, skip: int = 0, limit: int = 20) -> tuple[list[Tenant], int]:
    """Return one page of tenants (any status), newest first, and the total count."""
    result = await db.execute(select(Tenant).order_by(Tenant.created_at.desc()).offset(skip).limit(limit))
    total = await db.execute(select(func.count()).select_from(Tenant))
    return list(result.scalars().all()), total.scalar_one()


async def _ensure_identifier_free(slug: str, subdomain: str | None, db: AsyncSession) -> None:
    # A slug must not collide with another tenant's subdomain either: lookups match both columns
    if await get_tenant_by_slug(slug, db) is not None:
        raise DuplicateSlugError(slug)
    if subdomain and subdomain != slug and await get_tenant_by_slug(subdomain, db) is not None:
        raise DuplicateTenantError("subdomain", subdomain)


async def register_tenant(
    name: str,
    slug: str,
    email: str,
    password: str,
    db: AsyncSession,
    database: TenantDatabase,
    plan: str = TenantPlan.basic.value,
    subdomain: str | None = None,
    admin_name: str | None = None,
) -> tuple[Tenant, GlobalUser]:
    """
    Register a tenant: directory rows, private schema and initial data.

    The tenant starts in trial and stays inactive until its schema is
    provisioned and seeded. If either step fails, the directory rows and
    the schema are removed again so a retry with the same slug is possible.

    Raises:
        DuplicateSlugError: slug already used as a slug or subdomain
        DuplicateTenantError: subdomain already used
        SchemaProvisioningError: schema creation or seeding failed
    """
    await _ensure_identifier_free(slug, subdomain, db)

    now = datetime.now(timezone.utc)
    # Not resolvable until the schema is provisioned and seeded
    tenant = Tenant(
        id=str(uuid.uuid4()),
        name=name,
        slug=slug,
        subdomain=subdomain,
        email=email,
        status=TenantStatus.trial.value,
        plan=plan,
        is_active=False,
        trial_ends_at=now + timedelta(days=settings.trial_days),
    )
    admin = GlobalUser(
        id=str(uuid.uuid4()),
        tenant_id=tenant.id,
        email=email.strip().lower(),
        name=admin_name or name,
        password_hash=hash_password(password),
        role=TENANT_OWNER_ROLE.value,
        is_active=True,
    )
    db.add(tenant)
    db.add(admin)
    for key, value in default_settings(plan).items():
        db.add(TenantSetting(tenant_id=tenant.id, key=key, value=value))

    try:
        await db.commit()
    except IntegrityError as e:
        # Lost a race against a concurrent registration
        await db.rollback()
        if subdomain and _violated_subdomain(e):
            raise DuplicateTenantError("subdomain", subdomain)
        raise DuplicateSlugError(slug)

    schema = tenant.schema
    provisioner = SchemaProvisioner(database)
    try:
        await provisioner.create_tenant_schema(schema)
        await provisioner.seed_tenant_data(
            schema,
            client_name=name,
            hospital_name=f"{name} - Principal",
            admin_name=admin.name,
            admin_email=admin.email,
            global_user_id=admin.id,
        )
        tenant.is_active = True
        await db.commit()
    except Exception as e:
        logger.error("Registration of tenant %s failed, rolling back: %s", slug, e)
        await _remove_tenant(tenant.id, schema, db, provisioner)
        if isinstance(e, PhysioHubError):
            raise
        raise SchemaProvisioningError(schema) from e

    logger.info("Tenant registered: id=%s slug=%s plan=%s", tenant.id, tenant.slug, tenant.plan)
    return tenant, admin


def _violated_subdomain(error: IntegrityError) -> bool:
    message = str(error.orig)
    return SUBDOMAIN_CONSTRAINT in message or "(subdomain)" in message


async def _remove_tenant(tenant_id: str, schema: str, db: AsyncSession, provisioner: SchemaProvisioner) -> None:
    """Undo a failed registration. Failures are logged so the caller's error survives."""
    try:
        await provisioner.drop_tenant_schema(schema, confirm=True)
    except Exception as e:
        logger.error("Could not drop schema %s of failed registration: %s", schema, e)

    try:
        await db.rollback()
        await db.execute(delete(TenantSetting).where(TenantSetting.tenant_id == tenant_id))
        await db.execute(delete(GlobalUser).where(GlobalUser.tenant_id == tenant_id))
        await db.execute(delete(Tenant).where(Tenant.id == tenant_id))
        await db.commit()
    except Exception as e:
        # The rows stay inactive, so the tenant never resolves
        logger.error("Could not remove directory rows of failed registration %s: %s", tenant_id, e)


async def set_tenant_setting(tenant_id: str, key: str, value, db: AsyncSession) -> TenantSetting:
    """Create or replace one setting of a tenant. Does not commit."""
    result = await db.execute(
        select(TenantSetting).where(TenantSetting.tenant_id == tenant_id, TenantSetting.key == key)
    )
    setting = result.scalars().first()
    if setting is None:
        setting = TenantSetting(tenant_id=tenant_id, key=key, value=value)
        db.add(setting)
    else:
        setting.value = value
    return setting


async def update_tenant_settings(tenant_id: str, values: dict, db: AsyncSession) -> None:
    for key, value in values.items():
        await set_tenant_setting(tenant_id, key, value, db)
    await db.commit()


async def get_tenant_settings(tenant_id: str, db: AsyncSession) -> dict:
    result = await db.execute(select(TenantSetting).where(TenantSetting.tenant_id == tenant_id))
    return {s.key: s.value for s in result.scalars().all()}


async def suspend_tenant(tenant_id: str, reason: str, db: AsyncSession) -> Tenant:
    """
    Set a tenant's status to 'suspended' and record why.

    Raises:
        ResourceNotFoundError: no tenant with that id
    """
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        raise ResourceNotFoundError("Tenant", tenant_id)
    tenant.status = TenantStatus.suspended.value
    await set_tenant_setting(
        tenant_id,
        SUSPENSION_REASON_KEY,
        {"reason": reason, "date": datetime.now(timezone.utc).isoformat()},
        db,
    )
    await db.commit()
    await db.refresh(tenant)
    logger.warning("Tenant suspended: id=%s slug=%s reason=%s", tenant.id, tenant.slug, reason)
    return tenant


async def reactivate_tenant(tenant_id: str, db: AsyncSession) -> Tenant:
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        raise ResourceNotFoundError("Tenant", tenant_id)
    tenant.status = TenantStatus.active.value
    await db.execute(
        delete(TenantSetting).where(TenantSetting.tenant_id == tenant_id, TenantSetting.key == SUSPENSION_REASON_KEY)
    )
    await db.commit()
    await db.refresh(tenant)
    logger.info("Tenant reactivated: id=%s slug=%s", tenant.id, tenant.slug)
    return tenant


async def delete_tenant(tenant_id: str, db: AsyncSession, database: TenantDatabase, confirm: bool = False) -> str:
    """
    Permanently delete a tenant, its users, settings and private schema.

    Returns the deleted tenant's name.

    Raises:
        ConfirmationRequiredError: ``confirm`` was not True
        ResourceNotFoundError: no tenant with that id
    """
    provisioner = SchemaProvisioner(database)
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        raise ResourceNotFoundError("Tenant", tenant_id)
    name, schema = tenant.name, tenant.schema
    # Checked by drop_tenant_schema before anything is touched
    await provisioner.drop_tenant_schema(schema, confirm=confirm)
    await db.execute(delete(TenantSetting).where(TenantSetting.tenant_id == tenant_id))
    await db.execute(delete(GlobalUser).where(GlobalUser.tenant_id == tenant_id))
    await db.execute(delete(Tenant).where(Tenant.id == tenant_id))
    await db.commit()
    logger.warning("Tenant deleted permanently: id=%s name=%s", tenant_id, name)
    return name


async def touch_activity(tenant_id: str, database: TenantDatabase) -> None:
    """Record the tenant's last activity. Runs detached with its own session."""
    async with database.session() as db:
        await db.execute(
            update(Tenant).where(Tenant.id == tenant_id).values(last_activity_at=datetime.now(timezone.utc))
        )
        await db.commit()
