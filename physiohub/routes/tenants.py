"""
Tenant Routes

POST /tenants/register            -> self-service registration (trial)
GET  /tenants/{tenantSlug}/info   -> public tenant information
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from physiohub.database import get_db, get_tenant_database
from physiohub.middleware.tenant import get_current_tenant
from physiohub.schemas.tenant import TenantInfo, TenantPublicInfo, TenantRegister, TenantRegistered
from physiohub.services.tenant_service import register_tenant
from physiohub.tenancy.schema_client import TenantDatabase

router = APIRouter(tags=["Tenants"])
logger = logging.getLogger(__name__)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_tenant_route(
    payload: TenantRegister,
    db: AsyncSession = Depends(get_db),
    database: TenantDatabase = Depends(get_tenant_database),
):
    """Create a tenant in trial, provision its schema and its first admin user."""
    tenant, admin = await register_tenant(
        name=payload.name,
        slug=payload.slug,
        email=payload.email,
        password=payload.password,
        db=db,
        database=database,
        plan=payload.plan.value,
        subdomain=payload.subdomain,
        admin_name=payload.admin_name,
    )
    registered = TenantRegistered(
        tenant=TenantPublicInfo(
            id=tenant.id, name=tenant.name, slug=tenant.slug, status=tenant.status, plan=tenant.plan
        ),
        admin_user_id=admin.id,
        trial_ends_at=tenant.trial_ends_at.isoformat() if tenant.trial_ends_at else None,
    )
    return {"success": True, "message": "Tenant created", "data": registered.model_dump(by_alias=True)}


@router.get("/{tenantSlug}/info")
async def tenant_info(tenant: TenantInfo = Depends(get_current_tenant)):
    """Public information of an accessible tenant, resolved from the URL."""
    public = TenantPublicInfo(id=tenant.id, name=tenant.name, slug=tenant.slug, status=tenant.status, plan=tenant.plan)
    return {"success": True, "data": public.model_dump()}
