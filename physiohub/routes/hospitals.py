"""Hospitals and services of the current tenant."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from physiohub.exceptions import ResourceNotFoundError
from physiohub.middleware.tenant import get_tenant_session, require_hospital_access, require_permission

router = APIRouter(tags=["Hospitals"])
logger = logging.getLogger(__name__)

_LIST_HOSPITALS = text("SELECT id, name, code, active FROM hospitals WHERE active = true ORDER BY name")
_HOSPITAL_EXISTS = text("SELECT 1 FROM hospitals WHERE id = :hospital_id")
_LIST_SERVICES = text(
    "SELECT id, name, code, color, icon, active FROM services "
    "WHERE hospital_id = :hospital_id AND active = true ORDER BY name"
)


@router.get("/hospitals", dependencies=[Depends(require_permission("hospitals:read"))])
async def list_hospitals(session: AsyncSession = Depends(get_tenant_session)):
    result = await session.execute(_LIST_HOSPITALS)
    return {"success": True, "data": [dict(row) for row in result.mappings()]}


@router.get(
    "/hospitals/{hospitalId}/services",
    dependencies=[Depends(require_permission("services:read")), Depends(require_hospital_access("hospitalId"))],
)
async def list_hospital_services(hospitalId: str, session: AsyncSession = Depends(get_tenant_session)):
    if (await session.execute(_HOSPITAL_EXISTS, {"hospital_id": hospitalId})).first() is None:
        raise ResourceNotFoundError("Hospital", hospitalId)
    result = await session.execute(_LIST_SERVICES, {"hospital_id": hospitalId})
    return {"success": True, "data": [dict(row) for row in result.mappings()]}
