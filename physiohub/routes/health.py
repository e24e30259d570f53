import logging

from fastapi import APIRouter, Request
from sqlalchemy import text

from physiohub.config import settings

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(request: Request):
    """Liveness plus a database round trip."""
    database_ok = True
    try:
        async with request.app.state.tenant_db.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check database probe failed: %s", e)
        database_ok = False

    return {
        "success": database_ok,
        "data": {
            "status": "ok" if database_ok else "degraded",
            "version": settings.app_version,
            "database": "ok" if database_ok else "unavailable",
        },
    }
