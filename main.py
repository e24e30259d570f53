import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from physiohub.config import settings
from physiohub.exception_handlers import register_exception_handlers
from physiohub.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from physiohub.routes import auth, health, hospitals, tenants
from physiohub.services.auth_service import TenantAuthService
from physiohub.tenancy.schema_client import TenantDatabase
from physiohub.utils.background import drain

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the database client at start-up and release it at shutdown."""
    database = TenantDatabase.from_settings(settings)
    app.state.tenant_db = database
    app.state.auth_service = TenantAuthService(database, settings)
    logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)
    try:
        yield
    finally:
        await drain()
        await database.dispose()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    setup_structured_logging(
        log_level="DEBUG" if settings.debug else "INFO",
        json_format=settings.environment == "production",
    )

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant physiotherapy clinical management backend",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router, prefix="/auth", tags=["Auth"])
    app.include_router(tenants.router, prefix="/tenants")
    app.include_router(hospitals.router, prefix="/api/v1")

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)  # Logs SQL statements
        logging.getLogger("sqlalchemy.pool").setLevel(logging.INFO)  # Logs connection pool checkouts

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
