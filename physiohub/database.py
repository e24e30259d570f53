import logging
from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base

from physiohub.config import Settings, settings

logger = logging.getLogger(__name__)

# Directory tables (tenants, global users, settings) always live here,
# whatever search_path a tenant operation has set on its connection.
PUBLIC_SCHEMA = "public"

Base = declarative_base()


def create_engine_from_settings(config: Settings = settings) -> AsyncEngine:
    """Build the process-wide async engine. Called once at application start-up."""
    if config.environment == "production":
        return create_async_engine(
            config.database_url,
            pool_size=config.pool_size * 2,
            max_overflow=config.max_overflow * 2,
            pool_timeout=config.pool_timeout * 2,
            pool_recycle=1800,
            pool_pre_ping=True,
        )
    return create_async_engine(
        config.database_url,
        echo=config.debug,  # Enable query logging in debug mode
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_pre_ping=True,
    )


def get_tenant_database(request: Request):
    """FastAPI dependency returning the TenantDatabase attached at start-up."""
    return request.app.state.tenant_db


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a public-schema (directory) session."""
    database = get_tenant_database(request)
    async with database.session() as db:
        try:
            yield db
        except Exception as e:
            logger.error("Database session error: %s", e)
            await db.rollback()
            raise
