"""
Schema-switching data access layer.

``TenantDatabase`` wraps the process-wide async engine. Tenant work runs on
a connection checked out exclusively for the duration of the operation:

    1. verify the target schema exists (PostgreSQL accepts a search_path
       naming a missing schema, so the check has to be explicit)
    2. capture the connection's current search_path
    3. switch with ``set_config('search_path', ...)``, the value passed as a
       bound parameter and the identifier quoted by the dialect
    4. run the operation on an AsyncSession bound to that connection
    5. roll back anything left open and restore the captured search_path

Step 5 always runs. If it fails the connection is invalidated instead of
being returned to the pool, so a pooled connection never carries one
tenant's search_path into another request.

The instance is created at start-up and disposed at shutdown (see
``main.lifespan``); nothing in this module holds a global client.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker

from physiohub.config import Settings, settings
from physiohub.database import PUBLIC_SCHEMA, create_engine_from_settings
from physiohub.exceptions import SchemaNotFoundError
from physiohub.tenancy.naming import validate_schema_name

logger = logging.getLogger(__name__)

T = TypeVar("T")

_current_schema: ContextVar[str | None] = ContextVar("tenant_schema", default=None)

_SCHEMA_EXISTS = text("SELECT 1 FROM information_schema.schemata WHERE schema_name = :schema")
_SHOW_SEARCH_PATH = text("SELECT current_setting('search_path')")
_SET_SEARCH_PATH = text("SELECT set_config('search_path', :path, :is_local)")


def current_tenant_schema() -> str | None:
    """Schema granted to the current task by an enclosing tenant operation, if any."""
    return _current_schema.get()


def search_path_for(schema: str, dialect: Dialect) -> str:
    """search_path value for ``schema`` with public kept as fallback for shared tables."""
    quoted = dialect.identifier_preparer.quote_identifier(validate_schema_name(schema))
    return f"{quoted}, {PUBLIC_SCHEMA}"


async def switch_schema(conn: AsyncConnection, schema: str, *, local: bool = False) -> None:
    """
    Point ``conn`` at ``schema``.

    With ``local=True`` the setting only lasts until the end of the current
    transaction (``SET LOCAL`` semantics).
    """
    await conn.execute(_SET_SEARCH_PATH, {"path": search_path_for(schema, conn.dialect), "is_local": local})


class TenantDatabase:
    """Engine wrapper granting schema-scoped sessions to tenant operations."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "TenantDatabase":
        return cls(create_engine_from_settings(config))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")

    def session(self) -> AsyncSession:
        """Session for the shared directory tables in the public schema."""
        return self._session_factory()

    async def schema_exists(self, schema: str) -> bool:
        validate_schema_name(schema)
        async with self.engine.connect() as conn:
            result = await conn.execute(_SCHEMA_EXISTS, {"schema": schema})
            return result.first() is not None

    @asynccontextmanager
    async def tenant_session(self, schema: str) -> AsyncIterator[AsyncSession]:
        """
        Async context manager form of ``with_tenant``.

        Raises:
            InvalidSchemaNameError: ``schema`` is not a tenant schema name
            SchemaNotFoundError: the schema does not exist; nothing is run
        """
        validate_schema_name(schema)
        async with self.engine.connect() as conn:
            previous = await self._enter_schema(conn, schema)
            token = _current_schema.set(schema)
            session = AsyncSession(bind=conn, autoflush=False, expire_on_commit=False)
            try:
                yield session
            finally:
                _current_schema.reset(token)
                await session.close()
                await self._restore_schema(conn, schema, previous)

    async def with_tenant(self, schema: str, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``operation`` against ``schema`` and restore the previous search_path afterwards."""
        async with self.tenant_session(schema) as session:
            return await operation(session)

    async def tenant_transaction(self, schema: str, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Like ``with_tenant`` but ``operation`` runs inside one atomic transaction."""
        async with self.tenant_session(schema) as session:
            async with session.begin():
                return await operation(session)

    async def _enter_schema(self, conn: AsyncConnection, schema: str) -> str:
        result = await conn.execute(_SCHEMA_EXISTS, {"schema": schema})
        if result.first() is None:
            await conn.rollback()
            raise SchemaNotFoundError(schema)

        previous = (await conn.execute(_SHOW_SEARCH_PATH)).scalar_one()
        await switch_schema(conn, schema)
        # Session-level setting: it must survive the transaction that set it
        await conn.commit()
        logger.debug("search_path switched to %s (was %s)", schema, previous)
        return previous

    async def _restore_schema(self, conn: AsyncConnection, schema: str, previous: str | None) -> None:
        try:
            if conn.in_transaction():
                await conn.rollback()
            await conn.execute(_SET_SEARCH_PATH, {"path": previous or PUBLIC_SCHEMA, "is_local": False})
            await conn.commit()
        except Exception:
            logger.exception("Could not restore search_path after %s; invalidating connection", schema)
            await conn.invalidate()
