"""
Tests for the schema-switching data access layer

The connection is mocked; assertions are made on the statements and bound
parameters TenantDatabase sends to it.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.dialects import postgresql

from physiohub.exceptions import InvalidSchemaNameError, SchemaNotFoundError
from physiohub.tenancy.naming import schema_name_for
from physiohub.tenancy.schema_client import (
    TenantDatabase,
    current_tenant_schema,
    search_path_for,
    switch_schema,
)
from utils.mocks import AsyncContext, make_connection, make_engine

SCHEMA_A = schema_name_for("11111111-1111-4111-8111-111111111111")
SCHEMA_B = schema_name_for("22222222-2222-4222-8222-222222222222")


def _search_path_calls(conn):
    """Bound parameters of every set_config('search_path', ...) call, in order."""
    return [
        c.args[1]
        for c in conn.execute.call_args_list
        if len(c.args) > 1 and "set_config" in str(c.args[0])
    ]


@pytest.fixture
def session_cls():
    with patch("physiohub.tenancy.schema_client.AsyncSession") as cls:
        cls.return_value.close = AsyncMock()
        yield cls


class TestSearchPath:
    def test_identifier_is_quoted_and_public_kept(self):
        assert search_path_for(SCHEMA_A, postgresql.dialect()) == f'"{SCHEMA_A}", public'

    def test_invalid_identifier_never_reaches_sql(self):
        with pytest.raises(InvalidSchemaNameError):
            search_path_for('x"; DROP SCHEMA public; --', postgresql.dialect())

    def test_switch_uses_bound_parameter(self):
        conn = make_connection()
        asyncio.run(switch_schema(conn, SCHEMA_A))
        params = _search_path_calls(conn)
        assert params == [{"path": f'"{SCHEMA_A}", public', "is_local": False}]
        assert SCHEMA_A not in str(conn.execute.call_args.args[0])

    def test_local_switch(self):
        conn = make_connection()
        asyncio.run(switch_schema(conn, SCHEMA_A, local=True))
        assert _search_path_calls(conn)[0]["is_local"] is True


class TestWithTenant:
    def test_runs_operation_in_schema_and_restores(self, session_cls):
        conn = make_connection(previous_path='"$user", public')
        database = TenantDatabase(make_engine(conn))
        seen = {}

        async def operation(session):
            seen["schema"] = current_tenant_schema()
            seen["session"] = session
            return "done"

        result = asyncio.run(database.with_tenant(SCHEMA_A, operation))

        assert result == "done"
        assert seen["schema"] == SCHEMA_A
        assert seen["session"] is session_cls.return_value
        session_cls.assert_called_once_with(bind=conn, autoflush=False, expire_on_commit=False)
        assert _search_path_calls(conn) == [
            {"path": f'"{SCHEMA_A}", public', "is_local": False},
            {"path": '"$user", public', "is_local": False},
        ]
        assert current_tenant_schema() is None

    def test_restores_when_operation_raises(self, session_cls):
        conn = make_connection(previous_path="public")
        database = TenantDatabase(make_engine(conn))

        async def operation(session):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            asyncio.run(database.with_tenant(SCHEMA_A, operation))

        assert _search_path_calls(conn)[-1] == {"path": "public", "is_local": False}
        session_cls.return_value.close.assert_awaited_once()
        conn.invalidate.assert_not_awaited()

    def test_rolls_back_dangling_transaction_before_restore(self, session_cls):
        conn = make_connection()
        conn.in_transaction.return_value = True
        database = TenantDatabase(make_engine(conn))

        async def operation(session):
            return None

        asyncio.run(database.with_tenant(SCHEMA_A, operation))
        conn.rollback.assert_awaited()

    def test_missing_schema_skips_operation(self, session_cls):
        conn = make_connection(schema_exists=False)
        database = TenantDatabase(make_engine(conn))
        operation = AsyncMock()

        with pytest.raises(SchemaNotFoundError):
            asyncio.run(database.with_tenant(SCHEMA_A, operation))

        operation.assert_not_awaited()
        assert _search_path_calls(conn) == []

    def test_invalid_schema_name_never_connects(self):
        engine = make_engine(make_connection())
        database = TenantDatabase(engine)

        with pytest.raises(InvalidSchemaNameError):
            asyncio.run(database.with_tenant("public", AsyncMock()))

        engine.connect.assert_not_called()

    def test_failed_restore_invalidates_connection(self, session_cls):
        conn = make_connection()
        original = conn.execute.side_effect
        calls = {"set": 0}

        async def execute(statement, params=None):
            if "set_config" in str(statement):
                calls["set"] += 1
                if calls["set"] == 2:
                    raise ConnectionError("connection lost")
            return await original(statement, params)

        conn.execute.side_effect = execute
        database = TenantDatabase(make_engine(conn))

        async def operation(session):
            return 42

        assert asyncio.run(database.with_tenant(SCHEMA_A, operation)) == 42
        conn.invalidate.assert_awaited_once()

    def test_sequential_tenants_do_not_leak(self, session_cls):
        conn = make_connection(previous_path="public")
        database = TenantDatabase(make_engine(conn))
        seen = []

        async def operation(session):
            seen.append(current_tenant_schema())

        async def run():
            await database.with_tenant(SCHEMA_A, operation)
            await database.with_tenant(SCHEMA_B, operation)

        asyncio.run(run())

        assert seen == [SCHEMA_A, SCHEMA_B]
        paths = [p["path"] for p in _search_path_calls(conn)]
        assert paths == [f'"{SCHEMA_A}", public', "public", f'"{SCHEMA_B}", public', "public"]

    def test_concurrent_operations_see_their_own_schema(self, session_cls):
        database = TenantDatabase(MagicMock())
        database.engine.connect.side_effect = lambda: AsyncContext(make_connection())
        seen = {}

        def operation_for(name):
            async def operation(session):
                await asyncio.sleep(0)
                seen[name] = current_tenant_schema()

            return operation

        async def run():
            await asyncio.gather(
                database.with_tenant(SCHEMA_A, operation_for("a")),
                database.with_tenant(SCHEMA_B, operation_for("b")),
            )

        asyncio.run(run())
        assert seen == {"a": SCHEMA_A, "b": SCHEMA_B}


class TestTenantTransaction:
    def test_operation_runs_inside_begin(self, session_cls):
        conn = make_connection()
        database = TenantDatabase(make_engine(conn))
        session = session_cls.return_value

        async def operation(s):
            return "committed"

        assert asyncio.run(database.tenant_transaction(SCHEMA_A, operation)) == "committed"
        session.begin.assert_called_once()

    def test_schema_exists(self):
        database = TenantDatabase(make_engine(make_connection(schema_exists=True)))
        assert asyncio.run(database.schema_exists(SCHEMA_A)) is True

        database = TenantDatabase(make_engine(make_connection(schema_exists=False)))
        assert asyncio.run(database.schema_exists(SCHEMA_A)) is False
