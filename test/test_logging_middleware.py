"""
Tests for structured request logging
"""

import json
import logging
from types import SimpleNamespace
from unittest.mock import patch

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from physiohub.middleware.logging import (
    RequestContextFilter,
    StructuredFormatter,
    StructuredLoggingMiddleware,
    get_request_id,
    request_id_var,
)


def make_app():
    app = FastAPI()
    app.add_middleware(StructuredLoggingMiddleware)

    @app.get("/tenant-route")
    async def tenant_route(request: Request):
        request.state.tenant = SimpleNamespace(slug="acme")
        request.state.user = SimpleNamespace(sub="user-1")
        return {"request_id": get_request_id()}

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


def access_records(caplog):
    return [r for r in caplog.records if r.name == "physiohub.access"]


class TestStructuredLoggingMiddleware:
    def test_request_id_is_generated_and_echoed(self):
        response = TestClient(make_app()).get("/tenant-route")
        request_id = response.headers["X-Request-ID"]
        assert request_id
        assert response.json()["request_id"] == request_id

    def test_incoming_request_id_is_kept(self):
        response = TestClient(make_app()).get("/tenant-route", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_access_line_carries_tenant_and_user(self, caplog):
        with caplog.at_level(logging.INFO, logger="physiohub.access"):
            TestClient(make_app()).get("/tenant-route")

        (record,) = access_records(caplog)
        assert record.tenant_slug == "acme"
        assert record.user_id == "user-1"
        assert record.status_code == 200

    def test_health_checks_are_not_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="physiohub.access"):
            TestClient(make_app()).get("/health")
        assert access_records(caplog) == []

    def test_context_is_reset_after_request(self):
        TestClient(make_app()).get("/tenant-route")
        assert request_id_var.get() == ""


class TestFormatting:
    def _record(self, **extra):
        record = logging.LogRecord("physiohub.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_filter_adds_tenant_schema(self):
        record = self._record()
        with patch("physiohub.middleware.logging.current_tenant_schema", return_value="tenant_abc"):
            assert RequestContextFilter().filter(record) is True
        assert record.tenant_schema == "tenant_abc"
        assert record.request_id == ""

    def test_json_output(self):
        record = self._record(request_id="req-1", tenant_schema="tenant_abc", tenant_slug="acme")
        data = json.loads(StructuredFormatter().format(record))
        assert data["message"] == "hello world"
        assert data["request_id"] == "req-1"
        assert data["tenant_schema"] == "tenant_abc"
        assert data["tenant_slug"] == "acme"

    def test_json_output_without_tenant(self):
        data = json.loads(StructuredFormatter().format(self._record()))
        assert "tenant_schema" not in data
