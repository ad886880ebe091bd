"""Unit tests for the error hierarchy and FastAPI exception handlers."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from nodepool.middleware.error_handler import (
    NodePoolError,
    PoolExhaustedError,
    RpcError,
    ValidationError,
    register_error_handlers,
)


# ---------------------------------------------------------------------------
# Test app fixture
# ---------------------------------------------------------------------------


def _make_app() -> FastAPI:
    """Build a minimal FastAPI app with error handlers registered."""
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/raise-base")
    async def _raise_base():
        raise NodePoolError()

    @app.get("/raise-validation")
    async def _raise_validation():
        raise ValidationError("Block height must be non-negative, got -1", height=-1)

    @app.get("/raise-rpc")
    async def _raise_rpc():
        raise RpcError("getblockcount timed out", endpoint="http://n1:10332", method="getblockcount")

    @app.get("/raise-exhausted")
    async def _raise_exhausted():
        raise PoolExhaustedError()

    @app.get("/raise-unhandled")
    async def _raise_unhandled():
        raise RuntimeError("unexpected")

    @app.get("/typed/{height}")
    async def _typed(height: int):
        return {"height": height}

    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(_make_app(), raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class TestHierarchy:
    @pytest.mark.parametrize("cls", [ValidationError, RpcError, PoolExhaustedError])
    def test_subclasses_base(self, cls):
        assert issubclass(cls, NodePoolError)

    def test_default_message(self):
        assert str(RpcError()) == "RPC call failed"

    def test_custom_message_and_details(self):
        err = RpcError("boom", endpoint="http://n1:1", method="getversion", code=-32601)
        assert err.message == "boom"
        assert err.endpoint == "http://n1:1"
        assert err.method == "getversion"
        assert err.code == -32601

    def test_rpc_error_details_optional(self):
        err = RpcError()
        assert err.endpoint is None
        assert err.code is None

    @pytest.mark.parametrize(
        ("cls", "status"),
        [(NodePoolError, 500), (ValidationError, 422), (RpcError, 502), (PoolExhaustedError, 503)],
    )
    def test_status_codes(self, cls, status: int):
        assert cls.status_code == status


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


class TestHandlers:
    def test_base_error_envelope(self, client: TestClient):
        resp = client.get("/raise-base")
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "data": None,
            "error": "Internal server error",
            "meta": None,
        }

    def test_validation_error_includes_details(self, client: TestClient):
        resp = client.get("/raise-validation")
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "Block height must be non-negative, got -1"
        assert body["meta"] == {"height": -1}

    def test_rpc_error(self, client: TestClient):
        resp = client.get("/raise-rpc")
        assert resp.status_code == 502
        assert resp.json()["meta"] == {
            "endpoint": "http://n1:10332",
            "method": "getblockcount",
        }

    def test_pool_exhausted(self, client: TestClient):
        resp = client.get("/raise-exhausted")
        assert resp.status_code == 503

    def test_request_validation_error(self, client: TestClient):
        resp = client.get("/typed/abc")
        assert resp.status_code == 422
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Validation error"
        assert body["meta"]["fields"][0]["field"] == "path -> height"

    def test_unhandled_error_is_generic_500(self, client: TestClient):
        resp = client.get("/raise-unhandled")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error"

    def test_unhandled_error_is_logged_with_traceback(self, client: TestClient, caplog):
        with caplog.at_level("ERROR", logger="nodepool.middleware.error_handler"):
            client.get("/raise-unhandled")

        records = [r for r in caplog.records if r.getMessage() == "Unhandled exception: unexpected"]
        assert len(records) == 1
        assert records[0].exc_info is not None
        assert records[0].exc_info[0] is RuntimeError
