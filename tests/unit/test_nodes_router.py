"""Unit tests for the node pool HTTP surface and application factory."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import ENDPOINT_A, ENDPOINT_B, ENDPOINT_C, FakeTransport
from nodepool.config.settings import PoolSettings
from nodepool.main import build_pool, create_app
from nodepool.middleware.error_handler import register_error_handlers
from nodepool.pool.manager import NodePool
from nodepool.routers.nodes import create_nodes_router


def _observe(pool: NodePool, index: int, *, active, latency=None, height=None) -> None:
    node = pool._init_node(index)
    node.is_active = active
    node.latency = latency
    node.block_height = height


@pytest.fixture
def client(pool: NodePool) -> TestClient:
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(create_nodes_router(pool=pool))
    return TestClient(app, raise_server_exceptions=False)


class TestReadEndpoints:
    def test_health(self, client: TestClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["node_pool"]["total"] == 3
        assert body["data"]["node_pool"]["current"] == ENDPOINT_A

    def test_list_nodes_only_initialized(self, client: TestClient, pool: NodePool):
        _observe(pool, 2, active=True, latency=3.0, height=10)

        body = client.get("/nodes").json()

        assert [n["endpoint"] for n in body["data"]] == [ENDPOINT_A, ENDPOINT_C]
        assert body["data"][1]["block_height"] == 10
        assert body["data"][0]["is_active"] is None

    def test_current(self, client: TestClient):
        assert client.get("/nodes/current").json()["data"]["endpoint"] == ENDPOINT_A

    def test_fastest_and_highest(self, client: TestClient, pool: NodePool):
        _observe(pool, 1, active=True, latency=5.0, height=100)
        _observe(pool, 2, active=True, latency=50.0, height=200)

        assert client.get("/nodes/fastest").json()["data"]["endpoint"] == ENDPOINT_B
        assert client.get("/nodes/highest").json()["data"]["endpoint"] == ENDPOINT_C
        # Queries never move the current node
        assert client.get("/nodes/current").json()["data"]["endpoint"] == ENDPOINT_A


class TestSelect:
    def test_select_policy(self, client: TestClient, pool: NodePool):
        _observe(pool, 2, active=True, height=500)

        resp = client.post("/nodes/select", json={"policy": "highest"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["data"]["policy"] == "highest"
        assert body["data"]["node"]["endpoint"] == ENDPOINT_C
        assert pool.get_current_node_url() == ENDPOINT_C

    def test_select_defaults_to_default_policy(self, client: TestClient, pool: NodePool):
        _observe(pool, 1, active=True, latency=1.0)
        pool.set_fastest_node()

        resp = client.post("/nodes/select", json={})

        assert resp.json()["data"]["node"]["endpoint"] == ENDPOINT_A

    def test_select_unknown_policy_is_422(self, client: TestClient):
        resp = client.post("/nodes/select", json={"policy": "random"})
        assert resp.status_code == 422
        assert resp.json()["error"] == "Validation error"


class TestRpcEndpoints:
    def test_block_count(self, client: TestClient, transport: FakeTransport):
        transport.set_result(ENDPOINT_A, "getblockcount", 321)

        body = client.get("/block-count").json()

        assert body["data"] == {"block_count": 321, "endpoint": ENDPOINT_A}

    def test_block_count_failure_is_502(self, client: TestClient, transport: FakeTransport):
        transport.set_error(ENDPOINT_A)

        resp = client.get("/block-count")

        assert resp.status_code == 502
        assert resp.json()["success"] is False

    def test_block(self, client: TestClient, transport: FakeTransport):
        transport.set_result(ENDPOINT_A, "getblock", {"index": 7, "hash": "0x01"})

        body = client.get("/blocks/7").json()

        assert body["data"]["block"] == {"index": 7, "hash": "0x01"}
        assert transport.calls == [(ENDPOINT_A, "getblock", [7, 1], 0)]

    def test_block_non_verbose(self, client: TestClient, transport: FakeTransport):
        client.get("/blocks/7", params={"verbose": "false"})
        assert transport.calls[0][2] == [7, 0]

    def test_negative_height_is_422_without_rpc(self, client: TestClient, transport: FakeTransport):
        resp = client.get("/blocks/-1")

        assert resp.status_code == 422
        assert transport.calls == []


class TestCreateApp:
    def test_build_pool_from_settings(self, settings: PoolSettings):
        pool = build_pool(settings)
        assert pool.network == "testnet"
        assert pool.addresses[0] == "http://seed1.ngd.network:20332"

    def test_lifespan_starts_and_stops_pool(self, transport: FakeTransport):
        pool = NodePool(
            "testnet",
            endpoints=[ENDPOINT_A],
            diagnostic_interval_ms=60_000,
            transport=transport,
        )
        app = create_app(settings=PoolSettings(), pool=pool)

        with TestClient(app) as client:
            assert pool.is_running
            assert client.get("/health").json()["data"]["node_pool"]["diagnostics_running"] is True

        assert not pool.is_running
        assert app.state.pool is pool
