"""Shared test fixtures and an in-memory transport for the node pool test suite."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from nodepool.config.settings import PoolSettings
from nodepool.middleware.error_handler import RpcError
from nodepool.node.node import Node
from nodepool.pool.manager import NodePool


ENDPOINT_A = "http://node-a.test:10332"
ENDPOINT_B = "http://node-b.test:10332"
ENDPOINT_C = "http://node-c.test:10332"


# ---------------------------------------------------------------------------
# In-memory transport
# ---------------------------------------------------------------------------


class FakeTransport:
    """Programmable stand-in for JsonRpcTransport.

    Per endpoint, either a ``method -> result`` mapping or an exception to raise.
    Every call is recorded in ``calls``. While ``gate`` is set to an unset
    ``asyncio.Event``, calls block until it is set.
    """

    def __init__(self) -> None:
        self.results: dict[str, dict[str, Any]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str, list[Any], int]] = []
        self.gate: asyncio.Event | None = None

    def set_result(self, endpoint: str, method: str, result: Any) -> None:
        self.results.setdefault(endpoint, {})[method] = result
        self.errors.pop(endpoint, None)

    def set_error(self, endpoint: str, error: Exception | None = None) -> None:
        self.errors[endpoint] = error or RpcError(
            "connection refused", endpoint=endpoint
        )

    async def send(
        self,
        endpoint: str,
        method: str,
        params: list[Any],
        request_id: int,
    ) -> Any:
        self.calls.append((endpoint, method, list(params), request_id))
        if self.gate is not None:
            await self.gate.wait()
        if endpoint in self.errors:
            raise self.errors[endpoint]
        return self.results.get(endpoint, {}).get(method)


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_pool_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep NODEPOOL_* variables from the host environment out of tests."""
    for key in (
        "NODEPOOL_NETWORK",
        "NODEPOOL_DIAGNOSTIC_INTERVAL_MS",
        "NODEPOOL_LEADERBOARD_INTERVAL_MS",
        "NODEPOOL_RPC_TIMEOUT_SECONDS",
        "NODEPOOL_LOG_LEVEL",
        "NODEPOOL_PORT",
        "NODEPOOL_NETWORKS_PATH",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> PoolSettings:
    """Test settings with safe defaults."""
    return PoolSettings(
        network="testnet",
        diagnostic_interval_ms=0,
        rpc_timeout_seconds=1.0,
    )


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def node(transport: FakeTransport) -> Node:
    return Node(ENDPOINT_A, transport=transport)


@pytest.fixture
def pool(transport: FakeTransport) -> NodePool:
    return NodePool(
        "testnet",
        endpoints=[ENDPOINT_A, ENDPOINT_B, ENDPOINT_C],
        transport=transport,
    )

