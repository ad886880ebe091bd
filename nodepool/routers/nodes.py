"""Node pool diagnostics endpoints.

- GET  /health — service status + pool stats
- GET  /nodes — metadata of every initialized node
- GET  /nodes/current | /nodes/fastest | /nodes/highest — one node's metadata
- POST /nodes/select — switch the current node by selection policy
- GET  /block-count — chain height via the current node
- GET  /blocks/{height} — block by height via the current node
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter

from nodepool.models.requests import SelectNodeRequest
from nodepool.models.responses import ApiResponse, NodeMetaResponse

if TYPE_CHECKING:
    from nodepool.node.node import Node
    from nodepool.pool.manager import NodePool

logger = logging.getLogger(__name__)


def _node_payload(node: Node) -> dict:
    return NodeMetaResponse.from_meta(node.get_meta()).model_dump()


def create_nodes_router(*, pool: NodePool) -> APIRouter:
    """Factory that creates the node pool router bound to *pool*."""

    nodes_router = APIRouter(tags=["nodes"])

    @nodes_router.get("/health")
    async def health() -> dict:
        """Service health check with pool statistics."""
        return ApiResponse(
            success=True,
            data={"status": "healthy", "node_pool": pool.get_stats()},
        ).model_dump()

    @nodes_router.get("/nodes")
    async def list_nodes() -> dict:
        return ApiResponse(
            success=True,
            data=[_node_payload(node) for node in pool.get_nodes()],
        ).model_dump()

    @nodes_router.get("/nodes/current")
    async def current_node() -> dict:
        return ApiResponse(success=True, data=_node_payload(pool.get_current_node())).model_dump()

    @nodes_router.get("/nodes/fastest")
    async def fastest_node() -> dict:
        return ApiResponse(success=True, data=_node_payload(pool.get_fastest_node())).model_dump()

    @nodes_router.get("/nodes/highest")
    async def highest_node() -> dict:
        return ApiResponse(success=True, data=_node_payload(pool.get_highest_node())).model_dump()

    @nodes_router.post("/nodes/select")
    async def select_node(body: SelectNodeRequest) -> dict:
        """Apply a selection policy and return the new current node."""
        node = pool.apply_policy(body.policy)
        logger.info("Selection policy %s applied: %s", body.policy.value, node.endpoint)
        return ApiResponse(
            success=True,
            data={"policy": body.policy.value, "node": _node_payload(node)},
        ).model_dump()

    @nodes_router.get("/block-count")
    async def block_count() -> dict:
        height = await pool.get_block_count()
        return ApiResponse(
            success=True,
            data={"block_count": height, "endpoint": pool.get_current_node_url()},
        ).model_dump()

    @nodes_router.get("/blocks/{height}")
    async def get_block(height: int, verbose: bool = True) -> dict:
        block = await pool.get_block(height, verbose)
        return ApiResponse(
            success=True,
            data={"block": block, "endpoint": pool.get_current_node_url()},
        ).model_dump()

    return nodes_router
