"""Health-tracked pool of NEO JSON-RPC nodes with policy-based selection."""

from nodepool.middleware.error_handler import (
    NodePoolError,
    PoolExhaustedError,
    RpcError,
    ValidationError,
)
from nodepool.node.node import Node
from nodepool.node.types import NodeMeta, QueryEvent, QueryEventType, RpcMethod
from nodepool.pool.manager import NodePool, SelectionPolicy

__all__ = [
    "Node",
    "NodeMeta",
    "NodePool",
    "NodePoolError",
    "PoolExhaustedError",
    "QueryEvent",
    "QueryEventType",
    "RpcError",
    "RpcMethod",
    "SelectionPolicy",
    "ValidationError",
]
