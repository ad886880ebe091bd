"""Node package — per-endpoint RPC calls with health benchmarking."""

from nodepool.node.node import Node
from nodepool.node.types import NodeMeta, QueryEvent, QueryEventType, RpcMethod

__all__ = ["Node", "NodeMeta", "QueryEvent", "QueryEventType", "RpcMethod"]
