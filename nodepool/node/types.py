"""Node data models: metadata snapshot, lifecycle events, and RPC method names."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class RpcMethod(str, Enum):
    """JSON-RPC methods the node tracker issues itself."""

    GET_BLOCK_COUNT = "getblockcount"
    GET_BLOCK = "getblock"
    GET_VERSION = "getversion"


class QueryEventType(str, Enum):
    """Lifecycle notifications emitted around every RPC call."""

    QUERY_INIT = "query:init"
    QUERY_SUCCESS = "query:success"
    QUERY_FAILED = "query:failed"


@dataclass(frozen=True)
class QueryEvent:
    """A single call-start or call-end notification for one node."""

    type: QueryEventType
    endpoint: str
    method: str
    request_id: int = 0
    params: list[Any] = field(default_factory=list)
    latency: float | None = None  # milliseconds, success only
    block_height: int | None = None
    user_agent: str | None = None
    error: str | None = None  # failure only


@dataclass(frozen=True)
class NodeMeta:
    """Read-only snapshot of a node's derived health metadata."""

    endpoint: str
    is_active: bool | None
    pending_requests: int
    latency: float | None  # milliseconds
    block_height: int | None
    last_seen_timestamp: int | None  # epoch milliseconds
    user_agent: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
