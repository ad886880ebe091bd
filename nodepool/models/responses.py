"""API response models.

All API responses are wrapped in an envelope for consistency:
{ success: bool, data: T | None, error: str | None, meta: dict | None }
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

from nodepool.node.types import NodeMeta

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """JSON envelope for all API responses."""

    success: bool
    data: T | None = None
    error: str | None = None
    meta: dict | None = None


class NodeMetaResponse(BaseModel):
    """Serialized ``NodeMeta`` snapshot."""

    endpoint: str
    is_active: bool | None = None
    pending_requests: int = 0
    latency: float | None = None
    block_height: int | None = None
    last_seen_timestamp: int | None = None
    user_agent: str | None = None

    @classmethod
    def from_meta(cls, meta: NodeMeta) -> "NodeMetaResponse":
        return cls.model_validate(meta.to_dict())
