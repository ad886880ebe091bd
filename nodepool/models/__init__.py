"""Public models for the node pool API."""

from nodepool.models.requests import SelectNodeRequest
from nodepool.models.responses import ApiResponse, NodeMetaResponse

__all__ = ["ApiResponse", "NodeMetaResponse", "SelectNodeRequest"]
