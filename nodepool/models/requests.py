"""Request models for the node pool API."""

from __future__ import annotations

from pydantic import BaseModel

from nodepool.pool.manager import SelectionPolicy


class SelectNodeRequest(BaseModel):
    """Body of ``POST /nodes/select``."""

    policy: SelectionPolicy = SelectionPolicy.DEFAULT
