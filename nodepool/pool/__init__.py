"""Node pool package — selection policy and background diagnostics."""

from nodepool.pool.manager import NodePool, SelectionPolicy, SlotState

__all__ = ["NodePool", "SelectionPolicy", "SlotState"]
