"""Configuration module — settings and network catalogue."""

from nodepool.config.networks import (
    NetworkConfig,
    NodeAddress,
    default_networks,
    get_network_urls,
    load_networks,
)
from nodepool.config.settings import PoolSettings

__all__ = [
    "NetworkConfig",
    "NodeAddress",
    "PoolSettings",
    "default_networks",
    "get_network_urls",
    "load_networks",
]
