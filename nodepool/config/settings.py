"""Pydantic Settings for the node pool.

All environment variables use the NODEPOOL_ prefix.
Example: NODEPOOL_NETWORK=mainnet, NODEPOOL_DIAGNOSTIC_INTERVAL_MS=1000
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class PoolSettings(BaseSettings):
    """Node pool configuration validated from environment variables."""

    # Service
    port: int = 8002
    log_level: str = "INFO"

    # Network selection
    network: str = "testnet"  # key into the network catalogue
    networks_path: str = str(Path(__file__).with_name("networks.yaml"))

    # Diagnostics
    diagnostic_interval_ms: int = Field(default=0, ge=0)  # 0 disables sampling
    leaderboard_interval_ms: int = Field(default=0, ge=0)  # 0 disables logging

    # Transport
    rpc_timeout_seconds: float = Field(default=10.0, gt=0)

    model_config = {"env_prefix": "NODEPOOL_"}
