"""Network catalogue models and YAML loader.

Each network (``mainnet``, ``testnet``, ...) maps to an ordered list of
candidate node addresses. Order matters: the first node is the pool default.
Addresses are either a full ``url`` or ``scheme``/``host``/``port`` parts.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from nodepool.middleware.error_handler import ValidationError

logger = logging.getLogger(__name__)


class NodeAddress(BaseModel):
    """One candidate node address."""

    url: str | None = None
    scheme: str = "http"
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)

    @model_validator(mode="after")
    def _require_url_or_host(self) -> "NodeAddress":
        if not self.url and not self.host:
            raise ValueError("node address needs either 'url' or 'host'")
        return self

    def to_url(self) -> str:
        if self.url:
            return self.url
        if self.port is None:
            return f"{self.scheme}://{self.host}"
        return f"{self.scheme}://{self.host}:{self.port}"


class NetworkConfig(BaseModel):
    """Ordered candidate nodes for one network."""

    nodes: list[NodeAddress] = Field(default_factory=list)

    def urls(self) -> list[str]:
        return [node.to_url() for node in self.nodes]


def _seeds(scheme: str, hosts: list[str], port: int) -> list[NodeAddress]:
    return [NodeAddress(scheme=scheme, host=host, port=port) for host in hosts]


_DEFAULT_NETWORKS: dict[str, NetworkConfig] = {
    "mainnet": NetworkConfig(
        nodes=_seeds(
            "http",
            [f"seed{i}.neo.org" for i in range(1, 6)],
            10332,
        )
        + _seeds("https", ["seed1.cityofzion.io", "seed2.cityofzion.io"], 443)
    ),
    "testnet": NetworkConfig(
        nodes=_seeds(
            "http",
            [f"seed{i}.ngd.network" for i in range(1, 6)],
            20332,
        )
        + _seeds("https", ["test1.cityofzion.io", "test2.cityofzion.io"], 443)
    ),
}


def default_networks() -> dict[str, NetworkConfig]:
    """Return a copy of the built-in network catalogue."""
    return {name: config.model_copy(deep=True) for name, config in _DEFAULT_NETWORKS.items()}


def load_networks(yaml_path: str) -> dict[str, NetworkConfig]:
    """Parse a network catalogue YAML file into typed NetworkConfig objects.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        A dict mapping network names to NetworkConfig instances. If the file is
        missing or unparseable, returns the built-in catalogue. Networks absent
        from the file keep their built-in definition.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Network catalogue not found at %s — using built-in defaults", yaml_path)
        return default_networks()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse network catalogue YAML at %s: %s", yaml_path, exc)
        return default_networks()

    if not isinstance(raw, dict) or not isinstance(raw.get("networks"), dict):
        logger.warning("Network catalogue YAML missing 'networks' key — using built-in defaults")
        return default_networks()

    networks = default_networks()
    for name, config in raw["networks"].items():
        entries = (config or {}).get("nodes", []) if isinstance(config, dict) else []
        nodes: list[NodeAddress] = []
        for entry in entries:
            try:
                nodes.append(NodeAddress.model_validate(entry))
            except Exception as exc:
                logger.error("Invalid node entry in network '%s': %s — skipping", name, exc)
        networks[str(name)] = NetworkConfig(nodes=nodes)

    return networks


def get_network_urls(
    network: str,
    networks: dict[str, NetworkConfig] | None = None,
) -> list[str]:
    """Return the ordered node URLs for *network*.

    Raises ``ValidationError`` for an unknown network or one with no nodes.
    """
    catalogue = networks if networks is not None else _DEFAULT_NETWORKS
    config = catalogue.get(network)
    if config is None:
        raise ValidationError(
            f"Unknown network '{network}'",
            network=network,
            available=sorted(catalogue),
        )
    urls = config.urls()
    if not urls:
        raise ValidationError(f"Network '{network}' has no nodes configured", network=network)
    return urls
