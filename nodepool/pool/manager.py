"""Node pool manager with policy-based selection and background diagnostics.

Nodes are created from an ordered list of candidate addresses for one network.
Each slot starts uninitialized and gets its ``Node`` the first time it is
selected or sampled. Selection reads live node metadata:

- default: always the first configured node
- fastest: the active node with the lowest latency
- highest: the active node with the greatest block height

Both fastest and highest fall back to the default node when no active node
has the relevant metric, and break ties by pool order.

The background loops run for the lifetime of the pool: they start at
construction when an event loop is running, otherwise on the first delegated
RPC call or an explicit ``start()``, and end with ``stop()``.

When ``diagnostic_interval_ms`` > 0, a background loop samples one node chosen
uniformly at random every period with a height query. Samples run as
fire-and-forget tasks so one slow endpoint never delays the next sample, and
their failures only mark the sampled node inactive.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from nodepool.config.networks import NetworkConfig, get_network_urls
from nodepool.integration.rpc_client import JsonRpcTransport
from nodepool.middleware.error_handler import RpcError, ValidationError
from nodepool.node.node import Node
from nodepool.node.types import QueryEvent
from nodepool.validators.url_validator import validate_endpoint_url

if TYPE_CHECKING:
    from nodepool.integration.rpc_client import Transport

logger = logging.getLogger(__name__)

EventSink = Callable[[QueryEvent], None]


class SelectionPolicy(str, Enum):
    """Rule used to choose the current node."""

    DEFAULT = "default"
    FASTEST = "fastest"
    HIGHEST = "highest"


class SlotState(str, Enum):
    """Lazy construction state of a pool slot."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


@dataclass
class _NodeSlot:
    """One configured address and, once touched, its Node."""

    address: str
    node: Node | None = None

    @property
    def state(self) -> SlotState:
        return SlotState.UNINITIALIZED if self.node is None else SlotState.INITIALIZED


class NodePool:
    """Owns the nodes of one network and selects the current node by policy.

    Parameters
    ----------
    network:
        Network name used to look up candidate addresses in *networks*.
    endpoints:
        Explicit ordered addresses. Overrides the network lookup when given.
    diagnostic_interval_ms:
        Period of the background height sampler. ``0`` disables it.
    leaderboard_interval_ms:
        Period for logging the current fastest and highest node. ``0`` disables it.
    event_sink:
        Optional callable receiving every ``QueryEvent`` of every node in the pool.
    transport:
        Transport shared by all nodes. Defaults to a ``JsonRpcTransport``.
    networks:
        Network catalogue. Defaults to the built-in one.
    """

    def __init__(
        self,
        network: str = "testnet",
        *,
        endpoints: Sequence[str] | None = None,
        diagnostic_interval_ms: int = 0,
        leaderboard_interval_ms: int = 0,
        event_sink: EventSink | None = None,
        transport: Transport | None = None,
        networks: dict[str, NetworkConfig] | None = None,
    ) -> None:
        if endpoints is not None:
            addresses = list(endpoints)
            if not addresses:
                raise ValidationError("Node pool needs at least one endpoint", network=network)
        else:
            addresses = get_network_urls(network, networks)

        if diagnostic_interval_ms < 0:
            raise ValidationError(
                "diagnostic_interval_ms must be >= 0",
                diagnostic_interval_ms=diagnostic_interval_ms,
            )
        if leaderboard_interval_ms < 0:
            raise ValidationError(
                "leaderboard_interval_ms must be >= 0",
                leaderboard_interval_ms=leaderboard_interval_ms,
            )

        self.network = network
        self._slots: list[_NodeSlot] = [
            _NodeSlot(address=validate_endpoint_url(address)) for address in addresses
        ]
        self._transport = transport if transport is not None else JsonRpcTransport()
        self._event_sink = event_sink
        self._diagnostic_interval_ms = diagnostic_interval_ms
        self._leaderboard_interval_ms = leaderboard_interval_ms

        self._diagnostic_task: asyncio.Task[None] | None = None
        self._leaderboard_task: asyncio.Task[None] | None = None
        self._sample_tasks: set[asyncio.Task[None]] = set()
        self._autostart = True

        self._current_node: Node = self._init_node(0)

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, diagnostics start on first use")
        else:
            self._start_loops()

        logger.info(
            "Node pool for %s initialized with %d endpoints (diagnostic interval %dms)",
            network,
            len(self._slots),
            diagnostic_interval_ms,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background loops enabled by configuration."""
        if self.is_running:
            logger.warning("Node pool diagnostics already started — skipping")
            return
        self._start_loops()

    def _start_loops(self) -> None:
        self._autostart = False
        if self.is_running:
            return

        if self._diagnostic_interval_ms > 0:
            self._diagnostic_task = asyncio.create_task(
                self._diagnostic_loop(), name=f"nodepool-diagnostic-{self.network}"
            )
        if self._leaderboard_interval_ms > 0:
            self._leaderboard_task = asyncio.create_task(
                self._leaderboard_loop(), name=f"nodepool-leaderboard-{self.network}"
            )

        if self.is_running:
            logger.info("Node pool diagnostics started for %s", self.network)

    async def stop(self) -> None:
        """Cancel the background loops and any in-flight diagnostic samples."""
        self._autostart = False
        tasks = [t for t in (self._diagnostic_task, self._leaderboard_task) if t is not None]
        tasks.extend(self._sample_tasks)
        if not tasks:
            return

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._diagnostic_task = None
        self._leaderboard_task = None
        self._sample_tasks.clear()
        logger.info("Node pool diagnostics stopped for %s", self.network)

    @property
    def is_running(self) -> bool:
        return self._diagnostic_task is not None or self._leaderboard_task is not None

    async def __aenter__(self) -> NodePool:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_default_node(self) -> Node:
        return self._set_current_node(self._init_node(0))

    def set_fastest_node(self) -> Node:
        return self._set_current_node(self.get_fastest_node())

    def set_highest_node(self) -> Node:
        return self._set_current_node(self.get_highest_node())

    def apply_policy(self, policy: SelectionPolicy | str) -> Node:
        """Set the current node according to *policy* and return it."""
        try:
            policy = SelectionPolicy(policy)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown selection policy: {policy!r}",
                available=[p.value for p in SelectionPolicy],
            ) from exc

        if policy is SelectionPolicy.FASTEST:
            return self.set_fastest_node()
        if policy is SelectionPolicy.HIGHEST:
            return self.set_highest_node()
        return self.set_default_node()

    def get_fastest_node(self) -> Node:
        candidates = [node for node in self._active_nodes() if node.latency is not None]
        if not candidates:
            return self._init_node(0)
        # min() keeps the first of equal values, so ties resolve by pool order
        return min(candidates, key=lambda node: node.latency)  # type: ignore[arg-type, return-value]

    def get_highest_node(self) -> Node:
        candidates = [node for node in self._active_nodes() if node.block_height is not None]
        if not candidates:
            return self._init_node(0)
        return max(candidates, key=lambda node: node.block_height)  # type: ignore[arg-type, return-value]

    def get_current_node(self) -> Node:
        return self._current_node

    def get_current_node_url(self) -> str:
        return self._current_node.endpoint

    def get_nodes(self) -> list[Node]:
        """Return the initialized nodes in pool order."""
        return [slot.node for slot in self._slots if slot.node is not None]

    @property
    def addresses(self) -> list[str]:
        return [slot.address for slot in self._slots]

    # ------------------------------------------------------------------
    # Delegated RPC calls
    # ------------------------------------------------------------------

    async def get_block_count(self) -> int:
        self._ensure_started()
        return await self._current_node.get_block_count()

    async def get_block(self, height: int, verbose: bool = True) -> Any:
        self._ensure_started()
        return await self._current_node.get_block(height, verbose)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def diagnose_random_node(self) -> asyncio.Task[None]:
        """Sample one uniformly chosen node in the background and return the task."""
        index = random.randrange(len(self._slots))
        task = asyncio.create_task(
            self.diagnose_node(index), name=f"nodepool-sample-{self.network}-{index}"
        )
        self._sample_tasks.add(task)
        task.add_done_callback(self._sample_tasks.discard)
        return task

    async def diagnose_node(self, index: int) -> None:
        """Issue a height query to the node in slot *index*.

        Failures are absorbed: the node's own bookkeeping marks it inactive.
        """
        node = self._init_node(index)
        logger.debug("=> #%d node: %s", index, node.endpoint)

        try:
            height = await node.get_block_count()
        except RpcError as exc:
            logger.debug("<= #%d node: %s error: %s", index, node.endpoint, exc.message)
        except Exception:
            logger.exception("Diagnostic sample crashed for node %s", node.endpoint)
        else:
            logger.debug(
                "<= #%d node: %s block count: %d (%.1fms)",
                index,
                node.endpoint,
                height,
                node.latency or 0.0,
            )

    async def _diagnostic_loop(self) -> None:
        interval = self._diagnostic_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            self.diagnose_random_node()

    async def _leaderboard_loop(self) -> None:
        interval = self._leaderboard_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            self.log_leaderboard()

    def log_leaderboard(self) -> None:
        fastest = self.get_fastest_node()
        highest = self.get_highest_node()
        logger.info(
            "Fastest node: %s latency: %s pending requests: %d",
            fastest.endpoint,
            fastest.latency,
            fastest.pending_requests,
        )
        logger.info(
            "Highest node: %s block height: %s pending requests: %d",
            highest.endpoint,
            highest.block_height,
            highest.pending_requests,
        )

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Return pool statistics for the health endpoint."""
        nodes = self.get_nodes()
        active = sum(1 for n in nodes if n.is_active is True)
        inactive = sum(1 for n in nodes if n.is_active is False)

        per_node = []
        for index, slot in enumerate(self._slots):
            entry: dict[str, Any] = {
                "index": index,
                "endpoint": slot.address,
                "state": slot.state.value,
            }
            if slot.node is not None:
                entry.update(slot.node.get_meta().to_dict())
            per_node.append(entry)

        return {
            "network": self.network,
            "total": len(self._slots),
            "initialized": len(nodes),
            "active": active,
            "inactive": inactive,
            "unknown": len(self._slots) - active - inactive,
            "current": self._current_node.endpoint,
            "diagnostics_running": self._diagnostic_task is not None,
            "nodes": per_node,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_started(self) -> None:
        if self._autostart:
            self._start_loops()

    def _active_nodes(self) -> list[Node]:
        return [node for node in self.get_nodes() if node.is_active is True]

    def _set_current_node(self, node: Node) -> Node:
        self._current_node = node
        logger.debug("Current node set to %s", node.endpoint)
        return node

    def _init_node(self, index: int) -> Node:
        """Return the node in slot *index*, constructing it on first touch."""
        slot = self._slots[index]
        if slot.node is None:
            slot.node = Node(slot.address, transport=self._transport)
            slot.node.subscribe(self._republish)
            logger.debug("Initialized node #%d: %s", index, slot.address)
        return slot.node

    def _republish(self, event: QueryEvent) -> None:
        if self._event_sink is not None:
            self._event_sink(event)
