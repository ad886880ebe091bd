"""Endpoint health tracker for a single NEO JSON-RPC node.

Every RPC call made through a ``Node`` is benchmarked as a byproduct:

- call start: ``pending_requests`` +1, timer started, ``query:init`` emitted
- call success: ``pending_requests`` -1, latency / last seen / active updated,
  height or user agent updated for the matching method, ``query:success`` emitted
- call failure: ``pending_requests`` -1, last seen updated, marked inactive,
  previously observed latency and height kept, ``query:failed`` emitted

The bookkeeping lives in the node itself, so callers never manage it and every
call start is paired with exactly one call end, including on cancellation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from nodepool.integration.rpc_client import JsonRpcTransport
from nodepool.middleware.error_handler import RpcError
from nodepool.node.types import NodeMeta, QueryEvent, QueryEventType, RpcMethod
from nodepool.validators.height_validator import validate_height
from nodepool.validators.url_validator import validate_endpoint_url

if TYPE_CHECKING:
    from nodepool.integration.rpc_client import Transport

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_ID = 0

QueryListener = Callable[[QueryEvent], None]


class Node:
    """Wraps one network endpoint and derives health metadata from its calls.

    Parameters
    ----------
    endpoint:
        Absolute http(s) URL of the node's JSON-RPC interface.
    transport:
        Object implementing ``send(endpoint, method, params, request_id)``.
        Defaults to a ``JsonRpcTransport``.
    """

    def __init__(self, endpoint: str, transport: Transport | None = None) -> None:
        self._endpoint = validate_endpoint_url(endpoint)
        self._transport = transport if transport is not None else JsonRpcTransport()
        self._listeners: list[QueryListener] = []

        self.is_active: bool | None = None
        self.pending_requests: int = 0
        self.latency: float | None = None  # milliseconds
        self.block_height: int | None = None
        self.last_seen_timestamp: int | None = None  # epoch milliseconds
        self.user_agent: str | None = None

        logger.debug("Node created for endpoint %s", self._endpoint)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def __repr__(self) -> str:
        return (
            f"Node(endpoint={self._endpoint!r}, is_active={self.is_active}, "
            f"latency={self.latency}, block_height={self.block_height})"
        )

    # ------------------------------------------------------------------
    # RPC calls
    # ------------------------------------------------------------------

    async def get_block_count(self) -> int:
        """Return the chain height reported by this node."""
        result = await self.query(RpcMethod.GET_BLOCK_COUNT.value)
        return int(result)

    async def get_block(self, height: int, verbose: bool = True) -> Any:
        """Fetch the block at *height*.

        Raises ``ValidationError`` before any network access if *height* is not
        a non-negative integer.
        """
        validate_height(height)
        return await self.query(RpcMethod.GET_BLOCK.value, [height, 1 if verbose else 0])

    async def get_version(self) -> Any:
        return await self.query(RpcMethod.GET_VERSION.value)

    async def query(
        self,
        method: str,
        params: list[Any] | None = None,
        request_id: int = DEFAULT_REQUEST_ID,
    ) -> Any:
        """Send *method* / *params* to the node and return the RPC result.

        Raises
        ------
        RpcError
            If the transport fails or the node returns an error or a malformed
            result. Non-``RpcError`` transport exceptions are wrapped.
        """
        params = list(params) if params else []
        self._start_benchmark(method, params, request_id)
        started = time.monotonic()

        try:
            result = await self._transport.send(self._endpoint, method, params, request_id)
            block_height, user_agent = self._extract_meta(method, result)
        except RpcError as exc:
            self._stop_benchmark_failed(method, params, request_id, exc.message)
            raise
        except asyncio.CancelledError:
            self._stop_benchmark_failed(method, params, request_id, "Query cancelled")
            raise
        except Exception as exc:
            error = RpcError(
                f"{method} failed on {self._endpoint}: {exc}",
                endpoint=self._endpoint,
                method=method,
            )
            self._stop_benchmark_failed(method, params, request_id, error.message)
            raise error from exc

        latency = (time.monotonic() - started) * 1000
        self._stop_benchmark_succeeded(
            method, params, request_id, latency, block_height, user_agent
        )
        return result

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_meta(self) -> NodeMeta:
        return NodeMeta(
            endpoint=self._endpoint,
            is_active=self.is_active,
            pending_requests=self.pending_requests,
            latency=self.latency,
            block_height=self.block_height,
            last_seen_timestamp=self.last_seen_timestamp,
            user_agent=self.user_agent,
        )

    # ------------------------------------------------------------------
    # Event subscription
    # ------------------------------------------------------------------

    def subscribe(self, listener: QueryListener) -> None:
        """Register *listener* for this node's ``QueryEvent`` notifications."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: QueryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: QueryEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Query event listener error for %s (%s)",
                    self._endpoint,
                    event.type.value,
                )

    # ------------------------------------------------------------------
    # Benchmarking
    # ------------------------------------------------------------------

    def _extract_meta(self, method: str, result: Any) -> tuple[int | None, str | None]:
        """Pull height / user agent out of a result, rejecting malformed heights."""
        block_height: int | None = None
        user_agent: str | None = None

        if method == RpcMethod.GET_BLOCK_COUNT.value:
            block_height = _parse_height(result)
            if block_height is None:
                raise RpcError(
                    f"Malformed {method} result from {self._endpoint}: {result!r}",
                    endpoint=self._endpoint,
                    method=method,
                )
        elif method == RpcMethod.GET_VERSION.value and isinstance(result, dict):
            raw_agent = result.get("useragent")
            user_agent = str(raw_agent) if raw_agent is not None else None

        return block_height, user_agent

    def _start_benchmark(self, method: str, params: list[Any], request_id: int) -> None:
        self.pending_requests += 1
        logger.debug(
            "Query started: %s %s (pending=%d)",
            self._endpoint,
            method,
            self.pending_requests,
            extra={
                "endpoint": self._endpoint,
                "method": method,
                "pending_requests": self.pending_requests,
            },
        )
        self._emit(
            QueryEvent(
                type=QueryEventType.QUERY_INIT,
                endpoint=self._endpoint,
                method=method,
                request_id=request_id,
                params=params,
            )
        )

    def _stop_benchmark_succeeded(
        self,
        method: str,
        params: list[Any],
        request_id: int,
        latency: float,
        block_height: int | None,
        user_agent: str | None,
    ) -> None:
        self._decrease_pending_requests()
        self.latency = latency
        self.last_seen_timestamp = _now_ms()
        self.is_active = True
        if block_height is not None:
            self.block_height = block_height
        if user_agent is not None:
            self.user_agent = user_agent

        logger.debug(
            "Query succeeded: %s %s in %.1fms (pending=%d)",
            self._endpoint,
            method,
            latency,
            self.pending_requests,
            extra={
                "endpoint": self._endpoint,
                "method": method,
                "latency_ms": round(latency, 2),
                "block_height": block_height,
                "pending_requests": self.pending_requests,
            },
        )
        self._emit(
            QueryEvent(
                type=QueryEventType.QUERY_SUCCESS,
                endpoint=self._endpoint,
                method=method,
                request_id=request_id,
                params=params,
                latency=latency,
                block_height=block_height,
                user_agent=user_agent,
            )
        )

    def _stop_benchmark_failed(
        self,
        method: str,
        params: list[Any],
        request_id: int,
        error: str,
    ) -> None:
        self._decrease_pending_requests()
        self.last_seen_timestamp = _now_ms()
        self.is_active = False

        logger.debug(
            "Query failed: %s %s: %s (pending=%d)",
            self._endpoint,
            method,
            error,
            self.pending_requests,
            extra={
                "endpoint": self._endpoint,
                "method": method,
                "error_reason": error,
                "pending_requests": self.pending_requests,
            },
        )
        self._emit(
            QueryEvent(
                type=QueryEventType.QUERY_FAILED,
                endpoint=self._endpoint,
                method=method,
                request_id=request_id,
                params=params,
                error=error,
            )
        )

    def _decrease_pending_requests(self) -> None:
        if self.pending_requests <= 0:
            logger.warning("Pending request counter underflow on %s", self._endpoint)
            self.pending_requests = 0
            return
        self.pending_requests -= 1


def _parse_height(result: Any) -> int | None:
    """Return *result* as a non-negative integer height, or None."""
    if isinstance(result, bool):
        return None
    if isinstance(result, float) and not result.is_integer():
        return None
    try:
        height = int(result)
    except (TypeError, ValueError):
        return None
    return height if height >= 0 else None


def _now_ms() -> int:
    return int(time.time() * 1000)
