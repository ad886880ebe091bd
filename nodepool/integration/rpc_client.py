"""JSON-RPC 2.0 transport over HTTP.

Posts ``{"jsonrpc": "2.0", "method", "params", "id"}`` to a node endpoint and
returns the ``result`` member. Every failure mode (connection error, timeout,
non-2xx status, non-JSON body, JSON-RPC ``error`` object, missing ``result``)
is raised as ``RpcError``. No retries: callers decide what a failure means.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from nodepool.middleware.error_handler import RpcError

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"


class Transport(Protocol):
    """Capability consumed by ``Node``: send one RPC call, return its result."""

    async def send(
        self,
        endpoint: str,
        method: str,
        params: list[Any],
        request_id: int,
    ) -> Any: ...


class JsonRpcTransport:
    """HTTP client for node JSON-RPC interfaces.

    Parameters
    ----------
    timeout_seconds:
        Socket timeout per call (default 10).
    """

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self._timeout_seconds = timeout_seconds

    @staticmethod
    def build_payload(method: str, params: list[Any], request_id: int) -> dict[str, Any]:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "method": method,
            "params": params,
            "id": request_id,
        }

    async def send(
        self,
        endpoint: str,
        method: str,
        params: list[Any],
        request_id: int,
    ) -> Any:
        """POST a JSON-RPC request and return its ``result``.

        Raises
        ------
        RpcError
            On any transport or protocol failure.
        """
        payload = self.build_payload(method, params, request_id)

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_seconds)
            ) as client:
                response = await client.post(endpoint, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise RpcError(
                f"{method} timed out after {self._timeout_seconds}s on {endpoint}",
                endpoint=endpoint,
                method=method,
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise RpcError(
                f"{method} returned HTTP {exc.response.status_code} from {endpoint}",
                endpoint=endpoint,
                method=method,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise RpcError(
                f"{method} failed on {endpoint}: {exc}",
                endpoint=endpoint,
                method=method,
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcError(
                f"Non-JSON response to {method} from {endpoint}",
                endpoint=endpoint,
                method=method,
            ) from exc

        if not isinstance(data, dict):
            raise RpcError(
                f"Malformed JSON-RPC response to {method} from {endpoint}",
                endpoint=endpoint,
                method=method,
            )

        error = data.get("error")
        if error is not None:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.debug(
                "Remote error from %s for %s: code=%s message=%s",
                endpoint,
                method,
                code,
                message,
            )
            raise RpcError(
                f"{method} rejected by {endpoint}: {message}",
                endpoint=endpoint,
                method=method,
                code=code,
            )

        if "result" not in data:
            raise RpcError(
                f"No result in response to {method} from {endpoint}",
                endpoint=endpoint,
                method=method,
            )

        return data["result"]
