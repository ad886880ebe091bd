"""Global error hierarchy and FastAPI exception handlers.

All node pool errors extend NodePoolError. The FastAPI exception handlers
catch these errors (plus Pydantic's RequestValidationError and unhandled exceptions)
and return a consistent JSON envelope: { success, data, error, meta }.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class NodePoolError(Exception):
    """Base error for all node pool errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class ValidationError(NodePoolError):
    """Malformed caller input, detected before any network access."""

    status_code = 422
    message = "Validation error"


class RpcError(NodePoolError):
    """The transport or the remote node reported a failure."""

    status_code = 502
    message = "RPC call failed"

    @property
    def endpoint(self) -> str | None:
        return self.details.get("endpoint")  # type: ignore[return-value]

    @property
    def method(self) -> str | None:
        return self.details.get("method")  # type: ignore[return-value]

    @property
    def code(self) -> int | None:
        return self.details.get("code")  # type: ignore[return-value]


class PoolExhaustedError(NodePoolError):
    """No node available for selection.

    Selection falls back to the default node instead, so this is never raised
    by NodePool itself.
    """

    status_code = 503
    message = "Node pool exhausted — no nodes available"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _envelope(
    status_code: int,
    error: str,
    meta: dict | None = None,
) -> JSONResponse:
    """Build a JSON envelope error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": error,
            "meta": meta,
        },
    )


async def _node_pool_error_handler(_request: Request, exc: NodePoolError) -> JSONResponse:
    """Handle NodePoolError subclasses."""
    meta = exc.details if exc.details else None
    return _envelope(exc.status_code, exc.message, meta=meta)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI / Pydantic RequestValidationError (422)."""
    field_errors = [
        {
            "field": " -> ".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return _envelope(
        status_code=422,
        error="Validation error",
        meta={"fields": field_errors},
    )


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: log with traceback, return generic 500."""
    logger.exception("Unhandled exception: %s", exc, exc_info=exc)
    return _envelope(status_code=500, error="Internal server error")


# ---------------------------------------------------------------------------
# Registration helper
# ---------------------------------------------------------------------------


def register_error_handlers(app: FastAPI) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(NodePoolError, _node_pool_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
