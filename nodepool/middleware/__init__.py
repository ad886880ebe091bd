"""Middleware package — error hierarchy and exception handlers."""

from nodepool.middleware.error_handler import (
    NodePoolError,
    PoolExhaustedError,
    RpcError,
    ValidationError,
    register_error_handlers,
)

__all__ = [
    "NodePoolError",
    "PoolExhaustedError",
    "RpcError",
    "ValidationError",
    "register_error_handlers",
]
