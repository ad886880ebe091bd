"""FastAPI application entry point with lifespan management.

Startup: configure logging, start the node pool's background diagnostics.
Shutdown: stop the diagnostics loops and cancel in-flight samples.

Run with ``uvicorn nodepool.main:app --port $NODEPOOL_PORT``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from nodepool.config.networks import load_networks
from nodepool.config.settings import PoolSettings
from nodepool.integration.rpc_client import JsonRpcTransport
from nodepool.logging_config import configure_logging
from nodepool.middleware.error_handler import register_error_handlers
from nodepool.pool.manager import NodePool
from nodepool.routers.nodes import create_nodes_router

logger = logging.getLogger(__name__)


def build_pool(settings: PoolSettings) -> NodePool:
    """Construct a NodePool from settings and the network catalogue."""
    networks = load_networks(settings.networks_path)
    return NodePool(
        settings.network,
        diagnostic_interval_ms=settings.diagnostic_interval_ms,
        leaderboard_interval_ms=settings.leaderboard_interval_ms,
        transport=JsonRpcTransport(timeout_seconds=settings.rpc_timeout_seconds),
        networks=networks,
    )


def create_app(
    settings: PoolSettings | None = None,
    pool: NodePool | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The pool is built eagerly so that an unknown network or a malformed
    endpoint fails at startup rather than on the first request.
    """
    settings = settings if settings is not None else PoolSettings()
    pool = pool if pool is not None else build_pool(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown logic."""
        configure_logging(settings.log_level)
        logger.info(
            "Starting node pool service for %s on port %d",
            settings.network,
            settings.port,
            extra={"network": settings.network},
        )

        await pool.start()

        yield

        logger.info("Shutting down node pool service…")
        await pool.stop()
        logger.info("Node pool service shut down")

    app = FastAPI(
        title="NEO Node Pool",
        version="0.1.0",
        lifespan=lifespan,
    )

    register_error_handlers(app)
    app.include_router(create_nodes_router(pool=pool))
    app.state.pool = pool

    return app


app = create_app()
