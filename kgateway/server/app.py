# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel Gateway REST API Server

The kernel routes are served both at the root and under /v1.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from kgateway import __version__
from kgateway.core.config import GatewayConfig, get_config
from kgateway.core.exceptions import GatewayError
from kgateway.core.logger import get_logger
from kgateway.kernels.manager import KernelManager
from kgateway.server.routes import router
from kgateway.server.schemas import ApiResponse
from kgateway.server.sysinfo import HostMetrics

logger = get_logger("server")


def create_app(
    config: Optional[GatewayConfig] = None,
    manager: Optional[KernelManager] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Gateway configuration (global config if omitted)
        manager: Kernel manager to serve; built from config if omitted

    Returns:
        Configured FastAPI application

    Raises:
        ConfigError: the worker interpreter is not configured
    """
    if config is None:
        config = get_config()
    if manager is None:
        manager = KernelManager.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(
            f"kernel-gateway starting, {manager.available_segments} port segments free"
        )
        yield
        logger.info("Shutting down kernel-gateway, stopping kernels")
        await manager.shutdown()

    app = FastAPI(
        title="Kernel Gateway",
        description="Launches and manages compute-kernel workers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.kernel_manager = manager
    app.state.host_metrics = HostMetrics()

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=500,
            content=ApiResponse.fail(exc.message).model_dump(),
        )

    @app.get("/health", tags=["health"])
    async def health():
        """Health check endpoint."""
        return PlainTextResponse("OK")

    app.include_router(router)
    app.include_router(router, prefix="/v1")

    return app
