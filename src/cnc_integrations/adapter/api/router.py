"""API router utilities for the integration monitor."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..hub import IntegrationHub
from .endpoints import create_monitoring_api

logger = logging.getLogger(__name__)


class MonitorRouter:
    """Builds the monitoring application around an integration hub."""

    def __init__(self, hub: IntegrationHub, monitor_interval: float | None = None):
        """Initialize the router with a hub.

        Args:
            hub: The integration hub to expose via API
            monitor_interval: Start periodic health checks at this interval
                (seconds) while the app runs
        """
        self.hub = hub
        self.monitor_interval = monitor_interval
        self.app = FastAPI(
            title="CNC Integrations Monitor",
            description="Health and status of registered integration adapters",
            version=hub.version,
            docs_url="/docs",
            redoc_url="/redoc",
            lifespan=self._lifespan,
        )
        self._setup_middleware()
        self._setup_routes()
        self._setup_exception_handlers()

    def _setup_middleware(self) -> None:
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

    def _setup_routes(self) -> None:
        api_router = create_monitoring_api(self.hub)
        self.app.include_router(api_router, prefix="/api/v1", tags=["Monitor API"])

        @self.app.get("/", tags=["Root"])
        async def root() -> dict[str, Any]:
            """Root endpoint with basic information."""
            return {
                "message": "CNC Integrations Monitor",
                "version": self.hub.version,
                "adapters": len(self.hub.list_adapters()),
                "api_docs": "/docs",
                "health_check": "/api/v1/health",
            }

    def _setup_exception_handlers(self) -> None:
        @self.app.exception_handler(404)
        async def not_found_handler(request: Request, exc: Any) -> JSONResponse:
            return JSONResponse(
                status_code=404,
                content={
                    "error_type": "NotFound",
                    "error_message": getattr(exc, "detail", "Resource not found"),
                    "path": str(request.url.path),
                },
            )

        @self.app.exception_handler(500)
        async def internal_error_handler(request: Request, exc: Any) -> JSONResponse:
            logger.exception("Internal server error")
            return JSONResponse(
                status_code=500,
                content={
                    "error_type": "InternalError",
                    "error_message": "An internal error occurred",
                },
            )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        await self.startup()
        try:
            yield
        finally:
            await self.shutdown()

    async def startup(self) -> None:
        if self.monitor_interval:
            await self.hub.start_health_monitoring(self.monitor_interval)
        logger.info(f"Monitor started with {len(self.hub.list_adapters())} adapter(s)")

    async def shutdown(self) -> None:
        try:
            await self.hub.shutdown()
            logger.info("Integration hub shut down")
        except Exception:
            logger.exception("Error during hub shutdown")

    def get_app(self) -> FastAPI:
        """Get the FastAPI application.

        Returns:
            FastAPI: The configured FastAPI application
        """
        return self.app
