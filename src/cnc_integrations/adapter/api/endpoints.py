"""Read-only monitoring endpoints for an integration hub."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from ...models.api import (
    AdapterStatus,
    AdapterSummary,
    AdapterType,
    HealthResponse,
    IntegrationSummary,
)
from ..hub import IntegrationHub

logger = logging.getLogger(__name__)


def create_monitoring_api(hub: IntegrationHub) -> APIRouter:
    """Create FastAPI router exposing the hub's adapters and integrations.

    Args:
        hub: The integration hub to expose

    Returns:
        APIRouter: Router with monitoring endpoints
    """
    router = APIRouter()

    @router.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Refresh and report adapter health."""
        try:
            return await hub.health()
        except Exception as e:
            logger.exception("Health check failed")
            raise HTTPException(
                status_code=503, detail=f"Health check failed: {str(e)}"
            )

    @router.get("/adapters", response_model=list[AdapterSummary], tags=["Adapters"])
    async def list_adapters(adapter_type: AdapterType | None = None) -> list[AdapterSummary]:
        """List registered adapters, optionally filtered by type."""
        healthy = {a.id for a in hub.get_healthy_adapters()}
        return [
            AdapterSummary(info=a.info, connected=a.connected, healthy=a.id in healthy)
            for a in hub.list_adapters(adapter_type)
        ]

    @router.get(
        "/adapters/{adapter_id}/status",
        response_model=AdapterStatus,
        tags=["Adapters"],
    )
    async def get_adapter_status(adapter_id: str) -> AdapterStatus:
        """Get the status snapshot of one adapter."""
        status = await hub.get_adapter_status(adapter_id)
        if status is None:
            raise HTTPException(
                status_code=404, detail=f"Adapter '{adapter_id}' not found"
            )
        return status

    @router.get("/diagnostics", tags=["Diagnostics"])
    async def get_diagnostics() -> dict[str, Any]:
        """Counts of adapters, integrations and executions."""
        return hub.diagnostics()

    @router.get(
        "/integrations",
        response_model=list[IntegrationSummary],
        tags=["Integrations"],
    )
    async def list_integrations(plugin_id: str | None = None) -> list[IntegrationSummary]:
        """List integrations without their credentials."""
        return [
            IntegrationSummary.from_definition(i)
            for i in hub.list_integrations(plugin_id)
        ]

    return router
