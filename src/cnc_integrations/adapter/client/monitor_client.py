"""Client for reading a running integration monitor."""

import asyncio
import logging
from typing import Any

import httpx

from ...models.api import (
    AdapterStatus,
    AdapterSummary,
    HealthResponse,
    IntegrationSummary,
)

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """Base exception for client errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class MonitorClient:
    """Client for the monitoring API served by ``MonitorServer``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the monitor client.

        Args:
            base_url: Base URL of the monitor (e.g., "http://localhost:8080")
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            retry_delay: Seconds before the first retry, doubled after each one
            transport: Optional httpx transport
        """
        self.base_url = base_url.rstrip("/")
        self.api_base = f"{self.base_url}/api/v1"

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=5),
            transport=transport,
        )

        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "MonitorClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    @staticmethod
    def _is_transient(exc: httpx.HTTPError) -> bool:
        # Client errors (4xx) are final; only server errors are retried
        if isinstance(exc, httpx.HTTPStatusError):
            return exc.response.status_code >= 500
        return isinstance(exc, httpx.RequestError)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request to the monitoring API, backing off on transient errors.

        Raises:
            httpx.HTTPError: If the request still fails after the retries
        """
        url = f"{self.api_base}{path}"
        delay = self.retry_delay

        for attempt in range(self.max_retries + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPError as e:
                if not self._is_transient(e):
                    raise
                if attempt == self.max_retries:
                    logger.error(
                        f"{method} {url} failed after {attempt + 1} attempt(s): {e}"
                    )
                    raise
                logger.warning(
                    f"{method} {url} failed ({e}), "
                    f"retry {attempt + 1}/{self.max_retries} in {delay:.2f}s"
                )
            await asyncio.sleep(delay)
            delay *= 2

        raise RuntimeError("Request retry loop completed without returning")

    async def health_check(self) -> HealthResponse:
        """Refresh and fetch adapter health from the monitor."""
        response = await self._request("GET", "/health")
        return HealthResponse(**response.json())

    async def list_adapters(self) -> list[AdapterSummary]:
        response = await self._request("GET", "/adapters")
        return [AdapterSummary(**item) for item in response.json()]

    async def get_adapter_status(self, adapter_id: str) -> AdapterStatus | None:
        """Fetch one adapter's status.

        Returns:
            AdapterStatus: Status snapshot, or None if the adapter is unknown

        Raises:
            ClientError: If the request fails
        """
        try:
            response = await self._request("GET", f"/adapters/{adapter_id}/status")
            return AdapterStatus(**response.json())
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise ClientError(f"Failed to get adapter status: {e}", e) from e

    async def get_diagnostics(self) -> dict[str, Any]:
        response = await self._request("GET", "/diagnostics")
        return response.json()

    async def list_integrations(self, plugin_id: str | None = None) -> list[IntegrationSummary]:
        params = {"plugin_id": plugin_id} if plugin_id else None
        response = await self._request("GET", "/integrations", params=params)
        return [IntegrationSummary(**item) for item in response.json()]
