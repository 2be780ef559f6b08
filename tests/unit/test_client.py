"""Unit tests for client components."""

from typing import Any
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest
from cnc_integrations.adapter.client.monitor_client import ClientError, MonitorClient
from cnc_integrations.models.api import (
    AdapterStatus,
    AdapterSummary,
    AdapterType,
    HealthResponse,
    IntegrationSummary,
)


class TestMonitorClient:
    """Test cases for MonitorClient."""

    @pytest.fixture
    def mock_response_data(self) -> dict[str, Any]:
        """Mock response data for tests."""
        return {
            "health_response": {
                "status": "degraded",
                "version": "0.1.0",
                "adapters": {"files": True, "history": False},
                "uptime_seconds": 3600.0,
            },
            "adapters": [
                {
                    "info": {
                        "id": "files",
                        "name": "Program files",
                        "type": "file_system",
                        "version": "1.0.0",
                    },
                    "connected": True,
                    "healthy": True,
                }
            ],
            "adapter_status": {
                "connected": True,
                "last_activity": "2024-01-01T12:00:00Z",
                "connection_count": 3,
                "error_count": 1,
                "latency": 1.5,
                "metadata": {"adapter_id": "history"},
            },
            "integrations": [
                {
                    "id": "programs",
                    "name": "Program files",
                    "adapter_id": "files",
                    "mapping_count": 0,
                    "metadata": {"plugin_id": "program-manager"},
                }
            ],
        }

    @pytest.mark.asyncio
    async def test_client_context_manager(self) -> None:
        """Test MonitorClient as async context manager."""
        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value = mock_instance

            async with MonitorClient("http://test/") as client:
                assert client.base_url == "http://test"
                assert client.api_base == "http://test/api/v1"
                assert client._client == mock_instance

            mock_instance.aclose.assert_called_once()

    @pytest.mark.asyncio
    async def test_health_check_success(
        self, mock_response_data: dict[str, Any]
    ) -> None:
        """Test successful health_check call."""
        mock_response = Mock()
        mock_response.json.return_value = mock_response_data["health_response"]

        async with MonitorClient("http://test") as client:
            with patch.object(
                client, "_request", return_value=mock_response
            ) as mock_request:
                health = await client.health_check()

                assert isinstance(health, HealthResponse)
                assert health.status == "degraded"
                assert health.adapters == {"files": True, "history": False}

                mock_request.assert_called_with("GET", "/health")

    @pytest.mark.asyncio
    async def test_list_adapters_success(
        self, mock_response_data: dict[str, Any]
    ) -> None:
        """Test successful list_adapters call."""
        mock_response = Mock()
        mock_response.json.return_value = mock_response_data["adapters"]

        async with MonitorClient("http://test") as client:
            with patch.object(
                client, "_request", return_value=mock_response
            ) as mock_request:
                adapters = await client.list_adapters()

                assert len(adapters) == 1
                assert isinstance(adapters[0], AdapterSummary)
                assert adapters[0].info.type is AdapterType.FILE_SYSTEM
                assert adapters[0].healthy

                mock_request.assert_called_with("GET", "/adapters")

    @pytest.mark.asyncio
    async def test_get_adapter_status_success(
        self, mock_response_data: dict[str, Any]
    ) -> None:
        """Test successful get_adapter_status call."""
        mock_response = Mock()
        mock_response.json.return_value = mock_response_data["adapter_status"]

        async with MonitorClient("http://test") as client:
            with patch.object(
                client, "_request", return_value=mock_response
            ) as mock_request:
                status = await client.get_adapter_status("history")

                assert isinstance(status, AdapterStatus)
                assert status.connection_count == 3
                assert status.latency == 1.5

                mock_request.assert_called_with("GET", "/adapters/history/status")

    @pytest.mark.asyncio
    async def test_get_adapter_status_not_found(self) -> None:
        """Test get_adapter_status with 404 response."""
        async with MonitorClient("http://test") as client:
            with patch.object(client, "_request") as mock_request:
                mock_response = Mock()
                mock_response.status_code = 404
                mock_request.side_effect = httpx.HTTPStatusError(
                    "Not found", request=Mock(), response=mock_response
                )

                assert await client.get_adapter_status("missing") is None

    @pytest.mark.asyncio
    async def test_get_adapter_status_http_error(self) -> None:
        """Test get_adapter_status with a server error."""
        async with MonitorClient("http://test") as client:
            with patch.object(client, "_request") as mock_request:
                mock_response = Mock()
                mock_response.status_code = 500
                mock_request.side_effect = httpx.HTTPStatusError(
                    "HTTP 500", request=Mock(), response=mock_response
                )

                with pytest.raises(ClientError):
                    await client.get_adapter_status("history")

    @pytest.mark.asyncio
    async def test_list_integrations_with_filter(
        self, mock_response_data: dict[str, Any]
    ) -> None:
        """Test list_integrations passes the plugin filter."""
        mock_response = Mock()
        mock_response.json.return_value = mock_response_data["integrations"]

        async with MonitorClient("http://test") as client:
            with patch.object(
                client, "_request", return_value=mock_response
            ) as mock_request:
                integrations = await client.list_integrations("program-manager")

                assert isinstance(integrations[0], IntegrationSummary)
                assert integrations[0].metadata.plugin_id == "program-manager"

                mock_request.assert_called_with(
                    "GET", "/integrations", params={"plugin_id": "program-manager"}
                )

    @pytest.mark.asyncio
    async def test_get_diagnostics(self) -> None:
        """Test get_diagnostics returns the raw payload."""
        mock_response = Mock()
        mock_response.json.return_value = {"adapters": {"total": 0}}

        async with MonitorClient("http://test") as client:
            with patch.object(client, "_request", return_value=mock_response):
                assert await client.get_diagnostics() == {"adapters": {"total": 0}}


class TestMonitorClientRetries:
    """Test cases for the request retry loop."""

    @pytest.mark.asyncio
    async def test_retry_on_server_error(self) -> None:
        """Test that 5xx responses are retried."""
        statuses = iter([503, 200])
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(next(statuses), json={"adapters": {}})

        async with MonitorClient(
            "http://monitor",
            max_retries=2,
            retry_delay=0,
            transport=httpx.MockTransport(handler),
        ) as client:
            assert await client.get_diagnostics() == {"adapters": {}}

        assert seen == ["/api/v1/diagnostics", "/api/v1/diagnostics"]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self) -> None:
        """Test that 4xx responses are raised immediately."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(400)

        async with MonitorClient(
            "http://monitor", max_retries=3, transport=httpx.MockTransport(handler)
        ) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_diagnostics()

        assert calls == 1

    @pytest.mark.asyncio
    async def test_connection_error_exhausts_retries(self) -> None:
        """Test that connection errors propagate after the retries."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("connection refused", request=request)

        async with MonitorClient(
            "http://monitor",
            max_retries=2,
            retry_delay=0,
            transport=httpx.MockTransport(handler),
        ) as client:
            with pytest.raises(httpx.ConnectError):
                await client.health_check()

        assert calls == 3

    @pytest.mark.asyncio
    async def test_backoff_doubles(self) -> None:
        """Test that the delay doubles between attempts."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        with patch(
            "cnc_integrations.adapter.client.monitor_client.asyncio.sleep",
            new_callable=AsyncMock,
        ) as mock_sleep:
            async with MonitorClient(
                "http://monitor",
                max_retries=2,
                retry_delay=0.5,
                transport=httpx.MockTransport(handler),
            ) as client:
                with pytest.raises(httpx.HTTPStatusError):
                    await client.list_adapters()

        assert [c.args[0] for c in mock_sleep.await_args_list] == [0.5, 1.0]
