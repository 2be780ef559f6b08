"""Hub that owns adapters, integrations and their executions."""

import asyncio
import copy
import logging
import time
import uuid
from collections import Counter
from collections.abc import Mapping
from typing import Any

from .._version import __version__
from ..models.api import (
    AdapterOperation,
    AdapterStatus,
    AdapterType,
    DataMapping,
    ExecutionStatus,
    HealthResponse,
    IntegrationDefinition,
    IntegrationExecution,
    utc_now,
)
from ..utils.validation import validate_request
from .errors import IntegrationError
from .models.framework import AdapterConfig, IntegrationAdapter

logger = logging.getLogger(__name__)

_MISSING = object()


def get_path(data: Any, path: str) -> Any:
    """Look up a dot-notation path; returns a sentinel when absent."""
    current = data
    for key in path.split("."):
        if isinstance(current, Mapping) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return _MISSING
    return current


def set_path(data: dict[str, Any], path: str, value: Any) -> None:
    """Assign ``value`` at a dot-notation path, creating dicts on the way."""
    *parents, last = path.split(".")
    target = data
    for key in parents:
        if not isinstance(target.get(key), dict):
            target[key] = {}
        target = target[key]
    target[last] = value


def _has_parent(data: dict[str, Any], path: str) -> bool:
    parent, _, _ = path.rpartition(".")
    return not parent or isinstance(get_path(data, parent), Mapping)


def apply_mappings(
    data: dict[str, Any], mappings: list[DataMapping], direction: str
) -> dict[str, Any]:
    """Return a copy of ``data`` with the mappings of one direction applied."""
    result = copy.deepcopy(data)
    for mapping in mappings:
        if mapping.direction != direction:
            continue
        value = get_path(result, mapping.source)
        if value is _MISSING:
            # Defaults only fill a field inside an object the payload already has
            if mapping.default is None or not _has_parent(result, mapping.target):
                continue
            value = mapping.default
        try:
            set_path(result, mapping.target, copy.deepcopy(value))
        except (TypeError, AttributeError) as e:
            logger.error(f"Data mapping failed for {mapping.id}: {e}")
    return result


class IntegrationHub:
    """Registry of adapters and the integrations bound to them.

    The hub never runs work in the background unless health monitoring is
    started explicitly.
    """

    def __init__(
        self, version: str = __version__, max_executions: int = 1000
    ) -> None:
        self.version = version
        self._adapters: dict[str, IntegrationAdapter] = {}
        self._integrations: dict[str, IntegrationDefinition] = {}
        self._executions: dict[str, IntegrationExecution] = {}
        self._max_executions = max_executions
        self._health: dict[str, bool] = {}
        self._started = time.monotonic()
        self._check_interval = 30.0  # Health check interval in seconds
        self._running = False
        self._health_check_task: asyncio.Task | None = None

    # Adapters

    async def register_adapter(
        self,
        adapter: IntegrationAdapter,
        config: AdapterConfig | Mapping[str, Any] | None = None,
    ) -> None:
        """Register an adapter, initializing it when a config is given.

        Args:
            adapter: The adapter to register
            config: Optional configuration passed to ``initialize``

        Raises:
            IntegrationError: If an adapter with the same id is registered
            ConfigurationError: If the configuration is invalid
        """
        if adapter.id in self._adapters:
            raise IntegrationError(f"Adapter {adapter.id} already registered")

        if config is not None:
            await adapter.initialize(config)

        self._adapters[adapter.id] = adapter
        self._health[adapter.id] = False
        logger.info(f"Integration adapter registered: {adapter.id}")

    async def unregister_adapter(self, adapter_id: str) -> bool:
        """Shut down and remove an adapter with its integrations.

        Returns:
            bool: True if the adapter was registered
        """
        adapter = self._adapters.pop(adapter_id, None)
        if adapter is None:
            return False

        self._health.pop(adapter_id, None)
        for integration_id in [
            i.id for i in self._integrations.values() if i.adapter_id == adapter_id
        ]:
            del self._integrations[integration_id]

        try:
            await adapter.shutdown()
        except Exception as e:
            logger.error(f"Error shutting down adapter {adapter_id}: {e}")

        logger.info(f"Unregistered adapter: {adapter_id}")
        return True

    def get_adapter(self, adapter_id: str) -> IntegrationAdapter | None:
        return self._adapters.get(adapter_id)

    def list_adapters(
        self, adapter_type: AdapterType | None = None
    ) -> list[IntegrationAdapter]:
        adapters = list(self._adapters.values())
        if adapter_type is not None:
            adapters = [a for a in adapters if a.type == adapter_type]
        return adapters

    async def get_adapter_status(self, adapter_id: str) -> AdapterStatus | None:
        adapter = self._adapters.get(adapter_id)
        return await adapter.get_status() if adapter else None

    # Integrations

    async def create_integration(self, definition: IntegrationDefinition) -> None:
        """Validate a definition, connect its adapter and store it.

        Raises:
            IntegrationError: If validation or the connection test fails
        """
        errors = []
        if definition.id in self._integrations:
            errors.append(f"Integration {definition.id} already exists")
        if definition.adapter_id not in self._adapters:
            errors.append(f"Adapter {definition.adapter_id} not found")
        if not definition.metadata.plugin_id.strip():
            errors.append("Plugin ID is required")
        if errors:
            raise IntegrationError(
                f"Integration validation failed: {', '.join(errors)}",
                details=errors,
            )

        adapter = self._adapters[definition.adapter_id]
        result = await adapter.connect(definition.credentials)
        if not result.success:
            logger.error(
                f"Failed to create integration {definition.id}: {result.error}"
            )
            raise IntegrationError(
                f"Connection test failed: {result.error}",
                details={"adapter_id": adapter.id},
            )

        self._integrations[definition.id] = definition
        logger.info(f"Integration created: {definition.id}")

    def get_integration(self, integration_id: str) -> IntegrationDefinition | None:
        return self._integrations.get(integration_id)

    def list_integrations(self, plugin_id: str | None = None) -> list[IntegrationDefinition]:
        integrations = list(self._integrations.values())
        if plugin_id is not None:
            integrations = [i for i in integrations if i.metadata.plugin_id == plugin_id]
        return integrations

    def remove_integration(self, integration_id: str) -> bool:
        if self._integrations.pop(integration_id, None) is None:
            return False
        logger.info(f"Integration removed: {integration_id}")
        return True

    async def execute_integration(
        self,
        integration_id: str,
        operation: AdapterOperation | Mapping[str, Any],
    ) -> IntegrationExecution:
        """Run one operation through an integration.

        Input mappings rewrite the operation parameters, output mappings
        rewrite the data of a successful result.

        Args:
            integration_id: Registered integration
            operation: Operation to execute

        Returns:
            IntegrationExecution: Completed execution record

        Raises:
            IntegrationError: If the integration or its adapter is unknown,
                or the operation is malformed
        """
        integration = self._integrations.get(integration_id)
        if integration is None:
            raise IntegrationError(f"Integration {integration_id} not found")
        adapter = self._adapters.get(integration.adapter_id)
        if adapter is None:
            raise IntegrationError(f"Adapter {integration.adapter_id} not found")

        if not isinstance(operation, AdapterOperation):
            try:
                operation = validate_request(dict(operation), AdapterOperation)
            except ValueError as e:
                raise IntegrationError(str(e), cause=e) from e

        execution = IntegrationExecution(
            id=f"{integration_id}_{uuid.uuid4().hex}",
            integration_id=integration_id,
            operation=operation,
            status=ExecutionStatus.RUNNING,
        )
        self._executions[execution.id] = execution
        self._prune_executions()
        logger.debug(f"Executing integration: {execution.id}")

        mapped = operation.model_copy(
            update={
                "parameters": apply_mappings(
                    operation.parameters, integration.mappings, "input"
                )
            }
        )
        result = await adapter.execute(mapped)

        if result.success and isinstance(result.data, dict):
            result = result.model_copy(
                update={
                    "data": apply_mappings(result.data, integration.mappings, "output")
                }
            )

        execution.result = result
        execution.status = (
            ExecutionStatus.COMPLETED if result.success else ExecutionStatus.FAILED
        )
        execution.completed_at = utc_now()
        logger.info(f"Integration execution {execution.status.value}: {execution.id}")
        return execution

    def get_execution(self, execution_id: str) -> IntegrationExecution | None:
        return self._executions.get(execution_id)

    def _prune_executions(self) -> None:
        """Drop the oldest finished records once the history is full."""
        excess = len(self._executions) - self._max_executions
        if excess <= 0:
            return
        finished = [
            execution_id
            for execution_id, execution in self._executions.items()
            if execution.status
            not in (ExecutionStatus.PENDING, ExecutionStatus.RUNNING)
        ]
        for execution_id in finished[:excess]:
            del self._executions[execution_id]

    # Health

    async def refresh_health(self) -> dict[str, bool]:
        """Check every adapter concurrently and cache the outcome."""
        if not self._adapters:
            logger.debug("No adapters registered for health check")
            return {}

        ids = list(self._adapters)
        results = await asyncio.gather(
            *(self._adapters[i].is_healthy() for i in ids), return_exceptions=True
        )
        for adapter_id, healthy in zip(ids, results):
            self._health[adapter_id] = healthy is True
            if healthy is not True:
                logger.warning(f"Adapter {adapter_id} is unhealthy")

        healthy_count = sum(self._health.values())
        logger.info(
            f"Health check complete: {healthy_count}/{len(self._health)} adapters healthy"
        )
        return dict(self._health)

    def get_healthy_adapters(self) -> list[IntegrationAdapter]:
        """Adapters healthy at the last refresh."""
        return [a for i, a in self._adapters.items() if self._health.get(i)]

    async def health(self) -> HealthResponse:
        """Refresh and summarize adapter health."""
        adapters = await self.refresh_health()
        healthy = sum(adapters.values())
        if healthy == len(adapters):
            status = "healthy"
        elif healthy:
            status = "degraded"
        else:
            status = "unhealthy"
        return HealthResponse(
            status=status,
            version=self.version,
            adapters=adapters,
            uptime_seconds=time.monotonic() - self._started,
        )

    async def start_health_monitoring(self, interval: float | None = None) -> None:
        """Start periodic health checks of all adapters.

        Args:
            interval: Health check interval in seconds
        """
        if self._running:
            logger.warning("Health monitoring is already running")
            return

        if interval:
            self._check_interval = interval

        self._running = True
        self._health_check_task = asyncio.create_task(self._health_monitor_loop())
        logger.info(f"Started health monitoring (interval: {self._check_interval}s)")

    async def stop_health_monitoring(self) -> None:
        """Stop health monitoring."""
        self._running = False

        if self._health_check_task:
            self._health_check_task.cancel()
            try:
                await self._health_check_task
            except asyncio.CancelledError:
                pass
            self._health_check_task = None
            logger.info("Stopped health monitoring")

    async def _health_monitor_loop(self) -> None:
        while self._running:
            try:
                await self.refresh_health()
                await asyncio.sleep(self._check_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in health monitoring loop: {e}")
                await asyncio.sleep(5.0)

    # Diagnostics and shutdown

    def diagnostics(self) -> dict[str, Any]:
        adapters = list(self._adapters.values())
        integrations = list(self._integrations.values())
        executions = list(self._executions.values())

        return {
            "adapters": {
                "total": len(adapters),
                "by_type": dict(Counter(a.type.value for a in adapters)),
                "connected": sum(1 for a in adapters if a.connected),
                "healthy": sum(self._health.values()),
            },
            "integrations": {
                "total": len(integrations),
                "by_plugin": dict(Counter(i.metadata.plugin_id for i in integrations)),
                "by_adapter": dict(Counter(i.adapter_id for i in integrations)),
            },
            "executions": {
                "active": sum(
                    1
                    for e in executions
                    if e.status in (ExecutionStatus.PENDING, ExecutionStatus.RUNNING)
                ),
                "failed": sum(1 for e in executions if e.status is ExecutionStatus.FAILED),
                "total": len(executions),
            },
        }

    async def shutdown(self) -> None:
        """Stop monitoring and shut down every adapter."""
        await self.stop_health_monitoring()

        for adapter_id, adapter in self._adapters.items():
            try:
                await adapter.shutdown()
            except Exception as e:
                logger.error(f"Error shutting down adapter {adapter_id}: {e}")

        self._adapters.clear()
        self._integrations.clear()
        self._executions.clear()
        self._health.clear()
        logger.info("Integration hub shut down")
