"""Integration adapter contract and base classes."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ...models.api import (
    AdapterError,
    AdapterInfo,
    AdapterOperation,
    AdapterResult,
    AdapterStatus,
    AdapterType,
    ConnectionResult,
    utc_now,
)
from ...utils.validation import validate_config, validate_request
from ..errors import (
    AdapterException,
    AdapterStateError,
    ConfigurationError,
    InvalidOperationError,
    NotConnectedError,
    OperationTimeoutError,
    UnsupportedOperationError,
)

logger = logging.getLogger(__name__)

OperationHandler = Callable[[Any], Awaitable[Any]]


class AdapterState(str, Enum):
    """Lifecycle states of an adapter instance."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    SHUT_DOWN = "shut_down"


class AdapterConfig(BaseModel):
    """Base configuration for integration adapters.

    Configuration is supplied once through ``initialize`` and is immutable
    afterwards.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")


class OperationParams(BaseModel):
    """Base class for the typed parameter payload of one verb.

    Accepts snake_case and camelCase keys; unknown keys are rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


class IntegrationAdapter(ABC):
    """Abstract base class for integration adapters.

    Subclasses describe their verbs through ``_operations`` and implement the
    session hooks (``_open``, ``_close``, ``_check_health``) plus their own
    error classification. The public lifecycle (``initialize``, ``connect``,
    ``execute``, ``disconnect``, ``shutdown``) lives here so every adapter
    follows the same state machine and never raises out of ``connect`` or
    ``execute``.
    """

    adapter_type: ClassVar[AdapterType] = AdapterType.CUSTOM
    default_id: ClassVar[str] = "custom"
    default_name: ClassVar[str] = "Custom Adapter"
    version: ClassVar[str] = "1.0.0"
    description: ClassVar[str | None] = None
    config_class: ClassVar[type[AdapterConfig]] = AdapterConfig
    connection_prefix: ClassVar[str] = "conn"
    backend_label: ClassVar[str] = "backend"

    def __init__(self, adapter_id: str | None = None, name: str | None = None):
        """Create an adapter in the ``UNINITIALIZED`` state.

        Args:
            adapter_id: Override of the class default identifier
            name: Override of the class default display name
        """
        self.info = AdapterInfo(
            id=adapter_id or self.default_id,
            name=name or self.default_name,
            type=self.adapter_type,
            version=self.version,
            description=self.description,
        )
        self.config: Any = None
        self.state = AdapterState.UNINITIALIZED
        self.connection_id: str | None = None
        self.connection_count = 0
        self.error_count = 0
        self.last_activity = utc_now()

    @property
    def id(self) -> str:
        return self.info.id

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def type(self) -> AdapterType:
        return self.info.type

    @property
    def connected(self) -> bool:
        return self.state is AdapterState.CONNECTED

    async def __aenter__(self) -> "IntegrationAdapter":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.shutdown()

    # Lifecycle

    async def initialize(self, config: AdapterConfig | Mapping[str, Any]) -> None:
        """Store the adapter configuration.

        A second call overwrites the configuration. No I/O is performed.

        Args:
            config: Typed configuration or a mapping validated against
                ``config_class``

        Raises:
            ConfigurationError: If the configuration is structurally invalid
            AdapterStateError: If the adapter has been shut down
        """
        if self.state is AdapterState.SHUT_DOWN:
            raise AdapterStateError(f"{self.name} has been shut down")

        if isinstance(config, self.config_class):
            self.config = config
        elif isinstance(config, Mapping):
            try:
                self.config = validate_config(dict(config), self.config_class)
            except ValueError as e:
                raise ConfigurationError(str(e), cause=e) from e
        else:
            raise ConfigurationError(
                f"Expected {self.config_class.__name__} or a mapping, "
                f"got {type(config).__name__}"
            )

        if self.state is AdapterState.UNINITIALIZED:
            self.state = AdapterState.INITIALIZED
        logger.debug(f"{self.name} initialized")

    async def shutdown(self) -> None:
        """Release all resources; safe to call more than once.

        Raises:
            Exception: Errors raised while disconnecting
        """
        if self.state is AdapterState.SHUT_DOWN:
            return
        try:
            if self.connected:
                await self.disconnect()
        finally:
            self.state = AdapterState.SHUT_DOWN
        logger.debug(f"{self.name} shutdown complete")

    async def connect(self, credentials: Any = None) -> ConnectionResult:
        """Establish a session with the backend.

        Args:
            credentials: Adapter-specific credentials

        Returns:
            ConnectionResult: Outcome of the attempt; never raises
        """
        if self.config is None:
            self.error_count += 1
            return ConnectionResult(
                success=False, error=f"{self.name} not initialized"
            )
        if self.state is AdapterState.SHUT_DOWN:
            self.error_count += 1
            return ConnectionResult(
                success=False, error=f"{self.name} has been shut down"
            )

        try:
            if self.connected:
                await self._close()
                self.state = AdapterState.DISCONNECTED
            metadata = await self._open(credentials)
        except Exception as e:
            self.error_count += 1
            logger.warning(f"{self.name} failed to connect: {e}")
            return ConnectionResult(success=False, error=str(e) or type(e).__name__)

        self.connection_id = f"{self.connection_prefix}_{uuid.uuid4().hex}"
        self.state = AdapterState.CONNECTED
        self.connection_count += 1
        self.last_activity = utc_now()
        logger.info(f"{self.name} connected ({self.connection_id})")

        return ConnectionResult(
            success=True, connection_id=self.connection_id, metadata=metadata
        )

    async def disconnect(self) -> None:
        """Tear down the session; a no-op when not connected.

        Raises:
            Exception: Errors raised by the backend while closing
        """
        if not self.connected:
            return
        try:
            await self._close()
        except Exception:
            self.error_count += 1
            logger.exception(f"Error disconnecting {self.name}")
            raise
        finally:
            self.state = AdapterState.DISCONNECTED
            self.connection_id = None
        logger.info(f"{self.name} connection closed")

    # Observability

    async def is_healthy(self) -> bool:
        """Perform a lightweight round trip; never raises."""
        if not self.connected:
            return False
        try:
            return bool(await self._check_health())
        except Exception as e:
            logger.debug(f"Health check failed for {self.name}: {e}")
            return False

    async def get_status(self) -> AdapterStatus:
        """Return a uniform health snapshot."""
        latency = None
        if self.connected:
            try:
                latency = await self._measure_latency()
            except Exception as e:
                logger.debug(f"Latency probe failed for {self.name}: {e}")

        return AdapterStatus(
            connected=self.connected,
            last_activity=self.last_activity,
            connection_count=self.connection_count,
            error_count=self.error_count,
            latency=latency,
            metadata=self._status_metadata(),
        )

    # Operations

    async def execute(
        self, operation: AdapterOperation | Mapping[str, Any]
    ) -> AdapterResult:
        """Run one operation against the backend.

        Args:
            operation: The operation, or a mapping validated into one

        Returns:
            AdapterResult: Outcome of the operation; never raises
        """
        start_time = time.perf_counter()

        if not isinstance(operation, AdapterOperation):
            try:
                operation = validate_request(dict(operation), AdapterOperation)
            except (TypeError, ValueError) as e:
                self.error_count += 1
                op_type = "unknown"
                if isinstance(operation, Mapping):
                    op_type = str(operation.get("type", "unknown"))
                return self._failure(
                    InvalidOperationError(str(e)).to_error(), op_type, start_time
                )

        try:
            if not self.connected:
                raise NotConnectedError(f"Not connected to {self.backend_label}")

            self.last_activity = utc_now()

            spec = self._operations().get(operation.type)
            if spec is None:
                raise UnsupportedOperationError(
                    f"Unsupported operation type: {operation.type}"
                )
            params_class, handler = spec

            try:
                params = params_class.model_validate(operation.parameters)
            except ValidationError as e:
                raise InvalidOperationError(
                    f"Invalid parameters for {operation.type}: "
                    f"{e.error_count()} validation error(s)",
                    details=e.errors(include_url=False, include_context=False),
                ) from e

            # Only well-formed operations consume admission budget
            await self._admit(operation)

            if operation.timeout is not None:
                try:
                    data = await asyncio.wait_for(handler(params), operation.timeout)
                except asyncio.TimeoutError as e:
                    raise OperationTimeoutError(
                        f"Operation {operation.type} timeout after "
                        f"{operation.timeout}s"
                    ) from e
            else:
                data = await handler(params)

        except Exception as e:
            if not (isinstance(e, AdapterException) and e.counted):
                self.error_count += 1
            error = self._to_adapter_error(e)
            logger.debug(
                f"{self.name} {operation.type} failed: [{error.code}] {error.message}"
            )
            return self._failure(error, operation.type, start_time)

        metadata = self._result_metadata(operation, data)
        metadata.update(self._base_metadata(operation.type, start_time))
        return AdapterResult(success=True, data=data, metadata=metadata)

    def _to_adapter_error(self, exc: Exception) -> AdapterError:
        if isinstance(exc, AdapterException):
            return exc.to_error()
        return self._classify_error(exc)

    def _failure(
        self, error: AdapterError, operation_type: str, start_time: float
    ) -> AdapterResult:
        return AdapterResult(
            success=False,
            error=error,
            metadata=self._base_metadata(operation_type, start_time),
        )

    def _base_metadata(self, operation_type: str, start_time: float) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "execution_time": (time.perf_counter() - start_time) * 1000,
            "operation_type": operation_type,
        }
        if self.connection_id:
            metadata["connection_id"] = self.connection_id
        return metadata

    # Subclass hooks

    @abstractmethod
    def _operations(self) -> dict[str, tuple[type[OperationParams], OperationHandler]]:
        """Map every supported verb to its parameter model and handler."""
        pass

    @abstractmethod
    async def _open(self, credentials: Any) -> dict[str, Any]:
        """Open a backend session.

        Returns:
            dict: Connection metadata reported in the ConnectionResult

        Raises:
            Exception: If the session cannot be established
        """
        pass

    @abstractmethod
    async def _close(self) -> None:
        """Close the backend session."""
        pass

    @abstractmethod
    async def _check_health(self) -> bool:
        """Lightweight round trip used by ``is_healthy``."""
        pass

    @abstractmethod
    def _classify_error(self, exc: Exception) -> AdapterError:
        """Turn a backend exception into a structured error."""
        pass

    async def _admit(self, operation: AdapterOperation) -> None:
        """Gate an operation before dispatch (rate limits, counters)."""
        return None

    async def _measure_latency(self) -> float | None:
        return None

    def _status_metadata(self) -> dict[str, Any]:
        return {"adapter_id": self.id, "state": self.state.value}

    def _result_metadata(
        self, operation: AdapterOperation, data: Any
    ) -> dict[str, Any]:
        return {}
