"""Core value types shared by every integration adapter."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class AdapterType(str, Enum):
    """Capability tag used to select an adapter without naming its class."""

    DATABASE = "database"
    FILE_SYSTEM = "file_system"
    HTTP_API = "http_api"
    MESSAGING = "messaging"
    CLOUD_STORAGE = "cloud_storage"
    AUTHENTICATION = "authentication"
    NOTIFICATION = "notification"
    MONITORING = "monitoring"
    HARDWARE = "hardware"
    CUSTOM = "custom"


class AdapterInfo(BaseModel):
    """Static identity of an adapter."""

    id: str = Field(..., description="Unique adapter identifier")
    name: str = Field(..., description="Adapter display name")
    type: AdapterType = Field(..., description="Adapter capability tag")
    version: str = Field(default="1.0.0", description="Adapter version")
    description: str | None = Field(default=None, description="Adapter description")

    @field_validator("id", "name")
    @classmethod
    def validate_non_empty_strings(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("String fields cannot be empty")
        return v


class AdapterOperation(BaseModel):
    """A single verb plus its parameter payload."""

    type: str = Field(..., description="Operation verb, e.g. 'read' or 'query'")
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="Verb-specific parameters"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Upper bound for this execution in seconds"
    )
    retries: int | None = Field(
        default=None,
        ge=0,
        description="Retry budget suggested to the caller's retry policy",
    )

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Operation type cannot be empty")
        return v.strip().lower()


class AdapterError(BaseModel):
    """Structured failure surfaced to callers."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(default=None, description="Backend-specific error details")
    retryable: bool = Field(
        default=False, description="Whether the caller may retry with backoff"
    )


class AdapterResult(BaseModel):
    """Outcome of AdapterOperation execution.

    ``metadata`` always carries ``execution_time`` (milliseconds) and
    ``operation_type``.
    """

    success: bool = Field(..., description="Whether the operation succeeded")
    data: Any = Field(default=None, description="Result payload on success")
    error: AdapterError | None = Field(
        default=None, description="Error information on failure"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Execution metadata"
    )

    @model_validator(mode="after")
    def check_outcome(self) -> "AdapterResult":
        if self.success and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.success:
            if self.error is None:
                raise ValueError("A failed result must carry an error")
            if self.data is not None:
                raise ValueError("A failed result cannot carry data")
        return self

    @property
    def retryable(self) -> bool:
        """True when the result failed with a retryable error."""
        return self.error is not None and self.error.retryable


class ConnectionResult(BaseModel):
    """Outcome of a connect call."""

    success: bool = Field(..., description="Whether the session was established")
    connection_id: str = Field(
        default="", description="Opaque per-session token (empty on failure)"
    )
    metadata: dict[str, Any] | None = Field(
        default=None, description="Backend-specific connection metadata"
    )
    error: str | None = Field(default=None, description="Failure reason")


class AdapterStatus(BaseModel):
    """Uniform health snapshot of an adapter."""

    connected: bool = Field(..., description="Whether a session is open")
    last_activity: datetime = Field(..., description="Time of the last activity")
    connection_count: int = Field(
        default=0, description="Successful connects (and operations, per adapter)"
    )
    error_count: int = Field(default=0, description="Failed connects and operations")
    latency: float | None = Field(
        default=None, description="Round-trip latency in milliseconds"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Adapter-specific status metadata"
    )


# Credentials


class NoCredentials(BaseModel):
    """Anonymous access."""

    model_config = ConfigDict(frozen=True)

    type: Literal["none"] = "none"


class ApiKeyCredentials(BaseModel):
    """Static API key sent as ``X-API-Key``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["api_key"] = "api_key"
    api_key: str = Field(..., description="API key")


class BearerTokenCredentials(BaseModel):
    """Bearer token sent in the Authorization header."""

    model_config = ConfigDict(frozen=True)

    type: Literal["bearer_token"] = "bearer_token"
    token: str = Field(..., description="Bearer token")


class BasicAuthCredentials(BaseModel):
    """HTTP basic authentication."""

    model_config = ConfigDict(frozen=True)

    type: Literal["basic_auth"] = "basic_auth"
    username: str = Field(..., description="User name")
    password: str = Field(..., description="Password")


class OAuth2Credentials(BaseModel):
    """OAuth2 client credentials with an already obtained access token."""

    model_config = ConfigDict(frozen=True)

    type: Literal["oauth2"] = "oauth2"
    client_id: str = Field(..., description="OAuth2 client id")
    client_secret: str = Field(..., description="OAuth2 client secret")
    access_token: str | None = Field(default=None, description="Access token")
    refresh_token: str | None = Field(default=None, description="Refresh token")


HttpCredentials = Annotated[
    NoCredentials
    | ApiKeyCredentials
    | BearerTokenCredentials
    | BasicAuthCredentials
    | OAuth2Credentials,
    Field(discriminator="type"),
]


class DatabaseCredentials(BaseModel):
    """Credentials for a database session."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(..., description="Database user")
    password: str = Field(default="", description="Database password")
    auth_method: Literal["password", "certificate", "kerberos"] = Field(
        default="password", description="Authentication method"
    )


# Integrations


class ExecutionStatus(str, Enum):
    """Lifecycle of an integration execution."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class DataMapping(BaseModel):
    """Copies a value between two dot-notation paths."""

    id: str = Field(..., description="Mapping identifier")
    source: str = Field(..., description="Dot-notation source path")
    target: str = Field(..., description="Dot-notation target path")
    direction: Literal["input", "output"] = Field(
        default="input",
        description="Apply to operation parameters (input) or result data (output)",
    )
    default: Any = Field(
        default=None, description="Value used when the source path is missing"
    )


class IntegrationMetadata(BaseModel):
    """Ownership and versioning information of an integration."""

    plugin_id: str = Field(..., description="Plugin that owns the integration")
    version: str = Field(default="1.0.0", description="Integration version")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    created: datetime = Field(default_factory=utc_now, description="Creation time")
    modified: datetime = Field(default_factory=utc_now, description="Last change")


class IntegrationDefinition(BaseModel):
    """Binding of an adapter, its credentials and data mappings."""

    id: str = Field(..., description="Integration identifier")
    name: str = Field(..., description="Integration display name")
    description: str | None = Field(default=None, description="Description")
    adapter_id: str = Field(..., description="Registered adapter to use")
    credentials: Any = Field(
        default=None, description="Credentials passed to the adapter's connect"
    )
    mappings: list[DataMapping] = Field(
        default_factory=list, description="Data mappings"
    )
    metadata: IntegrationMetadata = Field(..., description="Integration metadata")

    @field_validator("id", "name", "adapter_id")
    @classmethod
    def validate_non_empty_strings(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("String fields cannot be empty")
        return v


class IntegrationExecution(BaseModel):
    """Record of one operation run through an integration."""

    id: str = Field(..., description="Execution identifier")
    integration_id: str = Field(..., description="Integration identifier")
    operation: AdapterOperation = Field(..., description="Submitted operation")
    status: ExecutionStatus = Field(
        default=ExecutionStatus.PENDING, description="Execution status"
    )
    started_at: datetime = Field(default_factory=utc_now, description="Start time")
    completed_at: datetime | None = Field(default=None, description="End time")
    result: AdapterResult | None = Field(default=None, description="Adapter result")
    error_message: str | None = Field(
        default=None, description="Failure reason outside the adapter result"
    )


class HealthResponse(BaseModel):
    """Aggregated health of the adapters owned by a hub."""

    status: str = Field(
        ..., description="Health status ('healthy', 'unhealthy', 'degraded')"
    )
    version: str = Field(..., description="Package version")
    adapters: dict[str, bool] = Field(
        default_factory=dict, description="Health per adapter id"
    )
    uptime_seconds: float | None = Field(
        default=None, description="Hub uptime in seconds"
    )
    checked_at: datetime = Field(default_factory=utc_now, description="Check time")


# Monitoring views


class AdapterSummary(BaseModel):
    """Adapter identity plus its current connection and health state."""

    info: AdapterInfo = Field(..., description="Adapter identity")
    connected: bool = Field(..., description="Whether a session is open")
    healthy: bool = Field(
        default=False, description="Health at the last hub refresh"
    )


class IntegrationSummary(BaseModel):
    """Integration view without credentials."""

    id: str = Field(..., description="Integration identifier")
    name: str = Field(..., description="Integration display name")
    description: str | None = Field(default=None, description="Description")
    adapter_id: str = Field(..., description="Adapter used by the integration")
    mapping_count: int = Field(default=0, description="Number of data mappings")
    metadata: IntegrationMetadata = Field(..., description="Integration metadata")

    @classmethod
    def from_definition(cls, definition: IntegrationDefinition) -> "IntegrationSummary":
        return cls(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            adapter_id=definition.adapter_id,
            mapping_count=len(definition.mappings),
            metadata=definition.metadata,
        )
