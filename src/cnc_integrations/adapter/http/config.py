"""Configuration models for the HTTP API adapter."""

from pydantic import Field, field_validator

from ..models.framework import AdapterConfig


class RateLimit(AdapterConfig):
    """Fixed-window request budget."""

    requests: int = Field(..., gt=0, description="Requests admitted per window")
    window: float = Field(..., gt=0, description="Window length in seconds")


class HttpApiConfig(AdapterConfig):
    """Configuration for the HTTP API adapter."""

    base_url: str = Field(..., description="Base URL of the remote API")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    retries: int = Field(
        default=0, ge=0, description="Transport retries for timeouts, connection errors and 5xx"
    )
    rate_limit: RateLimit | None = Field(
        default=None, description="Optional fixed-window rate limit"
    )
    default_headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )
    probe_endpoint: str = Field(
        default="/", description="Endpoint requested once on connect"
    )
    health_endpoint: str = Field(
        default="/health", description="Endpoint requested by health checks"
    )
    max_connections: int = Field(
        default=20, gt=0, description="Connection pool size of the HTTP client"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://")
        return v.rstrip("/")
