"""Shared value types flowing across all integration adapters."""

from .api import (
    AdapterError,
    AdapterInfo,
    AdapterOperation,
    AdapterResult,
    AdapterStatus,
    AdapterSummary,
    AdapterType,
    ApiKeyCredentials,
    BasicAuthCredentials,
    BearerTokenCredentials,
    ConnectionResult,
    DatabaseCredentials,
    DataMapping,
    ExecutionStatus,
    HealthResponse,
    HttpCredentials,
    IntegrationDefinition,
    IntegrationExecution,
    IntegrationMetadata,
    IntegrationSummary,
    NoCredentials,
    OAuth2Credentials,
)

__all__ = [
    # Contract types
    "AdapterType",
    "AdapterInfo",
    "AdapterOperation",
    "AdapterResult",
    "AdapterError",
    "AdapterStatus",
    "ConnectionResult",
    # Credentials
    "HttpCredentials",
    "NoCredentials",
    "ApiKeyCredentials",
    "BearerTokenCredentials",
    "BasicAuthCredentials",
    "OAuth2Credentials",
    "DatabaseCredentials",
    # Integrations
    "DataMapping",
    "ExecutionStatus",
    "IntegrationDefinition",
    "IntegrationExecution",
    "IntegrationMetadata",
    "HealthResponse",
    # Monitoring views
    "AdapterSummary",
    "IntegrationSummary",
]
