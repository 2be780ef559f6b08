"""Integration adapters, the hub that owns them and its monitoring surfaces."""

from .database import DatabaseAdapter, DatabaseConfig
from .errors import (
    AdapterException,
    AdapterStateError,
    ConfigurationError,
    ExtensionNotAllowedError,
    FileTooLargeError,
    IntegrationError,
    InvalidOperationError,
    NotConnectedError,
    OperationTimeoutError,
    PathSecurityError,
    PermissionDeniedError,
    RateLimitExceeded,
    TransactionAborted,
    UnsupportedOperationError,
)
from .filesystem import FileSystemAdapter, FileSystemConfig, Permissions
from .http import HttpApiAdapter, HttpApiConfig, RateLimit
from .hub import IntegrationHub
from .models import AdapterConfig, AdapterState, IntegrationAdapter, OperationParams

__all__ = [
    # Contract
    "IntegrationAdapter",
    "AdapterConfig",
    "AdapterState",
    "OperationParams",
    # Adapters
    "DatabaseAdapter",
    "DatabaseConfig",
    "FileSystemAdapter",
    "FileSystemConfig",
    "Permissions",
    "HttpApiAdapter",
    "HttpApiConfig",
    "RateLimit",
    "IntegrationHub",
    # Errors
    "AdapterException",
    "AdapterStateError",
    "ConfigurationError",
    "ExtensionNotAllowedError",
    "FileTooLargeError",
    "IntegrationError",
    "InvalidOperationError",
    "NotConnectedError",
    "OperationTimeoutError",
    "PathSecurityError",
    "PermissionDeniedError",
    "RateLimitExceeded",
    "TransactionAborted",
    "UnsupportedOperationError",
]
