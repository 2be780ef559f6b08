"""CNC Integrations - uniform adapters for databases, files and HTTP APIs.

Every adapter follows one lifecycle (initialize, connect, execute,
disconnect, shutdown) and reports failures as structured, classified
errors instead of raising, so callers can drive a retry policy the same way
for every backend.
"""

from ._version import __version__
from .adapter import (
    AdapterException,
    DatabaseAdapter,
    FileSystemAdapter,
    HttpApiAdapter,
    IntegrationAdapter,
    IntegrationHub,
)
from .models import (
    AdapterError,
    AdapterInfo,
    AdapterOperation,
    AdapterResult,
    AdapterStatus,
    AdapterType,
    ConnectionResult,
)

__all__ = [
    "__version__",
    # Core data models
    "AdapterError",
    "AdapterInfo",
    "AdapterOperation",
    "AdapterResult",
    "AdapterStatus",
    "AdapterType",
    "ConnectionResult",
    # Adapters
    "IntegrationAdapter",
    "DatabaseAdapter",
    "FileSystemAdapter",
    "HttpApiAdapter",
    "IntegrationHub",
    "AdapterException",
]
