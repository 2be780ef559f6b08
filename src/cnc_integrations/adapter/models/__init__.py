"""Adapter contract and base classes."""

from .framework import (
    AdapterConfig,
    AdapterState,
    IntegrationAdapter,
    OperationParams,
)

__all__ = [
    "AdapterConfig",
    "AdapterState",
    "IntegrationAdapter",
    "OperationParams",
]
