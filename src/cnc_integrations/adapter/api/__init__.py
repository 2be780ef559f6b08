"""Monitoring API for integration hubs."""

from .endpoints import create_monitoring_api
from .router import MonitorRouter

__all__ = ["create_monitoring_api", "MonitorRouter"]
