"""Client for a running integration monitor."""

from .monitor_client import ClientError, MonitorClient

__all__ = ["ClientError", "MonitorClient"]
