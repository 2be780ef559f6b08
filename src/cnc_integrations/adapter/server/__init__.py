"""Monitor server components."""

from .app import MonitorServer, create_monitor_app, run_monitor_server

__all__ = ["MonitorServer", "create_monitor_app", "run_monitor_server"]
