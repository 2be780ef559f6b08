"""Server application for running the integration monitor."""

import logging
import signal
import sys
from typing import Any

import uvicorn
from fastapi import FastAPI

from ..api.router import MonitorRouter
from ..hub import IntegrationHub

logger = logging.getLogger(__name__)


class MonitorServer:
    """Serves the monitoring API of an integration hub with uvicorn."""

    def __init__(
        self,
        hub: IntegrationHub,
        host: str = "127.0.0.1",
        port: int = 8080,
        log_level: str = "INFO",
        monitor_interval: float | None = None,
    ):
        """Initialize the server with a hub.

        Args:
            hub: The integration hub to expose
            host: Default host to bind to
            port: Default port to bind to
            log_level: Log level for uvicorn
            monitor_interval: Periodic health check interval in seconds
        """
        self.hub = hub
        self.host = host
        self.port = port
        self.log_level = log_level
        self.router = MonitorRouter(hub, monitor_interval=monitor_interval)
        self.app = self.router.get_app()

    def run(self, host: str | None = None, port: int | None = None, **kwargs: Any) -> None:
        """Run the monitor server until interrupted.

        Args:
            host: Host to bind to (overrides default)
            port: Port to bind to (overrides default)
            **kwargs: Additional arguments passed to uvicorn.run
        """
        run_host = host or self.host
        run_port = port or self.port
        logger.info(f"Starting integration monitor on {run_host}:{run_port}")

        self._setup_signal_handlers()

        try:
            uvicorn.run(
                self.app,
                host=run_host,
                port=run_port,
                log_level=self.log_level.lower(),
                access_log=True,
                **kwargs,
            )
        except KeyboardInterrupt:
            logger.info("Server stopped by user")
        except Exception as e:
            logger.exception(f"Server error: {e}")
            sys.exit(1)

    def _setup_signal_handlers(self) -> None:
        def signal_handler(signum: int, frame: Any) -> None:
            logger.info(f"Received signal {signum}, initiating shutdown...")
            # Hub shutdown runs in the app lifespan
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def run_async(
        self, host: str | None = None, port: int | None = None, **kwargs: Any
    ) -> None:
        """Run the server inside an existing event loop.

        Args:
            host: Host to bind to
            port: Port to bind to
            **kwargs: Additional uvicorn config options
        """
        uvicorn_config = uvicorn.Config(
            self.app,
            host=host or self.host,
            port=port or self.port,
            log_level=self.log_level.lower(),
            **kwargs,
        )
        server = uvicorn.Server(uvicorn_config)

        try:
            await server.serve()
        except KeyboardInterrupt:
            logger.info("Server stopped")
        except Exception as e:
            logger.exception(f"Server error: {e}")
            raise


def create_monitor_app(hub: IntegrationHub, **router_kwargs: Any) -> FastAPI:
    """Create the monitoring FastAPI application for a hub.

    Useful for testing and embedding the monitor in other applications.
    """
    return MonitorRouter(hub, **router_kwargs).get_app()


def run_monitor_server(hub: IntegrationHub, **server_kwargs: Any) -> None:
    """Create and run a monitor server for ``hub``."""
    MonitorServer(hub, **server_kwargs).run()
