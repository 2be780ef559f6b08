"""Command-line interface for CNC Integrations."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import typer
import yaml
from pydantic import BaseModel, Field, field_validator
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ._version import __version__
from .adapter import (
    DatabaseAdapter,
    FileSystemAdapter,
    HttpApiAdapter,
    IntegrationAdapter,
    IntegrationHub,
)
from .adapter.client import MonitorClient
from .adapter.server import MonitorServer
from .models.api import AdapterType
from .utils import setup_logging

app = typer.Typer(
    name="cnc-integrations",
    help="Probe and monitor CNC integration adapters",
    no_args_is_help=True,
)

console = Console()
err_console = Console(file=sys.stderr)

ADAPTER_CLASSES: dict[AdapterType, type[IntegrationAdapter]] = {
    AdapterType.DATABASE: DatabaseAdapter,
    AdapterType.FILE_SYSTEM: FileSystemAdapter,
    AdapterType.HTTP_API: HttpApiAdapter,
}

STATUS_STYLES = {"healthy": "green", "unhealthy": "red", "degraded": "yellow"}


class AdapterEntry(BaseModel):
    """One adapter declared in a hub configuration file."""

    type: AdapterType = Field(..., description="Adapter type")
    id: str | None = Field(default=None, description="Adapter id override")
    name: str | None = Field(default=None, description="Display name override")
    config: dict[str, Any] = Field(default_factory=dict, description="Adapter config")
    credentials: Any = Field(default=None, description="Credentials for connect")
    connect: bool = Field(default=True, description="Connect at startup")


class ServerSettings(BaseModel):
    host: str = Field(default="127.0.0.1", description="Host to bind to")
    port: int = Field(default=8080, ge=1, le=65535, description="Port to bind to")
    monitor_interval: float | None = Field(
        default=None, gt=0, description="Periodic health check interval in seconds"
    )


class HubSettings(BaseModel):
    """Contents of a hub configuration file."""

    log_level: str = Field(default="INFO", description="Log level")
    server: ServerSettings = Field(default_factory=ServerSettings)
    adapters: list[AdapterEntry] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v.upper()


def load_config(config_file: Path) -> HubSettings:
    """Load a hub configuration from a YAML or JSON file."""
    try:
        with open(config_file) as f:
            if config_file.suffix.lower() in [".yaml", ".yml"]:
                config_data = yaml.safe_load(f)
            else:
                config_data = json.load(f)

        return HubSettings.model_validate(config_data or {})

    except (OSError, ValueError, yaml.YAMLError) as e:
        err_console.print(f"[red]Error:[/red] Failed to load config file: {e}")
        raise typer.Exit(1)


def create_adapter(entry: AdapterEntry) -> IntegrationAdapter:
    adapter_class = ADAPTER_CLASSES.get(entry.type)
    if adapter_class is None:
        raise ValueError(f"No adapter available for type '{entry.type.value}'")
    return adapter_class(adapter_id=entry.id, name=entry.name)


async def build_hub(settings: HubSettings) -> tuple[IntegrationHub, dict[str, str]]:
    """Register, initialize and connect every configured adapter.

    Adapters connected before a failing entry are shut down again.

    Returns:
        The hub and the connection errors keyed by adapter id
    """
    hub = IntegrationHub()
    errors: dict[str, str] = {}

    try:
        for entry in settings.adapters:
            adapter = create_adapter(entry)
            await hub.register_adapter(adapter, entry.config)
            if entry.connect:
                result = await adapter.connect(entry.credentials)
                if not result.success:
                    errors[adapter.id] = result.error or "connection failed"
    except Exception:
        await hub.shutdown()
        raise

    return hub, errors


def _status_table(hub: IntegrationHub, health: dict[str, bool], errors: dict[str, str]) -> Table:
    table = Table(title="Integration Adapters")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Connected")
    table.add_column("Healthy")
    table.add_column("Details")

    for adapter in hub.list_adapters():
        healthy = health.get(adapter.id, False)
        table.add_row(
            adapter.id,
            adapter.type.value,
            "[green]yes[/green]" if adapter.connected else "[red]no[/red]",
            "[green]yes[/green]" if healthy else "[red]no[/red]",
            errors.get(adapter.id, ""),
        )
    return table


@app.command()
def probe(
    config_file: Path = typer.Argument(
        ..., help="Hub configuration file (YAML or JSON)", exists=True
    ),
    log_level: str | None = typer.Option(None, help="Log level override"),
) -> None:
    """Connect every configured adapter once and report its health."""
    settings = load_config(config_file)
    setup_logging(log_level or settings.log_level)

    async def run_probe() -> bool:
        hub, errors = await build_hub(settings)
        try:
            health = await hub.refresh_health()
            console.print(_status_table(hub, health, errors))
            return all(health.values())
        finally:
            await hub.shutdown()

    try:
        healthy = asyncio.run(run_probe())
    except Exception as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not healthy:
        raise typer.Exit(1)


@app.command()
def serve(
    config_file: Path = typer.Argument(
        ..., help="Hub configuration file (YAML or JSON)", exists=True
    ),
    host: str | None = typer.Option(None, help="Host to bind to"),
    port: int | None = typer.Option(None, help="Port to bind to"),
    monitor_interval: float | None = typer.Option(
        None, help="Periodic health check interval in seconds"
    ),
    log_level: str | None = typer.Option(None, help="Log level override"),
) -> None:
    """Run the monitoring server for the configured adapters."""
    settings = load_config(config_file)
    overrides = {
        key: value
        for key, value in {
            "host": host,
            "port": port,
            "monitor_interval": monitor_interval,
        }.items()
        if value is not None
    }
    server_settings = settings.server.model_copy(update=overrides)
    level = log_level or settings.log_level
    setup_logging(level)

    console.print(
        Panel.fit(
            f"[bold blue]CNC Integrations Monitor[/bold blue]\n\n"
            f"[bold]Version:[/bold] {__version__}\n"
            f"[bold]Adapters:[/bold] {len(settings.adapters)}\n"
            f"[bold]Server:[/bold] http://{server_settings.host}:{server_settings.port}\n"
            f"[bold]Health interval:[/bold] {server_settings.monitor_interval or 'off'}",
            title="Starting Server",
            border_style="blue",
        )
    )
    console.print(
        f"Health Check: http://{server_settings.host}:{server_settings.port}/api/v1/health"
    )

    async def run_server() -> None:
        hub, errors = await build_hub(settings)
        for adapter_id, error in errors.items():
            err_console.print(f"[yellow]Warning:[/yellow] {adapter_id}: {error}")
        server = MonitorServer(
            hub,
            host=server_settings.host,
            port=server_settings.port,
            log_level=level,
            monitor_interval=server_settings.monitor_interval,
        )
        await server.run_async()

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped by user[/yellow]")
    except Exception as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def status(
    url: str = typer.Argument(..., help="Monitor URL (e.g., http://localhost:8080)")
) -> None:
    """Show the adapters of a running monitor."""

    async def show_status() -> None:
        try:
            async with MonitorClient(url) as client:
                health = await client.health_check()
                adapters = await client.list_adapters()
        except Exception as e:
            err_console.print(f"[red]Error:[/red] Failed to reach monitor: {e}")
            raise typer.Exit(1)

        status_color = STATUS_STYLES.get(health.status, "white")
        console.print(
            Panel.fit(
                f"[bold {status_color}]{health.status.upper()}[/bold {status_color}]\n\n"
                f"[bold]Version:[/bold] {health.version}\n"
                f"[bold]Uptime:[/bold] {health.uptime_seconds or 0:.1f}s",
                title="Monitor Status",
                border_style=status_color,
            )
        )

        table = Table(title="Adapters")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Connected")
        table.add_column("Healthy")
        for summary in adapters:
            table.add_row(
                summary.info.id,
                summary.info.name,
                summary.info.type.value,
                "[green]yes[/green]" if summary.connected else "[red]no[/red]",
                "[green]yes[/green]"
                if health.adapters.get(summary.info.id)
                else "[red]no[/red]",
            )
        console.print(table)

    asyncio.run(show_status())


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
