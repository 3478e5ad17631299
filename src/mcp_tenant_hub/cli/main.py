"""
Main CLI interface for the tenant hub.

``run`` starts the full service; the other commands are operator tools for
one-off schema setup and configuration generation.
"""

import asyncio
import signal
import sys
from typing import Optional

import click
import uvicorn
from rich.console import Console
from rich.table import Table

from mcp_tenant_hub import __version__
from mcp_tenant_hub.api.server import create_app
from mcp_tenant_hub.cli.helpers import handle_errors
from mcp_tenant_hub.core.exceptions import MCPHubError
from mcp_tenant_hub.core.service import HubService
from mcp_tenant_hub.core.sync import ConfigSynchronizer
from mcp_tenant_hub.db.database import Database
from mcp_tenant_hub.hub.config_writer import ConfigWriter
from mcp_tenant_hub.utils.config import Settings, load_config
from mcp_tenant_hub.utils.logging import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


def _configure(ctx: click.Context) -> Settings:
    settings = ctx.obj["settings"]
    log_level = "DEBUG" if ctx.obj["debug"] else settings.logging.level
    setup_logging(
        level=log_level,
        log_file=settings.get_log_file(),
        format_type=settings.logging.format_type,
        enable_rich=settings.logging.enable_rich,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
        suppress_http=settings.logging.suppress_http,
    )
    return settings


def _open_database(settings: Settings) -> Database:
    return Database(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        notify_channel=settings.notify_channel,
    )


@click.group()
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
@click.option(
    "--config-file", "-c",
    "config_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="TOML configuration file (repeatable)",
)
@click.version_option(version=__version__, prog_name="mcp-tenant-hub")
@click.pass_context
def cli(ctx: click.Context, debug: bool, config_files: tuple):
    """Multi-tenant configuration front-end and gateway for MCP-Hub."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["settings"] = load_config(config_files=list(config_files) or None)


async def serve(settings: Settings, service: Optional[HubService] = None) -> int:
    """
    Run the service until SIGINT/SIGTERM.

    Returns:
        Process exit code: 0 after a graceful shutdown, 1 if startup failed
    """
    service = service or HubService(settings)

    try:
        await service.start()
    except MCPHubError as e:
        logger.error(f"Failed to start Multi-tenant MCP-Hub: {e}")
        await service.stop()
        return 1
    except Exception as e:
        logger.error(f"Unexpected error starting Multi-tenant MCP-Hub: {e}", exc_info=True)
        await service.stop()
        return 1

    def _log_signal(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down...")

    # uvicorn re-raises the signal that stopped it once serve() returns.
    signal.signal(signal.SIGTERM, _log_signal)
    signal.signal(signal.SIGINT, _log_signal)

    server = uvicorn.Server(uvicorn.Config(
        create_app(service),
        host=settings.host,
        port=settings.port,
        log_config=None,
    ))
    try:
        await server.serve()
    finally:
        await service.stop()

    return 0


@cli.command("run")
@click.pass_context
def run_cmd(ctx: click.Context):
    """Start the API gateway, config sync and the hub process."""
    settings = _configure(ctx)
    sys.exit(asyncio.run(serve(settings)))


@cli.command("init-db")
@click.pass_context
@handle_errors
def init_db_cmd(ctx: click.Context):
    """Create tables and change-notification triggers."""
    settings = _configure(ctx)

    async def _init():
        database = _open_database(settings)
        try:
            await database.connect()
            await database.initialize_schema()
        finally:
            await database.close()

    asyncio.run(_init())
    console.print("[green]✅ Database schema initialized[/green]")


@cli.command("sync")
@click.pass_context
@handle_errors
def sync_cmd(ctx: click.Context):
    """Regenerate the hub configuration file once and exit."""
    settings = _configure(ctx)

    async def _sync():
        database = _open_database(settings)
        try:
            await database.connect()
            synchronizer = ConfigSynchronizer(database, settings.get_config_file_path())
            return await synchronizer.sync_now()
        finally:
            await database.close()

    document = asyncio.run(_sync())
    console.print(
        f"[green]✅ Wrote {len(document)} server(s) to "
        f"{settings.get_config_file_path()}[/green]"
    )


@cli.command("show-config")
@click.option(
    "--output-format", "-o",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format",
)
@click.pass_context
@handle_errors
def show_config_cmd(ctx: click.Context, output_format: str):
    """Show the generated hub configuration currently on disk."""
    settings = _configure(ctx)
    writer = ConfigWriter()
    config_path = settings.get_config_file_path()
    document = writer.read(config_path)

    if output_format == "json":
        click.echo(writer.serialize(document), nl=False)
        return

    if not document.mcp_servers:
        console.print(f"[yellow]No servers in {config_path}[/yellow]")
        return

    table = Table(
        title=f"MCP-Hub servers ({len(document)} total)",
        show_header=True,
        header_style="bold cyan",
        title_style="bold cyan",
    )
    table.add_column("Server", style="green")
    table.add_column("Command", style="blue")
    table.add_column("Args", style="dim")

    for key in sorted(document.mcp_servers):
        entry = document.mcp_servers[key]
        table.add_row(key, entry.command, " ".join(str(arg) for arg in entry.args))

    console.print(table)


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
