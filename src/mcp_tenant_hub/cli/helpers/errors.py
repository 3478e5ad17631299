"""
Error handling utilities for CLI commands.
"""

import functools
import sys

from rich.console import Console

from mcp_tenant_hub.core.exceptions import MCPHubError

console = Console(stderr=True)


def handle_errors(func):
    """Decorator to turn service errors into a message and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            sys.exit(1)
        except MCPHubError as e:
            console.print(f"[red]Error: {e}[/red]")
            console.print("[dim]Use --debug for more details[/dim]")
            sys.exit(1)

    return wrapper
