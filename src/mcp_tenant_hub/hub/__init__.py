"""
Everything that talks to the external MCP-Hub process.
"""

from .client import HubClient
from .config_writer import ConfigWriter
from .supervisor import HubSupervisor

__all__ = ["HubClient", "ConfigWriter", "HubSupervisor"]
