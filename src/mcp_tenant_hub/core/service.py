"""
Wires the tenant hub together and owns every long-lived resource.

Startup order: database schema, initial configuration pass, change
subscription, hub process. Any failure along the way is fatal. Shutdown
releases resources in reverse.
"""

import asyncio
from typing import Optional

from mcp_tenant_hub.core.sync import ConfigSynchronizer
from mcp_tenant_hub.db.database import Database
from mcp_tenant_hub.db.listener import ChangeListener, ListenerHandle
from mcp_tenant_hub.hub.client import HubClient
from mcp_tenant_hub.hub.config_writer import ConfigWriter
from mcp_tenant_hub.hub.supervisor import HubSupervisor
from mcp_tenant_hub.utils.config import Settings
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "multi-tenant-mcp-hub"


class HubService:
    """Owns the database, synchronizer, listener and hub process."""

    def __init__(
        self,
        settings: Settings,
        database: Optional[Database] = None,
        listener: Optional[ChangeListener] = None,
        supervisor: Optional[HubSupervisor] = None,
        hub_client: Optional[HubClient] = None,
        writer: Optional[ConfigWriter] = None,
    ):
        self.settings = settings
        self.database = database or Database(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            notify_channel=settings.notify_channel,
        )
        self.synchronizer = ConfigSynchronizer(
            self.database,
            settings.get_config_file_path(),
            writer=writer,
        )
        self.listener = listener or ChangeListener(settings.database_url)
        self.supervisor = supervisor or HubSupervisor(
            settings.hub_command_line(),
            startup_grace_period=settings.startup_grace_period,
            shutdown_timeout=settings.shutdown_timeout,
        )
        self.hub_client = hub_client or HubClient(
            settings.get_hub_url(),
            secret=settings.mcp_hub_secret,
            timeout=settings.hub_request_timeout,
        )
        self.listener_handle = ListenerHandle.empty()

    async def start(self) -> None:
        """
        Bring the service up.

        Raises:
            MCPHubError: Any startup step failed; callers should call stop()
                and exit nonzero
        """
        logger.info("Starting Multi-tenant MCP-Hub...")

        logger.info("Initializing database schema...")
        await self.database.connect()
        await self.database.initialize_schema()

        logger.info("Generating initial MCP servers configuration file...")
        await self.synchronizer.sync_now()

        logger.info("Setting up database change listener...")
        self.listener_handle = await self.listener.subscribe(
            self.settings.notify_channel,
            self.synchronizer.request_rebuild,
        )

        await self.supervisor.start()

        logger.info(f"Multi-tenant MCP-Hub running, hub on port {self.settings.hub_port}")

    async def stop(self) -> None:
        """Release everything start() acquired. Safe after a partial start."""
        await self.supervisor.stop()
        await self.listener_handle.close()

        try:
            await self.synchronizer.wait_idle(timeout=self.settings.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning("Abandoning in-flight configuration rebuild on shutdown")

        await self.hub_client.aclose()
        await self.database.close()
        logger.info("Multi-tenant MCP-Hub stopped")
