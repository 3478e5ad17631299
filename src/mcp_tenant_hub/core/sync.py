"""
Keeps the hub configuration file in step with the database.

A pass loads every definition and binding, assembles the document and writes
it to disk. Passes never overlap: they run under one lock, and rebuild
requests that arrive while a pass is running collapse into a single follow-up
pass.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from mcp_tenant_hub.core.assembler import assemble
from mcp_tenant_hub.core.models import GeneratedConfigDocument
from mcp_tenant_hub.hub.config_writer import ConfigWriter
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)


class ConfigSynchronizer:
    """Runs assemble + materialize passes, one at a time."""

    def __init__(
        self,
        database: Any,
        config_path: Union[str, Path],
        writer: Optional[ConfigWriter] = None,
    ):
        """
        Initialize the synchronizer.

        Args:
            database: Object exposing ``mcp_servers.get_all()`` and
                ``user_mcp_servers.get_all()`` coroutines
            config_path: File the hub process reads
            writer: Config writer, a default one is created if omitted
        """
        self.database = database
        self.config_path = Path(config_path)
        self.writer = writer or ConfigWriter()

        self._lock = asyncio.Lock()
        self._pending = False
        self._drain_task: Optional[asyncio.Task] = None

        # Statistics
        self.passes_completed = 0
        self.passes_failed = 0
        self.last_synced_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.server_count = 0

    async def sync_now(self) -> GeneratedConfigDocument:
        """
        Run one full pass and return the document written.

        Raises whatever the database or writer raised; the previous file stays
        in place on failure.
        """
        async with self._lock:
            return await self._run_pass()

    def request_rebuild(self) -> None:
        """
        Schedule a rebuild without waiting for it.

        Safe to call from a notification callback. Requests made while a pass
        is in flight are merged into one pass that starts after it.
        """
        self._pending = True
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Wait for scheduled rebuilds to finish."""
        task = self._drain_task
        if task is None or task.done():
            return
        await asyncio.wait_for(asyncio.shield(task), timeout=timeout)

    @property
    def rebuild_pending(self) -> bool:
        return self._pending

    def stats(self) -> Dict[str, Any]:
        return {
            "config_path": str(self.config_path),
            "passes_completed": self.passes_completed,
            "passes_failed": self.passes_failed,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
            "last_error": self.last_error,
            "server_count": self.server_count,
        }

    async def _drain(self) -> None:
        while self._pending:
            async with self._lock:
                self._pending = False
                logger.info("Regenerating hub configuration after database change")
                try:
                    await self._run_pass()
                except Exception as e:
                    # Background passes keep the previous file and keep listening.
                    logger.error(f"Hub configuration rebuild failed: {e}", exc_info=True)

    async def _run_pass(self) -> GeneratedConfigDocument:
        try:
            definitions = await self.database.mcp_servers.get_all()
            bindings = await self.database.user_mcp_servers.get_all()

            document = assemble(definitions, bindings)
            self.writer.materialize(document, self.config_path)

        except Exception as e:
            self.passes_failed += 1
            self.last_error = str(e)
            raise

        self.passes_completed += 1
        self.last_error = None
        self.last_synced_at = datetime.now(timezone.utc)
        self.server_count = len(document)

        logger.debug("Hub configuration pass complete", extra={
            "definitions": len(definitions),
            "bindings": len(bindings),
            "servers": len(document),
        })
        return document
