"""
Supervises the external hub process.

The supervisor owns the child process and its lifecycle state. It does not
restart the hub after an unexpected exit; that is left to whatever runs this
service.
"""

import asyncio
import signal
from typing import List, Optional

from mcp_tenant_hub.core.exceptions import StartupFailure
from mcp_tenant_hub.core.models import SupervisorState
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)


class HubSupervisor:
    """Starts, watches and stops the hub process."""

    def __init__(
        self,
        argv: List[str],
        startup_grace_period: float = 1.0,
        shutdown_timeout: float = 5.0,
    ):
        """
        Initialize the supervisor.

        Args:
            argv: Hub command line
            startup_grace_period: Seconds the process must stay alive for
                start() to succeed
            shutdown_timeout: Seconds to wait after SIGTERM before SIGKILL
        """
        self.argv = list(argv)
        self.startup_grace_period = startup_grace_period
        self.shutdown_timeout = shutdown_timeout

        self.state = SupervisorState.STOPPED
        self._process: Optional[asyncio.subprocess.Process] = None
        self._watch_task: Optional[asyncio.Task] = None
        self.returncode: Optional[int] = None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def is_running(self) -> bool:
        return self.state == SupervisorState.RUNNING

    async def start(self) -> None:
        """
        Spawn the hub and wait out the startup grace period.

        Raises:
            StartupFailure: If the process cannot be spawned or exits during
                the grace period
        """
        if self.state != SupervisorState.STOPPED:
            logger.warning(f"Hub already {self.state.value}, not starting again")
            return

        self.state = SupervisorState.STARTING
        self.returncode = None
        logger.info("Starting MCP-Hub", extra={"argv": " ".join(self.argv)})

        try:
            self._process = await asyncio.create_subprocess_exec(*self.argv)
        except OSError as e:
            self.state = SupervisorState.STOPPED
            logger.error(f"Failed to start MCP-Hub process: {e}")
            raise StartupFailure(f"Failed to start MCP-Hub process: {e}") from e

        try:
            returncode = await asyncio.wait_for(
                self._process.wait(), timeout=self.startup_grace_period
            )
        except asyncio.TimeoutError:
            pass
        else:
            self._process = None
            self.returncode = returncode
            self.state = SupervisorState.STOPPED
            logger.error(f"MCP-Hub exited during startup with code {returncode}")
            raise StartupFailure(
                f"MCP-Hub process exited with code {returncode} during startup",
                returncode=returncode,
            )

        self.state = SupervisorState.RUNNING
        self._watch_task = asyncio.create_task(self._watch(self._process))
        logger.info("MCP-Hub started successfully", extra={"pid": self._process.pid})

    async def stop(self) -> None:
        """Terminate the hub: SIGTERM, then SIGKILL after the shutdown timeout."""
        process = self._process
        if process is None or self.state in (SupervisorState.STOPPED, SupervisorState.STOPPING):
            logger.info("No MCP-Hub process to stop")
            return

        self.state = SupervisorState.STOPPING
        logger.info("Stopping MCP-Hub...")

        try:
            process.send_signal(signal.SIGTERM)
        except ProcessLookupError:
            pass

        try:
            await asyncio.wait_for(process.wait(), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning("Force killing MCP-Hub process...")
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

        if self._watch_task is not None:
            await self._watch_task
            self._watch_task = None

        self._process = None
        self.returncode = process.returncode
        self.state = SupervisorState.STOPPED
        logger.info("MCP-Hub stopped successfully", extra={"returncode": process.returncode})

    async def wait(self) -> Optional[int]:
        """Wait until the hub exits for any reason and return its exit code."""
        if self._watch_task is not None:
            await asyncio.shield(self._watch_task)
        return self.returncode

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        self.returncode = returncode

        if self.state == SupervisorState.STOPPING:
            return

        if returncode != 0:
            logger.error(f"MCP-Hub process exited with code {returncode}")
        else:
            logger.info("MCP-Hub process exited successfully")

        self._process = None
        self.state = SupervisorState.STOPPED
