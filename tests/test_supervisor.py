"""
Tests for the hub process supervisor.

These spawn short-lived Python child processes in place of the hub.
"""

import asyncio
import signal
import sys
import time

import pytest

from mcp_tenant_hub.core.exceptions import StartupFailure
from mcp_tenant_hub.core.models import SupervisorState
from mcp_tenant_hub.hub.supervisor import HubSupervisor

pytestmark = pytest.mark.slow


def python_child(code):
    return [sys.executable, "-c", code]


SLEEPER = python_child("import time; time.sleep(30)")

STUBBORN = python_child(
    "import signal, time\n"
    "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
    "time.sleep(30)\n"
)


class TestStart:
    """Test spawning the hub."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Test a long-running child reaches RUNNING and stops on SIGTERM."""
        supervisor = HubSupervisor(SLEEPER, startup_grace_period=0.3, shutdown_timeout=5)

        await supervisor.start()
        assert supervisor.state == SupervisorState.RUNNING
        assert supervisor.pid is not None

        await supervisor.stop()
        assert supervisor.state == SupervisorState.STOPPED
        assert supervisor.returncode == -signal.SIGTERM

    @pytest.mark.asyncio
    async def test_exit_during_grace_period(self):
        """Test a child that exits immediately is a startup failure."""
        supervisor = HubSupervisor(
            python_child("import sys; sys.exit(3)"), startup_grace_period=5
        )

        with pytest.raises(StartupFailure) as exc_info:
            await supervisor.start()

        assert exc_info.value.returncode == 3
        assert supervisor.state == SupervisorState.STOPPED

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        """Test an unlaunchable command is a startup failure."""
        supervisor = HubSupervisor([str(tmp_path / "no-such-hub")], startup_grace_period=0.1)

        with pytest.raises(StartupFailure):
            await supervisor.start()
        assert supervisor.state == SupervisorState.STOPPED

    @pytest.mark.asyncio
    async def test_start_twice_is_ignored(self):
        """Test start() on a running supervisor does not spawn a second process."""
        supervisor = HubSupervisor(SLEEPER, startup_grace_period=0.3)
        await supervisor.start()
        pid = supervisor.pid

        try:
            await supervisor.start()
            assert supervisor.pid == pid
        finally:
            await supervisor.stop()


class TestStop:
    """Test terminating the hub."""

    @pytest.mark.asyncio
    async def test_kill_after_shutdown_timeout(self):
        """Test a child ignoring SIGTERM is killed once the timeout expires."""
        supervisor = HubSupervisor(STUBBORN, startup_grace_period=0.5, shutdown_timeout=0.5)
        await supervisor.start()

        started = time.monotonic()
        await supervisor.stop()
        elapsed = time.monotonic() - started

        assert supervisor.returncode == -signal.SIGKILL
        assert supervisor.state == SupervisorState.STOPPED
        assert elapsed < 5

    @pytest.mark.asyncio
    async def test_stop_without_process(self):
        """Test stop() before start() is a no-op."""
        supervisor = HubSupervisor(SLEEPER)
        await supervisor.stop()
        assert supervisor.state == SupervisorState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_twice(self):
        """Test a second stop() is harmless."""
        supervisor = HubSupervisor(SLEEPER, startup_grace_period=0.3)
        await supervisor.start()

        await supervisor.stop()
        await supervisor.stop()
        assert supervisor.state == SupervisorState.STOPPED


class TestUnexpectedExit:
    """Test the hub exiting on its own."""

    @pytest.mark.asyncio
    async def test_exit_is_observed_not_restarted(self):
        """Test an unexpected exit is recorded and the process is not respawned."""
        supervisor = HubSupervisor(
            python_child("import sys, time; time.sleep(0.5); sys.exit(2)"),
            startup_grace_period=0.1,
        )
        await supervisor.start()
        assert supervisor.is_running

        returncode = await asyncio.wait_for(supervisor.wait(), timeout=10)

        assert returncode == 2
        assert supervisor.state == SupervisorState.STOPPED
        assert supervisor.pid is None

        await supervisor.stop()
        assert supervisor.state == SupervisorState.STOPPED
