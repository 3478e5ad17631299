"""
Tests for the LISTEN/NOTIFY change listener.
"""

import logging

import pytest

from mcp_tenant_hub.core.exceptions import PersistenceError
from mcp_tenant_hub.db import listener as listener_module
from mcp_tenant_hub.db.listener import ChangeListener, ListenerHandle

CHANNEL = "user_mcp_servers_changed"


class FakeConnection:
    """Minimal asyncpg connection double."""

    def __init__(self, listen_error=None):
        self.listen_error = listen_error
        self.listeners = {}
        self.removed = []
        self.closed = False
        self.termination_listeners = []

    async def add_listener(self, channel, callback):
        if self.listen_error is not None:
            raise self.listen_error
        self.listeners[channel] = callback

    async def remove_listener(self, channel, callback):
        self.removed.append(channel)
        self.listeners.pop(channel, None)

    async def close(self):
        self.closed = True

    def is_closed(self):
        return self.closed

    def add_termination_listener(self, callback):
        self.termination_listeners.append(callback)

    def remove_termination_listener(self, callback):
        self.termination_listeners.remove(callback)

    def drop(self):
        self.closed = True
        for callback in list(self.termination_listeners):
            callback(self)

    def notify(self, channel, payload=""):
        self.listeners[CHANNEL](self, 4242, channel, payload)


@pytest.fixture
def connection(monkeypatch):
    conn = FakeConnection()

    async def fake_connect(dsn):
        return conn

    monkeypatch.setattr(listener_module.asyncpg, "connect", fake_connect)
    return conn


class TestChangeListener:
    """Test subscription and delivery."""

    @pytest.mark.asyncio
    async def test_subscribe_listens_on_channel(self, connection):
        """Test subscribe() registers a listener for the channel."""
        handle = await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: None)

        assert CHANNEL in connection.listeners
        assert handle.is_open
        assert handle.channel == CHANNEL

    @pytest.mark.asyncio
    async def test_each_notification_invokes_callback(self, connection):
        """Test the callback runs once per notification, payload ignored."""
        calls = []
        handle = await ChangeListener("postgresql://db").subscribe(
            CHANNEL, lambda: calls.append(1)
        )

        connection.notify(CHANNEL, "user_mcp_servers:INSERT")
        connection.notify(CHANNEL, "mcp_servers:DELETE")

        assert len(calls) == 2
        assert handle.notifications_received == 2

    @pytest.mark.asyncio
    async def test_other_channels_ignored(self, connection):
        """Test notifications for a different channel do not trigger the callback."""
        calls = []
        await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: calls.append(1))

        connection.notify("some_other_channel")

        assert calls == []

    @pytest.mark.asyncio
    async def test_callback_errors_are_swallowed(self, connection):
        """Test a failing callback does not break later deliveries."""
        calls = []

        def on_change():
            calls.append(1)
            raise RuntimeError("boom")

        await ChangeListener("postgresql://db").subscribe(CHANNEL, on_change)

        connection.notify(CHANNEL)
        connection.notify(CHANNEL)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_missing_dsn(self):
        """Test subscribing without a DSN fails with PersistenceError."""
        with pytest.raises(PersistenceError):
            await ChangeListener(None).subscribe(CHANNEL, lambda: None)

    @pytest.mark.asyncio
    async def test_connect_failure(self, monkeypatch):
        """Test connection errors are reported as PersistenceError."""
        async def fake_connect(dsn):
            raise OSError("connection refused")

        monkeypatch.setattr(listener_module.asyncpg, "connect", fake_connect)

        with pytest.raises(PersistenceError) as exc_info:
            await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: None)
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_listen_failure_closes_connection(self, monkeypatch):
        """Test a failed LISTEN does not leak the dedicated connection."""
        conn = FakeConnection(listen_error=OSError("reset"))

        async def fake_connect(dsn):
            return conn

        monkeypatch.setattr(listener_module.asyncpg, "connect", fake_connect)

        with pytest.raises(PersistenceError):
            await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: None)
        assert conn.closed


class TestListenerHandle:
    """Test releasing the subscription."""

    @pytest.mark.asyncio
    async def test_close_unlistens_and_closes(self, connection):
        """Test close() removes the listener and closes the connection."""
        handle = await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: None)

        await handle.close()

        assert connection.removed == [CHANNEL]
        assert connection.closed
        assert not handle.is_open

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, connection):
        """Test closing twice is harmless."""
        handle = await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: None)

        await handle.close()
        await handle.close()

        assert connection.removed == [CHANNEL]

    @pytest.mark.asyncio
    async def test_empty_handle(self):
        """Test the placeholder handle closes without doing anything."""
        handle = ListenerHandle.empty()

        assert not handle.is_open
        await handle.close()

    @pytest.mark.asyncio
    async def test_lost_connection_is_logged(self, connection, caplog):
        """Test a dropped LISTEN connection is reported and shows as closed."""
        handle = await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: None)

        with caplog.at_level(logging.ERROR):
            connection.drop()

        assert handle.terminated
        assert not handle.is_open
        assert handle.stats()["open"] is False
        assert "Database listener connection lost" in caplog.text

    @pytest.mark.asyncio
    async def test_close_does_not_report_lost_connection(self, connection):
        """Test an intentional close unregisters the termination callback."""
        handle = await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: None)

        await handle.close()

        assert connection.termination_listeners == []
        assert not handle.terminated

    @pytest.mark.asyncio
    async def test_stats(self, connection):
        """Test stats() reports channel, state and delivery count."""
        handle = await ChangeListener("postgresql://db").subscribe(CHANNEL, lambda: None)
        connection.notify(CHANNEL)

        assert handle.stats() == {
            "channel": CHANNEL,
            "open": True,
            "terminated": False,
            "notifications_received": 1,
        }
