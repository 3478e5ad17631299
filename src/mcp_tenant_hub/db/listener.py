"""
PostgreSQL LISTEN/NOTIFY subscription.

The listener holds its own connection for the lifetime of the process; it is
never taken from (or returned to) the request pool.
"""

from typing import Any, Callable, Dict, Optional

import asyncpg

from mcp_tenant_hub.core.exceptions import PersistenceError
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)

ChangeCallback = Callable[[], Any]


class ListenerHandle:
    """Subscription handle; closing it releases the dedicated connection."""

    def __init__(
        self,
        connection: Optional[asyncpg.Connection] = None,
        channel: Optional[str] = None,
        callback: Optional[Callable[..., None]] = None,
    ):
        self._connection = connection
        self.channel = channel
        self._callback = callback
        self.notifications_received = 0
        self.terminated = False

    @classmethod
    def empty(cls) -> "ListenerHandle":
        """A handle with nothing to release, for shutdown paths before a successful open."""
        return cls()

    def _bind(self, connection: asyncpg.Connection, callback: Callable[..., None]) -> None:
        self._connection = connection
        self._callback = callback
        connection.add_termination_listener(self._on_terminated)

    def _on_terminated(self, connection: asyncpg.Connection) -> None:
        # Only reached when the server side drops the connection; close()
        # unregisters this first.
        self.terminated = True
        logger.error(
            "Database listener connection lost, configuration sync is stopped",
            extra={"channel": self.channel},
        )

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._connection.is_closed()

    def stats(self) -> Dict[str, Any]:
        return {
            "channel": self.channel,
            "open": self.is_open,
            "terminated": self.terminated,
            "notifications_received": self.notifications_received,
        }

    async def close(self) -> None:
        """Stop listening and close the connection. Safe to call repeatedly."""
        connection, self._connection = self._connection, None
        if connection is None or connection.is_closed():
            return

        connection.remove_termination_listener(self._on_terminated)
        try:
            if self._callback is not None:
                await connection.remove_listener(self.channel, self._callback)
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.warning(f"Failed to remove listener on channel {self.channel}: {e}")
        finally:
            await connection.close()

        logger.info("Database listener stopped", extra={"channel": self.channel})


class ChangeListener:
    """Subscribes to one notification channel on a dedicated connection."""

    def __init__(self, dsn: Optional[str]):
        self.dsn = dsn

    async def subscribe(self, channel: str, on_change: ChangeCallback) -> ListenerHandle:
        """
        Start delivering notifications on ``channel`` to ``on_change``.

        ``on_change`` is called with no arguments, once per notification;
        payloads are ignored. Exceptions it raises are logged and swallowed.

        Args:
            channel: Notification channel name
            on_change: Callback invoked per notification

        Returns:
            Handle owning the dedicated connection

        Raises:
            PersistenceError: If the connection or LISTEN fails
        """
        if not self.dsn:
            raise PersistenceError("DATABASE_URL is not configured")

        connection = None
        handle = ListenerHandle(channel=channel)

        def _on_notification(conn, pid, notified_channel, payload):
            if notified_channel != channel:
                return
            handle.notifications_received += 1
            logger.debug("Received change notification", extra={
                "channel": notified_channel,
                "payload": payload,
            })
            try:
                on_change()
            except Exception as e:
                logger.error(f"Change callback failed: {e}", exc_info=True)

        try:
            connection = await asyncpg.connect(self.dsn)
            await connection.add_listener(channel, _on_notification)
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Failed to listen on channel {channel}: {e}")
            if connection is not None:
                await connection.close()
            raise PersistenceError(f"Failed to listen on channel {channel}: {e}") from e

        handle._bind(connection, _on_notification)

        logger.info(f"Listening for notifications on channel: {channel}")
        return handle
