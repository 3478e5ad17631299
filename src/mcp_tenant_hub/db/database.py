"""
PostgreSQL persistence for server definitions and tenant bindings.

Request-path queries go through an asyncpg connection pool. Schema creation
is idempotent and installs the triggers that publish change notifications for
the config synchronizer.
"""

import json
from typing import Any, Dict, List, Optional
from uuid import UUID

import asyncpg

from mcp_tenant_hub.core.exceptions import NotFoundError, PersistenceError, ValidationError
from mcp_tenant_hub.core.models import ServerDefinition, TenantBinding
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS mcp_servers (
    mcp_server_id TEXT PRIMARY KEY,
    description TEXT,
    command TEXT NOT NULL,
    args_template JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS user_mcp_servers (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id TEXT NOT NULL,
    mcp_server_id TEXT NOT NULL,
    config_vars JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_user_mcp_servers_user ON user_mcp_servers(user_id);
CREATE INDEX IF NOT EXISTS idx_user_mcp_servers_server ON user_mcp_servers(mcp_server_id);

CREATE OR REPLACE FUNCTION notify_mcp_config_changed() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify('{channel}', TG_TABLE_NAME || ':' || TG_OP);
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS mcp_servers_changed ON mcp_servers;
CREATE TRIGGER mcp_servers_changed
    AFTER INSERT OR UPDATE OR DELETE ON mcp_servers
    FOR EACH STATEMENT EXECUTE FUNCTION notify_mcp_config_changed();

DROP TRIGGER IF EXISTS user_mcp_servers_changed ON user_mcp_servers;
CREATE TRIGGER user_mcp_servers_changed
    AFTER INSERT OR UPDATE OR DELETE ON user_mcp_servers
    FOR EACH STATEMENT EXECUTE FUNCTION notify_mcp_config_changed();
"""


def render_schema(channel: str) -> str:
    """Schema DDL with the notification channel filled in."""
    return SCHEMA_SQL.replace("{channel}", channel.replace("'", "''"))


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode JSONB columns to Python objects on every pooled connection."""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class Database:
    """Owns the asyncpg pool and exposes the table repositories."""

    def __init__(
        self,
        dsn: Optional[str],
        min_size: int = 1,
        max_size: int = 10,
        notify_channel: str = "user_mcp_servers_changed",
    ):
        """
        Initialize the database handle. No connection is opened until connect().

        Args:
            dsn: PostgreSQL connection string
            min_size: Minimum pool size
            max_size: Maximum pool size
            notify_channel: Channel the change triggers publish to
        """
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.notify_channel = notify_channel
        self._pool: Optional[asyncpg.Pool] = None

        self.mcp_servers = ServerDefinitionRepository(self)
        self.user_mcp_servers = TenantBindingRepository(self)

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Open the connection pool."""
        if self._pool is not None:
            return
        if not self.dsn:
            raise PersistenceError("DATABASE_URL is not configured")

        try:
            self._pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                init=_init_connection,
            )
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Failed to connect to database: {e}")
            raise PersistenceError(f"Failed to connect to database: {e}") from e

        logger.info("Database pool opened", extra={
            "min_size": self.min_size,
            "max_size": self.max_size,
        })

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Database pool closed")

    async def initialize_schema(self) -> None:
        """Create tables and change-notification triggers if missing."""
        await self.execute(render_schema(self.notify_channel))
        logger.info("Database schema initialized successfully", extra={
            "notify_channel": self.notify_channel,
        })

    async def ping(self) -> bool:
        """Check that a pooled connection can run a trivial query."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except PersistenceError:
            return False

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise PersistenceError("Database is not connected")
        return self._pool

    async def _run(self, method: str, query: str, *args: Any) -> Any:
        pool = self._require_pool()
        try:
            return await getattr(pool, method)(query, *args)
        except asyncpg.UniqueViolationError as e:
            raise ValidationError(
                "Record already exists",
                details={"constraint": getattr(e, "constraint_name", None)},
            ) from e
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error("Database query error", extra={
                "error": str(e),
                "query": query.strip().splitlines()[0],
            })
            raise PersistenceError(f"Database query failed: {e}") from e

    async def execute(self, query: str, *args: Any) -> str:
        return await self._run("execute", query, *args)

    async def fetch(self, query: str, *args: Any) -> List[asyncpg.Record]:
        return await self._run("fetch", query, *args)

    async def fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
        return await self._run("fetchrow", query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self._run("fetchval", query, *args)


class ServerDefinitionRepository:
    """CRUD for the ``mcp_servers`` table."""

    def __init__(self, db: Database):
        self._db = db

    async def get_all(self) -> List[ServerDefinition]:
        rows = await self._db.fetch("SELECT * FROM mcp_servers ORDER BY mcp_server_id")
        return [ServerDefinition(**dict(row)) for row in rows]

    async def get_by_id(self, mcp_server_id: str) -> ServerDefinition:
        row = await self._db.fetchrow(
            "SELECT * FROM mcp_servers WHERE mcp_server_id = $1", mcp_server_id
        )
        if row is None:
            raise NotFoundError(f"MCP server '{mcp_server_id}' not found")
        return ServerDefinition(**dict(row))

    async def create(self, definition: ServerDefinition) -> ServerDefinition:
        row = await self._db.fetchrow(
            """
            INSERT INTO mcp_servers (mcp_server_id, description, command, args_template)
            VALUES ($1, $2, $3, $4)
            RETURNING *
            """,
            definition.mcp_server_id,
            definition.description,
            definition.command,
            definition.args_template,
        )
        logger.info("Created MCP server definition", extra={
            "mcp_server_id": definition.mcp_server_id,
        })
        return ServerDefinition(**dict(row))

    async def update(self, mcp_server_id: str, updates: Dict[str, Any]) -> ServerDefinition:
        """
        Update description, command and argument templates.

        Fields missing from ``updates`` keep their stored value.
        """
        current = await self.get_by_id(mcp_server_id)
        merged = current.model_copy(update={
            key: value for key, value in updates.items()
            if key in ("description", "command", "args_template") and value is not None
        })
        row = await self._db.fetchrow(
            """
            UPDATE mcp_servers
            SET description = $2, command = $3, args_template = $4, updated_at = NOW()
            WHERE mcp_server_id = $1
            RETURNING *
            """,
            mcp_server_id,
            merged.description,
            merged.command,
            merged.args_template,
        )
        if row is None:
            raise NotFoundError(f"MCP server '{mcp_server_id}' not found")
        return ServerDefinition(**dict(row))

    async def delete(self, mcp_server_id: str) -> ServerDefinition:
        row = await self._db.fetchrow(
            "DELETE FROM mcp_servers WHERE mcp_server_id = $1 RETURNING *", mcp_server_id
        )
        if row is None:
            raise NotFoundError(f"MCP server '{mcp_server_id}' not found")
        logger.info("Deleted MCP server definition", extra={"mcp_server_id": mcp_server_id})
        return ServerDefinition(**dict(row))


class TenantBindingRepository:
    """CRUD for the ``user_mcp_servers`` table."""

    def __init__(self, db: Database):
        self._db = db

    async def get_all(self) -> List[TenantBinding]:
        """All bindings, oldest first, so newer bindings are applied last."""
        rows = await self._db.fetch(
            "SELECT * FROM user_mcp_servers ORDER BY created_at ASC, id ASC"
        )
        return [TenantBinding(**dict(row)) for row in rows]

    async def get_by_user_id(self, user_id: str) -> List[TenantBinding]:
        rows = await self._db.fetch(
            "SELECT * FROM user_mcp_servers WHERE user_id = $1 ORDER BY created_at DESC",
            user_id,
        )
        return [TenantBinding(**dict(row)) for row in rows]

    async def get_by_id(self, binding_id: UUID) -> TenantBinding:
        row = await self._db.fetchrow(
            "SELECT * FROM user_mcp_servers WHERE id = $1", binding_id
        )
        if row is None:
            raise NotFoundError(f"User MCP server '{binding_id}' not found")
        return TenantBinding(**dict(row))

    async def create(self, binding: TenantBinding) -> TenantBinding:
        row = await self._db.fetchrow(
            """
            INSERT INTO user_mcp_servers (user_id, mcp_server_id, config_vars)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            binding.user_id,
            binding.mcp_server_id,
            binding.config_vars,
        )
        logger.info("Created user MCP server", extra={
            "user_id": binding.user_id,
            "mcp_server_id": binding.mcp_server_id,
        })
        return TenantBinding(**dict(row))

    async def update(self, binding_id: UUID, config_vars: Dict[str, Any]) -> TenantBinding:
        row = await self._db.fetchrow(
            """
            UPDATE user_mcp_servers
            SET config_vars = $2, updated_at = NOW()
            WHERE id = $1
            RETURNING *
            """,
            binding_id,
            config_vars,
        )
        if row is None:
            raise NotFoundError(f"User MCP server '{binding_id}' not found")
        return TenantBinding(**dict(row))

    async def delete(self, binding_id: UUID) -> TenantBinding:
        row = await self._db.fetchrow(
            "DELETE FROM user_mcp_servers WHERE id = $1 RETURNING *", binding_id
        )
        if row is None:
            raise NotFoundError(f"User MCP server '{binding_id}' not found")
        logger.info("Deleted user MCP server", extra={"binding_id": str(binding_id)})
        return TenantBinding(**dict(row))
