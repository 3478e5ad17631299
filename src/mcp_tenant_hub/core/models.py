"""
Data models for the tenant hub.

Server definitions and tenant bindings mirror the two database tables; the
generated document is what the hub process reads from disk.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class SupervisorState(str, Enum):
    """Lifecycle state of the supervised hub process."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class ServerDefinition(BaseModel):
    """Reusable template describing how to launch a tool server."""

    mcp_server_id: str = Field(description="Unique server identifier")
    description: Optional[str] = Field(default=None, description="Human description")
    command: str = Field(description="Launch command")
    args_template: List[Any] = Field(
        default_factory=list,
        description="Ordered argument templates with {{name}} placeholders",
    )
    created_at: Optional[datetime] = Field(default=None, description="Creation time")
    updated_at: Optional[datetime] = Field(default=None, description="Last update time")

    @field_validator("mcp_server_id", "command")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject blank identifiers and commands."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class TenantBinding(BaseModel):
    """A tenant's concrete parameter values for one server definition."""

    id: Optional[UUID] = Field(default=None, description="System generated id")
    user_id: str = Field(description="Owning tenant")
    mcp_server_id: str = Field(description="Referenced server definition")
    config_vars: Dict[str, Any] = Field(
        default_factory=dict,
        description="Placeholder name to substitution value",
    )
    created_at: Optional[datetime] = Field(default=None, description="Creation time")
    updated_at: Optional[datetime] = Field(default=None, description="Last update time")


class HubServerEntry(BaseModel):
    """One launchable server in the generated hub configuration."""

    command: str
    args: List[Any] = Field(default_factory=list)


class GeneratedConfigDocument(BaseModel):
    """Hub configuration derived from definitions and bindings."""

    mcp_servers: Dict[str, HubServerEntry] = Field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.mcp_servers)

    def to_file_dict(self) -> Dict[str, Any]:
        """Shape consumed by the hub: ``{"mcpServers": {...}}``."""
        return {
            "mcpServers": {
                key: entry.model_dump() for key, entry in self.mcp_servers.items()
            }
        }

    @classmethod
    def from_file_dict(cls, data: Dict[str, Any]) -> "GeneratedConfigDocument":
        """Build a document from the on-disk shape."""
        return cls(mcp_servers=data.get("mcpServers", {}))
