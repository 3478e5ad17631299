"""
Request and response models for the REST API.

Bodies use camelCase field names on the wire (``mcpServerId``,
``argsTemplate``, ``configVars``); snake_case is accepted on input too.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from mcp_tenant_hub.core.models import ServerDefinition, TenantBinding


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class APIModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ServerDefinitionCreate(APIModel):
    """Request model for creating a server definition."""

    mcp_server_id: str = Field(description="Unique server identifier")
    description: Optional[str] = Field(default=None, description="Human description")
    command: str = Field(description="Launch command")
    args_template: List[Any] = Field(default_factory=list, description="Argument templates")

    @field_validator("mcp_server_id", "command")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    def to_model(self) -> ServerDefinition:
        return ServerDefinition(**self.model_dump())


class ServerDefinitionUpdate(APIModel):
    """Request model for updating a server definition."""

    description: Optional[str] = Field(default=None, description="Human description")
    command: Optional[str] = Field(default=None, description="Launch command")
    args_template: Optional[List[Any]] = Field(default=None, description="Argument templates")


class ServerDefinitionResponse(APIModel):
    """Server definition as returned by the API."""

    mcp_server_id: str
    description: Optional[str] = None
    command: str
    args_template: List[Any] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, definition: ServerDefinition) -> "ServerDefinitionResponse":
        return cls(**definition.model_dump())


class TenantBindingCreate(APIModel):
    """Request model for binding a tenant to a server definition."""

    user_id: str = Field(description="Owning tenant")
    mcp_server_id: str = Field(description="Referenced server definition")
    config_vars: Dict[str, Any] = Field(default_factory=dict, description="Template variables")

    @field_validator("user_id", "mcp_server_id")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    def to_model(self) -> TenantBinding:
        return TenantBinding(**self.model_dump())


class TenantBindingUpdate(APIModel):
    """Request model for replacing a binding's template variables."""

    config_vars: Dict[str, Any] = Field(description="Template variables")


class TenantBindingResponse(APIModel):
    """Tenant binding as returned by the API."""

    id: Optional[UUID] = None
    user_id: str
    mcp_server_id: str
    config_vars: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, binding: TenantBinding) -> "TenantBindingResponse":
        return cls(**binding.model_dump())


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str = Field(description="Health status")
    service: str = Field(description="Service identity")
    timestamp: datetime = Field(default_factory=utc_now, description="Response timestamp")
    hub_state: str = Field(description="Supervised hub process state")
    config_sync: Dict[str, Any] = Field(default_factory=dict, description="Sync statistics")
    listener: Dict[str, Any] = Field(default_factory=dict, description="Change listener state")


class SyncResponse(BaseModel):
    """Response model for a rebuild request."""

    accepted: bool = True
    message: str = "Configuration rebuild scheduled"
    timestamp: datetime = Field(default_factory=utc_now)


class ErrorResponse(BaseModel):
    """Structured error body."""

    error: str = Field(description="Error kind")
    message: str = Field(description="Error message")
    timestamp: datetime = Field(default_factory=utc_now, description="Error timestamp")
    details: Optional[Any] = Field(default=None, description="Error details")
