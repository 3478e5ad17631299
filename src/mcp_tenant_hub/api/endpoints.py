"""
REST API endpoint handlers.

Administrative CRUD over server definitions and tenant bindings, the health
check, and forwarding of tenant tool-server calls to the hub.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi.responses import JSONResponse

from mcp_tenant_hub.api.auth import resolve_tenant_server_id
from mcp_tenant_hub.api.models import (
    HealthResponse, ServerDefinitionCreate, ServerDefinitionResponse,
    ServerDefinitionUpdate, SyncResponse, TenantBindingCreate,
    TenantBindingResponse, TenantBindingUpdate
)
from mcp_tenant_hub.core.service import SERVICE_NAME, HubService
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)


class APIEndpoints:
    """Main API endpoints controller."""

    def __init__(self, service: HubService):
        """Initialize API endpoints around the running service."""
        self.service = service
        self.database = service.database

    async def health_check(self) -> HealthResponse:
        """Service identity, status and sync statistics. Never requires auth."""
        return HealthResponse(
            status="ok",
            service=SERVICE_NAME,
            hub_state=self.service.supervisor.state.value,
            config_sync=self.service.synchronizer.stats(),
            listener=self.service.listener_handle.stats(),
        )

    # Server definitions

    async def list_servers(self) -> List[ServerDefinitionResponse]:
        definitions = await self.database.mcp_servers.get_all()
        return [ServerDefinitionResponse.from_model(d) for d in definitions]

    async def get_server(self, mcp_server_id: str) -> ServerDefinitionResponse:
        definition = await self.database.mcp_servers.get_by_id(mcp_server_id)
        return ServerDefinitionResponse.from_model(definition)

    async def create_server(self, request: ServerDefinitionCreate) -> ServerDefinitionResponse:
        definition = await self.database.mcp_servers.create(request.to_model())
        return ServerDefinitionResponse.from_model(definition)

    async def update_server(
        self, mcp_server_id: str, request: ServerDefinitionUpdate
    ) -> ServerDefinitionResponse:
        definition = await self.database.mcp_servers.update(
            mcp_server_id, request.model_dump(exclude_unset=True)
        )
        return ServerDefinitionResponse.from_model(definition)

    async def delete_server(self, mcp_server_id: str) -> ServerDefinitionResponse:
        definition = await self.database.mcp_servers.delete(mcp_server_id)
        return ServerDefinitionResponse.from_model(definition)

    # Tenant bindings

    async def list_bindings(self, user_id: Optional[str] = None) -> List[TenantBindingResponse]:
        if user_id:
            bindings = await self.database.user_mcp_servers.get_by_user_id(user_id)
        else:
            bindings = await self.database.user_mcp_servers.get_all()
        return [TenantBindingResponse.from_model(b) for b in bindings]

    async def get_binding(self, binding_id: UUID) -> TenantBindingResponse:
        binding = await self.database.user_mcp_servers.get_by_id(binding_id)
        return TenantBindingResponse.from_model(binding)

    async def create_binding(self, request: TenantBindingCreate) -> TenantBindingResponse:
        binding = await self.database.user_mcp_servers.create(request.to_model())
        return TenantBindingResponse.from_model(binding)

    async def update_binding(
        self, binding_id: UUID, request: TenantBindingUpdate
    ) -> TenantBindingResponse:
        binding = await self.database.user_mcp_servers.update(binding_id, request.config_vars)
        return TenantBindingResponse.from_model(binding)

    async def delete_binding(self, binding_id: UUID) -> TenantBindingResponse:
        binding = await self.database.user_mcp_servers.delete(binding_id)
        return TenantBindingResponse.from_model(binding)

    # Generated configuration

    async def get_generated_config(self) -> Dict[str, Any]:
        synchronizer = self.service.synchronizer
        document = synchronizer.writer.read(synchronizer.config_path)
        return document.to_file_dict()

    async def request_sync(self) -> SyncResponse:
        self.service.synchronizer.request_rebuild()
        return SyncResponse()

    # Tenant forwarding

    async def forward_tenant_call(
        self,
        action: str,
        tenant_id: Optional[str],
        body: Dict[str, Any],
        mcp_server_id: Optional[str] = None,
    ) -> JSONResponse:
        """
        Forward a tenant's tool-server call to the hub.

        The server id comes from the path when given, otherwise from the
        ``mcpServerId`` body field, and is qualified with the tenant id before
        it is sent to the hub as ``server_name``.
        """
        server_id = mcp_server_id or body.get("mcpServerId")
        server_name = resolve_tenant_server_id(server_id, tenant_id)

        payload = dict(body)
        payload["server_name"] = server_name

        logger.debug("Forwarding tenant call to MCP-Hub", extra={
            "action": action,
            "server_name": server_name,
        })
        status_code, response_body = await self.service.hub_client.forward(
            f"/api/servers/{action}", payload
        )
        return JSONResponse(status_code=status_code, content=response_body)
