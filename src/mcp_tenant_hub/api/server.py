"""
FastAPI application for the tenant hub.

``/health`` is open; everything under ``/api`` requires the shared bearer
secret. Service errors are turned into structured JSON bodies at the
boundary and never escape a handler.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from mcp_tenant_hub import __version__
from mcp_tenant_hub.api.auth import SharedSecretAuthenticator
from mcp_tenant_hub.api.endpoints import APIEndpoints
from mcp_tenant_hub.api.middleware import (
    BodySizeLimitMiddleware, ErrorHandlingMiddleware, RequestLoggingMiddleware,
    hub_error_handler, http_error_handler, validation_error_handler
)
from mcp_tenant_hub.api.models import (
    HealthResponse, ServerDefinitionCreate, ServerDefinitionResponse,
    ServerDefinitionUpdate, SyncResponse, TenantBindingCreate,
    TenantBindingResponse, TenantBindingUpdate
)
from mcp_tenant_hub.core.exceptions import MCPHubError
from mcp_tenant_hub.core.service import HubService
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)


class APIServer:
    """Tenant hub API server."""

    def __init__(self, service: HubService):
        """Initialize API server around a (possibly not yet started) service."""
        self.service = service
        self.settings = service.settings
        self.authenticator = SharedSecretAuthenticator(self.settings.mcp_hub_secret)
        self.endpoints = APIEndpoints(service)

        self.app = self._create_app()

        logger.info("API server initialized", extra={
            "max_body_bytes": self.settings.max_body_bytes,
            "tenant_header": self.settings.tenant_header,
        })

    def _create_app(self) -> FastAPI:
        """Create and configure FastAPI application."""
        app = FastAPI(
            title="Multi-tenant MCP-Hub",
            description="Per-tenant configuration and gateway for MCP-Hub",
            version=__version__,
        )

        self._add_middleware(app)
        self._add_exception_handlers(app)
        self._add_routes(app)

        return app

    def _add_middleware(self, app: FastAPI) -> None:
        """Add middleware stack; the last one added runs first."""
        app.add_middleware(RequestLoggingMiddleware)
        app.add_middleware(
            BodySizeLimitMiddleware,
            max_body_bytes=self.settings.max_body_bytes,
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        app.add_middleware(ErrorHandlingMiddleware)

    def _add_exception_handlers(self, app: FastAPI) -> None:
        app.add_exception_handler(MCPHubError, hub_error_handler)
        app.add_exception_handler(RequestValidationError, validation_error_handler)
        app.add_exception_handler(StarletteHTTPException, http_error_handler)

    def require_api_token(self, request: Request) -> None:
        """Dependency guarding every ``/api`` route."""
        self.authenticator.require(request.headers.get("Authorization"))

    def tenant_id(self, request: Request) -> Optional[str]:
        """Tenant identifier supplied by the caller."""
        return request.headers.get(self.settings.tenant_header)

    def _add_routes(self, app: FastAPI) -> None:
        """Add API routes to FastAPI app."""
        endpoints = self.endpoints

        @app.get("/health", response_model=HealthResponse)
        async def health_check():
            """Health check endpoint (no auth required)."""
            return await endpoints.health_check()

        router = APIRouter(prefix="/api", dependencies=[Depends(self.require_api_token)])

        # Server definitions
        @router.get("/mcp-servers", response_model=List[ServerDefinitionResponse])
        async def list_servers():
            return await endpoints.list_servers()

        @router.post("/mcp-servers", response_model=ServerDefinitionResponse, status_code=201)
        async def create_server(request: ServerDefinitionCreate):
            return await endpoints.create_server(request)

        @router.get("/mcp-servers/{mcp_server_id}", response_model=ServerDefinitionResponse)
        async def get_server(mcp_server_id: str):
            return await endpoints.get_server(mcp_server_id)

        @router.put("/mcp-servers/{mcp_server_id}", response_model=ServerDefinitionResponse)
        async def update_server(mcp_server_id: str, request: ServerDefinitionUpdate):
            return await endpoints.update_server(mcp_server_id, request)

        @router.delete("/mcp-servers/{mcp_server_id}", response_model=ServerDefinitionResponse)
        async def delete_server(mcp_server_id: str):
            return await endpoints.delete_server(mcp_server_id)

        # Tenant bindings
        @router.get("/user-mcp-servers", response_model=List[TenantBindingResponse])
        async def list_bindings(user_id: Optional[str] = None):
            return await endpoints.list_bindings(user_id)

        @router.post("/user-mcp-servers", response_model=TenantBindingResponse, status_code=201)
        async def create_binding(request: TenantBindingCreate):
            return await endpoints.create_binding(request)

        @router.get("/user-mcp-servers/{binding_id}", response_model=TenantBindingResponse)
        async def get_binding(binding_id: UUID):
            return await endpoints.get_binding(binding_id)

        @router.put("/user-mcp-servers/{binding_id}", response_model=TenantBindingResponse)
        async def update_binding(binding_id: UUID, request: TenantBindingUpdate):
            return await endpoints.update_binding(binding_id, request)

        @router.delete("/user-mcp-servers/{binding_id}", response_model=TenantBindingResponse)
        async def delete_binding(binding_id: UUID):
            return await endpoints.delete_binding(binding_id)

        # Generated configuration
        @router.get("/config")
        async def get_generated_config():
            return await endpoints.get_generated_config()

        @router.post("/config/sync", response_model=SyncResponse, status_code=202)
        async def request_sync():
            return await endpoints.request_sync()

        # Tenant calls forwarded to the hub
        @router.post("/tenant/servers/{action}")
        async def forward_tenant_call(
            action: str,
            tenant_id: Optional[str] = Depends(self.tenant_id),
            body: Optional[Dict[str, Any]] = Body(default=None),
        ):
            return await endpoints.forward_tenant_call(action, tenant_id, body or {})

        @router.post("/tenant/servers/{mcp_server_id}/{action}")
        async def forward_tenant_server_call(
            mcp_server_id: str,
            action: str,
            tenant_id: Optional[str] = Depends(self.tenant_id),
            body: Optional[Dict[str, Any]] = Body(default=None),
        ):
            return await endpoints.forward_tenant_call(
                action, tenant_id, body or {}, mcp_server_id
            )

        app.include_router(router)


def create_app(service: HubService) -> FastAPI:
    """Factory function to create the FastAPI app."""
    return APIServer(service).app
