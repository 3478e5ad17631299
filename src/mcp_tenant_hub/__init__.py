"""
Multi-tenant MCP-Hub - per-tenant configuration front-end for MCP-Hub.

Generates the hub's server configuration from database records, keeps it in
sync through PostgreSQL notifications, supervises the hub process and gates
tenant calls to its API.
"""

__version__ = "1.0.0"
__description__ = "Per-tenant configuration front-end and gateway for MCP-Hub"

# Public API
from mcp_tenant_hub.core.exceptions import MCPHubError
from mcp_tenant_hub.core.models import (
    GeneratedConfigDocument, ServerDefinition, TenantBinding
)

__all__ = [
    "__version__",
    "__description__",
    "MCPHubError",
    "GeneratedConfigDocument",
    "ServerDefinition",
    "TenantBinding",
]
