"""
Build the hub configuration document from server definitions and tenant bindings.
"""

from typing import Dict, Iterable

from mcp_tenant_hub.core.models import (
    GeneratedConfigDocument, HubServerEntry, ServerDefinition, TenantBinding
)
from mcp_tenant_hub.core.templates import find_placeholders, render_args
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)

TENANT_KEY_SEPARATOR = "-"


def tenant_server_key(mcp_server_id: str, tenant_id: str) -> str:
    """Tenant-qualified server identifier used as the hub's server name."""
    return f"{mcp_server_id}{TENANT_KEY_SEPARATOR}{tenant_id}"


def assemble(
    definitions: Iterable[ServerDefinition],
    bindings: Iterable[TenantBinding],
) -> GeneratedConfigDocument:
    """
    Join bindings with their definitions and render each binding's arguments.

    Bindings that reference an unknown definition are skipped. When two
    bindings produce the same tenant-qualified key, the one processed last wins.

    Args:
        definitions: Available server definitions
        bindings: Tenant bindings, in the order they should be applied

    Returns:
        A freshly built configuration document
    """
    by_id: Dict[str, ServerDefinition] = {
        definition.mcp_server_id: definition for definition in definitions
    }
    document = GeneratedConfigDocument()

    for binding in bindings:
        definition = by_id.get(binding.mcp_server_id)
        if definition is None:
            logger.debug("Skipping binding with unknown server definition", extra={
                "binding_id": str(binding.id),
                "mcp_server_id": binding.mcp_server_id,
            })
            continue

        key = tenant_server_key(definition.mcp_server_id, binding.user_id)
        args = render_args(definition.args_template, binding.config_vars)

        unresolved = find_placeholders(args)
        if unresolved:
            logger.debug("Binding leaves placeholders unresolved", extra={
                "server_key": key,
                "placeholders": unresolved,
            })

        if key in document.mcp_servers:
            logger.warning("Duplicate tenant server key, later binding wins", extra={
                "server_key": key,
                "binding_id": str(binding.id),
            })

        document.mcp_servers[key] = HubServerEntry(command=definition.command, args=args)

    return document
