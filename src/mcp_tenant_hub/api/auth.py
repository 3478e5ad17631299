"""
Request gate: shared-secret bearer authentication and tenant resolution.
"""

import hmac
from enum import Enum
from typing import Optional

from mcp_tenant_hub.core.assembler import tenant_server_key
from mcp_tenant_hub.core.exceptions import (
    AuthenticationError, AuthorizationError, ValidationError
)
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


class AuthResult(str, Enum):
    """Outcome of checking an Authorization header."""

    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"


class SharedSecretAuthenticator:
    """Accepts requests whose bearer token equals the configured secret."""

    def __init__(self, secret: Optional[str]):
        self._secret = secret
        if not secret:
            logger.warning("MCP_HUB_SECRET is not set, every API request will be rejected")

    def authenticate(self, authorization: Optional[str]) -> AuthResult:
        """
        Classify an Authorization header value.

        Missing header or non-Bearer scheme is UNAUTHORIZED; a token that does
        not match the secret is FORBIDDEN.
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return AuthResult.UNAUTHORIZED

        token = authorization[len(BEARER_PREFIX):].strip()
        if not self._secret or not hmac.compare_digest(
            token.encode("utf-8"), self._secret.encode("utf-8")
        ):
            return AuthResult.FORBIDDEN

        return AuthResult.AUTHORIZED

    def require(self, authorization: Optional[str]) -> None:
        """Raise the matching error unless the header authorizes the request."""
        result = self.authenticate(authorization)
        if result == AuthResult.UNAUTHORIZED:
            raise AuthenticationError("Missing or invalid authorization header")
        if result == AuthResult.FORBIDDEN:
            logger.warning("Rejected request with invalid authorization token")
            raise AuthorizationError("Invalid authorization token")


def resolve_tenant_server_id(server_id: Optional[str], tenant_id: Optional[str]) -> str:
    """
    Qualify a tool-server id with the calling tenant.

    Raises:
        AuthenticationError: If no tenant id is known for the request
        ValidationError: If no server id was supplied
    """
    if not tenant_id or not tenant_id.strip():
        raise AuthenticationError("User authentication required")
    if not server_id or not str(server_id).strip():
        raise ValidationError("Missing MCP server ID")
    return tenant_server_key(str(server_id).strip(), tenant_id.strip())
