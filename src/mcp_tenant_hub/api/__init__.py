"""
REST API: authentication gate, endpoints and the FastAPI app factory.
"""

from .auth import AuthResult, SharedSecretAuthenticator, resolve_tenant_server_id
from .server import APIServer, create_app

__all__ = [
    "AuthResult",
    "SharedSecretAuthenticator",
    "resolve_tenant_server_id",
    "APIServer",
    "create_app",
]
