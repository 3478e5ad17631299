"""
HTTP client for the hub's API.
"""

from typing import Any, Dict, Optional, Tuple

import httpx

from mcp_tenant_hub.core.exceptions import UpstreamError, UpstreamUnavailable
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)


class HubClient:
    """Forwards tenant calls to the hub with the shared secret attached."""

    def __init__(
        self,
        base_url: str,
        secret: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the hub client.

        Args:
            base_url: Hub base URL, e.g. ``http://127.0.0.1:3000``
            secret: Bearer token sent to the hub
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        headers = {"Content-Type": "application/json"}
        if secret:
            headers["Authorization"] = f"Bearer {secret}"

        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def forward(
        self,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        method: str = "POST",
    ) -> Tuple[int, Any]:
        """
        Send a request to the hub and return its status and JSON body.

        Raises:
            UpstreamUnavailable: If the hub cannot be reached
            UpstreamError: If the hub answers with a non-2xx status
        """
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.RequestError as e:
            logger.error("MCP-Hub request failed", extra={
                "path": path,
                "error": str(e),
                "error_type": type(e).__name__,
            })
            raise UpstreamUnavailable("MCP-Hub service is unavailable") from e

        body = self._decode(response)

        if response.is_error:
            message = "Error from MCP-Hub"
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
            elif isinstance(body, dict) and body.get("error"):
                message = str(body["error"])

            logger.warning("MCP-Hub returned an error", extra={
                "path": path,
                "status_code": response.status_code,
            })
            raise UpstreamError(
                message,
                status_code=response.status_code,
                details=body if isinstance(body, dict) else {"body": body},
            )

        return response.status_code, body

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
