"""Minimal JSON-RPC 2.0 client over HTTP for node queries.

Every request carries a bounded client-side timeout. Remote errors are
surfaced verbatim as RpcError("<method>: <message>").
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from launchgate.errors import RpcError

logger = logging.getLogger(__name__)

DEFAULT_RPC_TIMEOUT = 10.0


class JsonRpcClient:
    """Issues JSON-RPC calls against one node base URL.

    Args:
        base_url: Node base URL, e.g. http://127.0.0.1:9660.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def call(self, endpoint: str, method: str, params: dict[str, Any] | None = None) -> Any:
        """POST a JSON-RPC request to base_url + endpoint and return its result.

        Raises:
            RpcError: On transport failure, non-2xx status, or a JSON-RPC error.
        """
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params or {}}
        url = f"{self.base_url}{endpoint}"
        logger.debug("rpc %s -> %s", method, url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise RpcError(method, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise RpcError(method, f"HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise RpcError(method, "invalid JSON response") from exc
        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise RpcError(method, str(message))
        return body.get("result") if isinstance(body, dict) else None
