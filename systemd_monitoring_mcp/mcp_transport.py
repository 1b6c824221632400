"""MCP Streamable HTTP transport implementation (JSON responses only)."""
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from .auth import AccessGate
from .jsonrpc.handler import JSONRPCHandler
from .utils.errors import AuthError

logger = logging.getLogger(__name__)


class MCPTransport:
    """Handles MCP Streamable HTTP transport."""

    def __init__(self, jsonrpc_handler: JSONRPCHandler, gate: AccessGate):
        self.jsonrpc_handler = jsonrpc_handler
        self.gate = gate

    async def handle_post_request(self, request: Request) -> Response:
        """Handle POST request from client.

        The access gate runs before the body is read. A body holding only
        notifications is acknowledged with 202 Accepted and no content.
        """
        peer_host = request.client.host if request.client else None
        try:
            self.gate.authenticate(
                peer_host,
                request.headers,
                context=f"method={request.method} path={request.url.path}",
            )
        except AuthError as e:
            return JSONResponse(status_code=e.status_code, content=e.to_body())

        body = await request.body()
        payload = await self.jsonrpc_handler.dispatch(body)

        if payload is None:
            return Response(status_code=202)
        return JSONResponse(content=payload)
