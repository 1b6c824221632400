"""JSON-RPC 2.0 request handler."""
import asyncio
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..utils.errors import AdapterError, InvalidParamsError, MCPError, MethodNotFoundError
from ..utils.security import redact_audit_params
from .codec import decode_payload
from .models import (
    ErrorCode,
    JSONRPCError,
    JSONRPCRequest,
    JSONRPCResponse,
)

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("systemd_monitoring_mcp.audit")

MethodHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


class JSONRPCHandler:
    """Handles JSON-RPC 2.0 requests and routes to registered methods."""

    def __init__(self):
        self.methods: Dict[str, MethodHandler] = {}

    def register_method(self, method_name: str, handler: MethodHandler):
        """Register a JSON-RPC method handler.

        Args:
            method_name: Name of the JSON-RPC method (e.g., "tools/list")
            handler: Async callable that receives the params dict
        """
        self.methods[method_name] = handler
        logger.info(f"Registered JSON-RPC method: {method_name}")

    def _error_response(self, request: JSONRPCRequest, error: MCPError) -> JSONRPCResponse:
        return JSONRPCResponse(
            id=request.id,
            error=JSONRPCError(
                code=error.rpc_code,
                message=error.rpc_message,
                data=error.to_error_data(),
            ),
        )

    def _internal_error(self, request: JSONRPCRequest, exc: Exception) -> JSONRPCResponse:
        # Full detail stays in the server log; clients only get the error id.
        error_id = uuid.uuid4().hex[:16]
        logger.error(
            f"Internal error handling {request.method} (error_id={error_id}): {exc}",
            exc_info=exc,
        )
        return JSONRPCResponse(
            id=request.id,
            error=JSONRPCError(
                code=ErrorCode.INTERNAL_ERROR,
                message="Internal error",
                data={
                    "code": "internal_error",
                    "message": "internal error",
                    "details": {"error_id": error_id},
                },
            ),
        )

    async def handle_request(self, request: JSONRPCRequest) -> JSONRPCResponse:
        """Handle a JSON-RPC 2.0 request.

        Never raises: every failure is turned into an error response and one
        audit record is written per call.

        Args:
            request: JSONRPCRequest object

        Returns:
            JSONRPCResponse with result or error
        """
        try:
            if request.method not in self.methods:
                raise MethodNotFoundError(f"Method not found: {request.method}")
            if isinstance(request.params, list):
                raise InvalidParamsError("params must be an object")

            handler = self.methods[request.method]
            result = await handler(request.params or {})
            response = JSONRPCResponse(id=request.id, result=result)

        except AdapterError as e:
            response = self._internal_error(request, e)
        except MCPError as e:
            response = self._error_response(request, e)
        except Exception as e:
            response = self._internal_error(request, e)

        self._audit(request, response)
        return response

    def _audit(self, request: JSONRPCRequest, response: JSONRPCResponse):
        outcome = "failure" if response.error is not None else "success"
        params = json.dumps(redact_audit_params(request.params), default=str)
        audit_logger.info(
            f"mcp action audited: method={request.method} params={params} outcome={outcome}"
        )

    async def _handle_entry(
        self, entry: Union[JSONRPCRequest, JSONRPCResponse]
    ) -> Optional[JSONRPCResponse]:
        if isinstance(entry, JSONRPCResponse):
            return entry
        response = await self.handle_request(entry)
        if entry.is_notification:
            return None
        return response

    async def dispatch(self, body: bytes) -> Optional[Union[Dict[str, Any], List[Dict[str, Any]]]]:
        """Decode a raw body, run every call and assemble the reply.

        Batch members run concurrently and independently. Returns None when
        nothing must be sent back (single notification or all-notification
        batch).
        """
        decoded = decode_payload(body)
        if decoded.error is not None:
            return decoded.error.to_dict()

        results = await asyncio.gather(
            *(self._handle_entry(entry) for entry in decoded.entries)
        )
        responses = [response.to_dict() for response in results if response is not None]

        if not decoded.is_batch:
            return responses[0] if responses else None
        return responses or None
