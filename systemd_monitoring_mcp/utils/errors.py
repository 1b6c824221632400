"""Custom exception classes for the MCP server."""
from typing import Any, Dict, Optional


class MCPError(Exception):
    """Base exception for MCP-related errors.

    Carries the JSON-RPC code it maps to plus a stable string code that is
    returned to clients in ``error.data.code``.
    """

    rpc_code = -32603
    rpc_message = "Internal error"
    default_code = "internal_error"

    def __init__(
        self,
        message: str = "",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message or self.rpc_message)
        self.message = message or self.rpc_message
        self.code = code or self.default_code
        self.details = details or {}

    def to_error_data(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidRequestError(MCPError):
    """Envelope does not describe a valid JSON-RPC request."""

    rpc_code = -32600
    rpc_message = "Invalid Request"
    default_code = "invalid_request"


class InvalidParamsError(MCPError):
    """Method params are missing or malformed."""

    rpc_code = -32602
    rpc_message = "Invalid params"
    default_code = "invalid_params"


class ValidationError(InvalidParamsError):
    """Tool argument failed domain validation (invalid_limit, invalid_unit, ...)."""


class MethodNotFoundError(MCPError):
    rpc_code = -32601
    rpc_message = "Method not found"
    default_code = "method_not_found"


class ToolNotFoundError(MethodNotFoundError):
    default_code = "tool_not_found"


class ResourceNotFoundError(MethodNotFoundError):
    default_code = "resource_not_found"


class AdapterError(MCPError):
    """Unit lister or log reader failed (transport error, timeout, bad output).

    The message is for server-side logs only and never reaches clients.
    """


class AuthError(Exception):
    """Request rejected by the access control gate before JSON-RPC dispatch."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": {}}


class ConfigError(Exception):
    """Startup configuration is missing or invalid."""
