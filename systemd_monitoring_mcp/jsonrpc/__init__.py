"""JSON-RPC 2.0 implementation for MCP protocol."""
from .models import JSONRPCRequest, JSONRPCResponse, JSONRPCError, ErrorCode
from .codec import DecodedPayload, decode_payload
from .handler import JSONRPCHandler

__all__ = [
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCError",
    "ErrorCode",
    "DecodedPayload",
    "decode_payload",
    "JSONRPCHandler",
]
