"""Decoding of raw HTTP bodies into JSON-RPC 2.0 requests."""
import json
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from pydantic import ValidationError

from ..utils.errors import InvalidRequestError
from .models import ErrorCode, JSONRPCError, JSONRPCRequest, JSONRPCResponse

Entry = Union[JSONRPCRequest, JSONRPCResponse]


@dataclass
class DecodedPayload:
    """Result of decoding one HTTP body.

    ``error`` is set when the body as a whole is unusable (parse error,
    non-container, empty batch). Otherwise ``entries`` holds one item per
    request: a request to dispatch, or a ready-made error response for a
    member that failed envelope validation.
    """

    is_batch: bool = False
    entries: List[Entry] = field(default_factory=list)
    error: Optional[JSONRPCResponse] = None


def error_response(
    request_id: Any, code: int, message: str, data: Optional[dict] = None
) -> JSONRPCResponse:
    return JSONRPCResponse(
        id=request_id, error=JSONRPCError(code=code, message=message, data=data)
    )


def parse_error_response() -> JSONRPCResponse:
    return error_response(None, ErrorCode.PARSE_ERROR, "Parse error")


def invalid_request_response(request_id: Any = None) -> JSONRPCResponse:
    return error_response(
        request_id, InvalidRequestError.rpc_code, InvalidRequestError.rpc_message
    )


def is_valid_id(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def decode_entry(raw: Any) -> Entry:
    """Validate one envelope; return the request or its -32600 response."""
    if not isinstance(raw, dict):
        return invalid_request_response()

    raw_id = raw.get("id")
    if "id" in raw and not is_valid_id(raw_id):
        return invalid_request_response()
    echo_id = raw_id if is_valid_id(raw_id) else None

    try:
        request = JSONRPCRequest.model_validate(raw)
    except ValidationError:
        return invalid_request_response(echo_id)

    if not request.method.strip():
        return invalid_request_response(echo_id)
    return request


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def decode_payload(body: bytes) -> DecodedPayload:
    """Parse a request body into single or batch entries."""
    try:
        payload = json.loads(body.decode("utf-8"), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError, RecursionError):
        return DecodedPayload(error=parse_error_response())

    if isinstance(payload, list):
        if not payload:
            return DecodedPayload(is_batch=True, error=invalid_request_response())
        return DecodedPayload(
            is_batch=True, entries=[decode_entry(item) for item in payload]
        )

    if isinstance(payload, dict):
        return DecodedPayload(entries=[decode_entry(payload)])

    return DecodedPayload(error=invalid_request_response())
