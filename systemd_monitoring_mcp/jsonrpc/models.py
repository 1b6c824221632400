"""JSON-RPC 2.0 request/response models."""
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr
from typing import Any, Dict, List, Literal, Optional, Union

RequestId = Union[StrictInt, StrictFloat, StrictStr]


class JSONRPCRequest(BaseModel):
    """JSON-RPC 2.0 request model.

    A request without an ``id`` key is a notification; ``id`` given as
    ``null`` is rejected by the codec before this model is built.
    """

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    method: StrictStr = Field(min_length=1)
    params: Optional[Union[Dict[str, Any], List[Any]]] = None
    id: Optional[RequestId] = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class JSONRPCError(BaseModel):
    """JSON-RPC 2.0 error model."""

    code: int
    message: str
    data: Optional[Dict[str, Any]] = None


class JSONRPCResponse(BaseModel):
    """JSON-RPC 2.0 response model."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[RequestId]
    result: Optional[Any] = None
    error: Optional[JSONRPCError] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with ``id`` always present and exactly one of result/error."""
        payload: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result
        return payload


class ErrorCode:
    """JSON-RPC 2.0 standard error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
