"""MCP protocol handler with tool and resource registration and execution."""
import json
from typing import Dict, Any, Awaitable, Callable, List, Optional, Type
import logging
from pydantic import BaseModel, ValidationError as PydanticValidationError

from .monitoring.schemas import ToolArguments
from .utils.errors import ResourceNotFoundError, ToolNotFoundError, ValidationError

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[Dict[str, Any]]]
ToolSummary = Callable[[Dict[str, Any]], str]
ResourceReader = Callable[[], Awaitable[Dict[str, Any]]]

JSON_MIME_TYPE = "application/json"


class ToolSchema(BaseModel):
    name: str
    description: str
    inputSchema: Dict[str, Any]
    outputSchema: Dict[str, Any]


class ResourceSchema(BaseModel):
    uri: str
    name: str
    description: str
    mimeType: str = JSON_MIME_TYPE


def argument_error(model: Type[ToolArguments], exc: PydanticValidationError) -> ValidationError:
    """Translate a pydantic failure into the stable code of the first bad field."""
    unknown = [
        str(error["loc"][0]) for error in exc.errors() if error["type"] == "extra_forbidden"
    ]
    if unknown:
        return ValidationError(
            "unknown arguments: " + ", ".join(sorted(unknown)),
            code="invalid_arguments",
            details={"unknown": sorted(unknown)},
        )

    error = exc.errors()[0]
    field = str(error["loc"][0]) if error["loc"] else ""
    return ValidationError(
        f"{field or 'arguments'}: {error['msg']}",
        code=model.field_error_codes.get(field, "invalid_arguments"),
        details={"field": field} if field else {},
    )


class MCPHandler:
    def __init__(self):
        self.tools: Dict[str, ToolHandler] = {}
        self.tool_schemas: Dict[str, ToolSchema] = {}
        self.tool_arguments: Dict[str, Type[ToolArguments]] = {}
        self.tool_summaries: Dict[str, ToolSummary] = {}
        self.resources: Dict[str, ResourceReader] = {}
        self.resource_schemas: Dict[str, ResourceSchema] = {}

    def register_tool(
        self,
        name: str,
        description: str,
        input_schema: Dict[str, Any],
        output_schema: Dict[str, Any],
        handler: ToolHandler,
        arguments_model: Type[ToolArguments] = ToolArguments,
        summary: Optional[ToolSummary] = None,
    ) -> None:
        """Register an MCP tool."""
        self.tools[name] = handler
        self.tool_schemas[name] = ToolSchema(
            name=name,
            description=description,
            inputSchema=input_schema,
            outputSchema=output_schema,
        )
        self.tool_arguments[name] = arguments_model
        if summary is not None:
            self.tool_summaries[name] = summary
        logger.info(f"Registered tool: {name}")

    def list_tools(self) -> List[Dict[str, Any]]:
        """List all registered tools."""
        return [schema.model_dump() for schema in self.tool_schemas.values()]

    async def execute_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Validate arguments and execute a registered tool.

        Raises:
            ToolNotFoundError: if no tool is registered under ``tool_name``
            ValidationError: if the arguments do not fit the tool
        """
        if tool_name not in self.tools:
            raise ToolNotFoundError(
                f"Tool not found: {tool_name}", details={"name": tool_name}
            )

        model = self.tool_arguments[tool_name]
        try:
            parsed = model.model_validate(arguments)
        except PydanticValidationError as e:
            raise argument_error(model, e) from e

        handler = self.tools[tool_name]
        return await handler(**parsed.model_dump(exclude_none=True))

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a tool and wrap the result as an MCP ``tools/call`` result."""
        result = await self.execute_tool(tool_name, arguments)
        summarize = self.tool_summaries.get(tool_name)
        text = summarize(result) if summarize else json.dumps(result)
        return {
            "content": [{"type": "text", "text": text}],
            "structuredContent": result,
        }

    def register_resource(
        self, uri: str, name: str, description: str, reader: ResourceReader
    ) -> None:
        """Register a read-only MCP resource."""
        self.resources[uri] = reader
        self.resource_schemas[uri] = ResourceSchema(uri=uri, name=name, description=description)
        logger.info(f"Registered resource: {uri}")

    def list_resources(self) -> List[Dict[str, Any]]:
        """List all registered resources."""
        return [schema.model_dump() for schema in self.resource_schemas.values()]

    async def read_resource(self, uri: str) -> Dict[str, Any]:
        """Read a resource and wrap it as an MCP ``resources/read`` result."""
        if uri not in self.resources:
            raise ResourceNotFoundError(
                f"Resource not found: {uri}", details={"uri": uri}
            )

        document = await self.resources[uri]()
        schema = self.resource_schemas[uri]
        return {
            "contents": [
                {"uri": uri, "mimeType": schema.mimeType, "text": json.dumps(document)}
            ]
        }
