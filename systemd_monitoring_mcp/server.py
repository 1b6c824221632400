"""FastAPI server exposing systemd monitoring over MCP Streamable HTTP."""
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .auth import AccessGate
from .config import Settings
from .jsonrpc.handler import JSONRPCHandler
from .mcp_handler import MCPHandler
from .mcp_transport import MCPTransport
from .monitoring.queries import ServiceQueries
from .monitoring.schemas import (
    LIST_LOGS_INPUT_SCHEMA,
    LIST_LOGS_OUTPUT_SCHEMA,
    LIST_SERVICES_INPUT_SCHEMA,
    LIST_SERVICES_OUTPUT_SCHEMA,
    ListLogsArguments,
    ListServicesArguments,
)
from .systemd import JournalctlLogReader, LogReader, SystemctlUnitLister, UnitLister
from .utils.errors import InvalidParamsError

logger = logging.getLogger(__name__)

SERVER_NAME = "systemd-monitoring-mcp"
MCP_ENDPOINT = "/mcp"
DEFAULT_PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
SERVER_INSTRUCTIONS = (
    "Read-only systemd monitoring. Use list_services for unit state and "
    "list_logs for journal entries inside a UTC window of at most 7 days."
)

SERVICES_SNAPSHOT_URI = "resource://services/snapshot"
SERVICES_FAILED_URI = "resource://services/failed"
LOGS_RECENT_URI = "resource://logs/recent"


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def negotiate_protocol_version(requested: str) -> str:
    if requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return DEFAULT_PROTOCOL_VERSION


def register_all_tools(mcp_handler: MCPHandler, queries: ServiceQueries):
    """Register all MCP tools."""

    # Tool 1: list_services
    mcp_handler.register_tool(
        name="list_services",
        description="List systemd service units with their load, active and sub states",
        input_schema=LIST_SERVICES_INPUT_SCHEMA,
        output_schema=LIST_SERVICES_OUTPUT_SCHEMA,
        handler=queries.list_services,
        arguments_model=ListServicesArguments,
        summary=lambda result: f"Returned {result['returned']} of {result['total']} services",
    )

    # Tool 2: list_logs
    mcp_handler.register_tool(
        name="list_logs",
        description="Query journal entries within a UTC time window",
        input_schema=LIST_LOGS_INPUT_SCHEMA,
        output_schema=LIST_LOGS_OUTPUT_SCHEMA,
        handler=queries.list_logs,
        arguments_model=ListLogsArguments,
        summary=lambda result: f"Returned {result['returned']} log entries",
    )


def register_all_resources(mcp_handler: MCPHandler, queries: ServiceQueries):
    """Register all MCP resources."""
    mcp_handler.register_resource(
        uri=SERVICES_SNAPSHOT_URI,
        name="Services snapshot",
        description="All systemd service units",
        reader=queries.services_snapshot,
    )
    mcp_handler.register_resource(
        uri=SERVICES_FAILED_URI,
        name="Failed services",
        description="Service units whose active state is failed",
        reader=queries.failed_services,
    )
    mcp_handler.register_resource(
        uri=LOGS_RECENT_URI,
        name="Recent logs",
        description="Journal entries from the last hour, newest first",
        reader=queries.recent_logs,
    )


def register_jsonrpc_methods(jsonrpc_handler: JSONRPCHandler, mcp_handler: MCPHandler):
    """Register all JSON-RPC 2.0 methods."""

    # Method: initialize
    async def initialize(params: Dict[str, Any]):
        invalid = []
        protocol_version = params.get("protocolVersion")
        if not isinstance(protocol_version, str) or not protocol_version.strip():
            invalid.append("protocolVersion")
        if not isinstance(params.get("clientInfo"), dict):
            invalid.append("clientInfo")
        if not isinstance(params.get("capabilities"), dict):
            invalid.append("capabilities")
        if invalid:
            raise InvalidParamsError(
                "initialize requires protocolVersion, clientInfo and capabilities",
                details={"missing": invalid},
            )

        return {
            "protocolVersion": negotiate_protocol_version(protocol_version),
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {"subscribe": False, "listChanged": False},
            },
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "instructions": SERVER_INSTRUCTIONS,
        }

    # Method: notifications/initialized
    async def initialized(params: Dict[str, Any]):
        return {}

    # Method: ping
    async def ping(params: Dict[str, Any]):
        return {}

    # Method: tools/list
    async def tools_list(params: Dict[str, Any]):
        return {"tools": mcp_handler.list_tools()}

    # Method: tools/call
    async def tools_call(params: Dict[str, Any]):
        name = params.get("name")
        arguments = params.get("arguments")

        if not isinstance(name, str) or not name:
            raise InvalidParamsError("Tool name is required", details={"missing": ["name"]})
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("arguments must be an object")

        return await mcp_handler.call_tool(name, arguments)

    # Method: resources/list
    async def resources_list(params: Dict[str, Any]):
        return {"resources": mcp_handler.list_resources()}

    # Method: resources/read
    async def resources_read(params: Dict[str, Any]):
        uri = params.get("uri")
        if not isinstance(uri, str) or not uri:
            raise InvalidParamsError("Resource uri is required", details={"missing": ["uri"]})
        return await mcp_handler.read_resource(uri)

    jsonrpc_handler.register_method("initialize", initialize)
    jsonrpc_handler.register_method("notifications/initialized", initialized)
    jsonrpc_handler.register_method("notifications/cancelled", initialized)
    jsonrpc_handler.register_method("ping", ping)
    jsonrpc_handler.register_method("tools/list", tools_list)
    jsonrpc_handler.register_method("tools/call", tools_call)
    jsonrpc_handler.register_method("resources/list", resources_list)
    jsonrpc_handler.register_method("resources/read", resources_read)


def create_app(
    settings: Settings,
    unit_lister: Optional[UnitLister] = None,
    log_reader: Optional[LogReader] = None,
) -> FastAPI:
    """Build the application; adapters default to systemctl and journalctl."""
    if unit_lister is None:
        unit_lister = SystemctlUnitLister(timeout=settings.adapter_timeout_seconds)
    if log_reader is None:
        log_reader = JournalctlLogReader(
            timeout=settings.adapter_timeout_seconds,
            max_entries=settings.journal_max_entries,
        )

    mcp_handler = MCPHandler()
    jsonrpc_handler = JSONRPCHandler()
    mcp_transport = MCPTransport(jsonrpc_handler, AccessGate(settings))
    queries = ServiceQueries(unit_lister, log_reader)

    register_all_tools(mcp_handler, queries)
    register_all_resources(mcp_handler, queries)
    register_jsonrpc_methods(jsonrpc_handler, mcp_handler)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for FastAPI app."""
        logger.info(
            f"Starting MCP server on {settings.bind_addr}:{settings.bind_port} "
            f"({len(mcp_handler.tools)} tools, {len(mcp_handler.resources)} resources, "
            f"{len(jsonrpc_handler.methods)} JSON-RPC methods)"
        )
        yield
        logger.info("Shutting down MCP server...")

    app = FastAPI(
        title="systemd monitoring MCP server",
        description="Read-only MCP gateway for systemd services and journal logs",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.mcp_handler = mcp_handler
    app.state.jsonrpc_handler = jsonrpc_handler

    @app.middleware("http")
    async def log_request_summary(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000
        if response.status_code == 401:
            logger.warning(
                f"unauthorized request: method={request.method} path={request.url.path}"
            )
        logger.info(
            f"request summary: method={request.method} path={request.url.path} "
            f"status={response.status_code} duration_ms={duration_ms:.1f}"
        )
        return response

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "code": "internal_error",
                "message": "internal server error",
                "details": {},
            },
        )

    # MCP Streamable HTTP endpoint
    @app.post(MCP_ENDPOINT)
    async def mcp_post_endpoint(request: Request):
        """MCP Streamable HTTP POST endpoint (single message or batch)."""
        return await mcp_transport.handle_post_request(request)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/.well-known/mcp")
    async def discovery():
        """MCP discovery document."""
        return {"name": SERVER_NAME, "version": __version__, "mcp_endpoint": MCP_ENDPOINT}

    return app
