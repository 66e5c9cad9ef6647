"""Main MCP server implementation supporting both stdio and HTTP/SSE transports."""

from mcp.server import Server
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent
from fastapi import FastAPI
from contextlib import asynccontextmanager
import uvicorn
import json
import logging
from typing import Any
import sys

from .config import settings
from .backend import initialize_backend, get_backend, close_backend
from .auth import headers_authenticated
from .tools import discovery, query
from .tools.result import ToolResult
from .logging_config import setup_logging

# Configure logging (will write to the log directory and stderr)
setup_logging()
logger = logging.getLogger(__name__)


# MCP Server instance
mcp = Server("superset-query")


# Register MCP Tools
@mcp.list_tools()
async def list_tools() -> list[Tool]:
    """List all available MCP tools."""
    return [
        Tool(
            name="query_superset",
            description=(
                "Run a natural-language data request against Superset. The table whose name "
                "appears in the request is queried unless database_id, schema and table_name "
                "are all given. Words after 'where'/'filter' become a LIKE filter on the "
                "first field they mention; 'limit N' or 'top N' sets the row count (default 10)."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Natural-language request, e.g. 'latest 10 rows of logs'"},
                    "database_id": {"type": "integer", "description": "Database ID (optional, picked automatically)"},
                    "schema": {"type": "string", "description": "Schema name (optional)"},
                    "table_name": {"type": "string", "description": "Table name (optional)"}
                },
                "required": ["query"]
            }
        ),
        Tool(
            name="list_databases",
            description="List all databases available in Superset",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="list_tables",
            description="List the tables of a database, optionally limited to one schema",
            inputSchema={
                "type": "object",
                "properties": {
                    "database_id": {"type": "integer", "description": "Database ID"},
                    "schema": {"type": "string", "description": "Schema name"}
                },
                "required": ["database_id"]
            }
        ),
        Tool(
            name="list_fields",
            description="List the fields of a table",
            inputSchema={
                "type": "object",
                "properties": {
                    "database_id": {"type": "integer", "description": "Database ID"},
                    "schema": {"type": "string", "description": "Schema name"},
                    "table_name": {"type": "string", "description": "Table name"}
                },
                "required": ["database_id", "schema", "table_name"]
            }
        ),
    ]


async def dispatch(name: str, arguments: dict[str, Any]) -> ToolResult:
    """Run a tool by name against the global backend."""
    backend = get_backend()

    if name == "query_superset":
        return await query.query_superset(backend.cache, backend.service, **arguments)
    elif name == "list_databases":
        return await discovery.list_databases(backend.cache)
    elif name == "list_tables":
        return await discovery.list_tables(backend.cache, **arguments)
    elif name == "list_fields":
        return await discovery.list_fields(backend.cache, **arguments)
    return ToolResult.failure(f"Unknown tool: {name}")


@mcp.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Execute MCP tool by name."""
    try:
        result = await dispatch(name, arguments or {})
    except Exception as e:
        logger.error(f"Error executing tool '{name}': {e}", exc_info=True)
        result = ToolResult.failure(str(e))

    return [TextContent(type="text", text=result.render())]


def start_backend() -> None:
    """Create the global backend and kick off the cache warm-up."""
    backend = initialize_backend(settings)
    if settings.cache_warmup_on_start:
        backend.cache.ensure_initialized()


# FastAPI app for HTTP/SSE transport
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the Superset backend on startup, close it on shutdown."""
    logger.info("Starting Superset MCP Server...")
    logger.info(f"Superset URL: {settings.superset_url}")

    try:
        start_backend()
        logger.info("Endpoints: /messages (primary), /sse (alias)")
    except Exception as e:
        logger.error(f"Failed to initialize Superset backend: {e}", exc_info=True)
        raise

    yield

    try:
        await close_backend()
    except Exception as e:
        logger.warning(f"Error closing Superset backend: {e}")


app = FastAPI(
    title="Superset MCP Server",
    description="Model Context Protocol server for Apache Superset",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False  # Disable automatic trailing slash redirects
)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "superset-mcp-server"}


# SSE endpoint for MCP; the same ASGI app serves the stream (GET) and client messages (POST)
sse = SseServerTransport("")


async def _send_json(send, status: int, payload: dict) -> None:
    await send({
        "type": "http.response.start",
        "status": status,
        "headers": [(b"content-type", b"application/json")],
    })
    await send({"type": "http.response.body", "body": json.dumps(payload).encode("utf-8")})


async def messages_asgi(scope, receive, send):
    if scope.get("type") != "http":
        await send({"type": "http.response.start", "status": 404, "headers": []})
        await send({"type": "http.response.body", "body": b"Not Found"})
        return

    headers = {
        key.decode("latin-1").lower(): value.decode("latin-1")
        for key, value in scope.get("headers") or []
    }
    if not headers_authenticated(headers):
        logger.warning("[SSE] rejected unauthenticated request to %s", scope.get("path"))
        await _send_json(send, 401, {
            "detail": "Invalid authentication. Provide either X-API-Key header or JWT Bearer token."
        })
        return

    if scope.get("method") == "POST":
        await sse.handle_post_message(scope, receive, send)
        return

    client = scope.get("client") or ("?", "?")
    logger.info("[SSE] connection from %s:%s", client[0], client[1])
    async with sse.connect_sse(scope, receive, send) as streams:
        await mcp.run(streams[0], streams[1], mcp.create_initialization_options())
    logger.info("[SSE] connection from %s:%s closed", client[0], client[1])


# Mount the ASGI app at /messages (primary) and /sse (alias)
app.mount("/messages", messages_asgi)
app.mount("/sse", messages_asgi)


def is_stdio_mode() -> bool:
    """Detect if we should run in stdio mode vs HTTP/SSE mode."""
    # Check if stdin is a pipe/not a TTY (indicates stdio transport)
    return not sys.stdin.isatty()


async def stdio_main():
    """Run the MCP server in stdio mode."""
    logger.info("Starting Superset MCP Server in stdio mode...")
    logger.info(f"Superset URL: {settings.superset_url}")

    try:
        start_backend()
    except Exception as e:
        logger.error(f"Failed to initialize Superset backend: {e}", exc_info=True)
        sys.exit(1)

    try:
        async with stdio_server() as (read_stream, write_stream):
            await mcp.run(
                read_stream,
                write_stream,
                mcp.create_initialization_options()
            )
    finally:
        try:
            await close_backend()
        except Exception as e:
            logger.warning(f"Error closing Superset backend: {e}")


def main():
    """Run the MCP server (auto-detects stdio vs HTTP/SSE mode)."""
    if is_stdio_mode():
        import asyncio
        asyncio.run(stdio_main())
    else:
        logger.info("Starting Superset MCP Server in HTTP/SSE mode...")
        uvicorn.run(
            "superset_mcp.server:app",
            host=settings.server_host,
            port=settings.server_port,
            reload=settings.server_reload,
            log_level=settings.log_level.lower()
        )


if __name__ == "__main__":
    main()
