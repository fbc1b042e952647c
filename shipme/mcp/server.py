"""
MCP stdio binding for a ToolDispatcher.

tools/list returns the dispatcher's definitions; tools/call always answers with
one text content item holding the JSON result envelope.
"""

from typing import Any, Dict, List

import structlog
from mcp import types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server

from .dispatcher import ToolDispatcher

logger = structlog.get_logger(__name__)


def to_mcp_tools(dispatcher: ToolDispatcher) -> List[types.Tool]:
    return [
        types.Tool(
            name=definition.name,
            description=definition.description,
            inputSchema=definition.to_wire()["inputSchema"],
        )
        for definition in dispatcher.list()
    ]


def build_server(name: str, dispatcher: ToolDispatcher) -> Server:
    """Create an MCP server whose handlers delegate to ``dispatcher``."""
    server = Server(name)

    @server.list_tools()
    async def handle_list_tools() -> List[types.Tool]:
        """Advertise registered tools in registration order"""
        return to_mcp_tools(dispatcher)

    # The dispatcher validates arguments itself and reports failures in-band.
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: Dict[str, Any] | None) -> List[types.TextContent]:
        """Invoke a tool and wrap the envelope as text content"""
        result = await dispatcher.invoke(name, arguments or {})
        return [types.TextContent(type="text", text=result.to_json())]

    return server


async def serve_stdio(server: Server, version: str = "1.0.0") -> None:
    """Run the MCP server on stdin/stdout until the client disconnects."""
    async with stdio_server() as (read_stream, write_stream):
        logger.info("mcp_server_running", server=server.name, transport="stdio")
        await server.run(
            read_stream,
            write_stream,
            InitializationOptions(
                server_name=server.name,
                server_version=version,
                capabilities=server.get_capabilities(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
            ),
        )
