"""
MCP protocol adapter: exposes the tool registry over stdio with the mcp SDK.

Exceptions raised by the dispatcher become tool results with isError=true; they
never end the serving loop.
"""

import logging
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from sqlbridge import __version__
from sqlbridge.tools.dispatcher import ToolDispatcher
from sqlbridge.tools.registry import TOOLS, ToolSpec

_log = logging.getLogger(__name__)


def to_mcp_tool(tool: ToolSpec) -> types.Tool:
    return types.Tool(
        name=tool.name,
        description=tool.description,
        inputSchema=tool.argument_schema,
        annotations=types.ToolAnnotations(
            readOnlyHint=tool.read_only,
            destructiveHint=tool.destructive,
            idempotentHint=tool.idempotent,
            openWorldHint=tool.open_world,
        ),
    )


def build_server(dispatcher: ToolDispatcher, name: str = "sqlbridge") -> Server:
    server: Server = Server(name, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return [to_mcp_tool(tool) for tool in TOOLS.values()]

    @server.call_tool()
    async def handle_call_tool(tool_name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        try:
            text = await dispatcher.invoke(tool_name, arguments)
        except Exception as e:
            _log.warning("Tool %s failed: %s", tool_name, e)
            raise
        return [types.TextContent(type="text", text=text)]

    return server


async def serve(dispatcher: ToolDispatcher, name: str = "sqlbridge") -> None:
    """Serve MCP over stdin/stdout until the client disconnects."""
    server = build_server(dispatcher, name)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
