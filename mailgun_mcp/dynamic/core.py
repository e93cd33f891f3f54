"""Core MCP server implementation for OpenAPI-derived tools.

This module provides the DynamicMCPServer class which serves as the main
MCP server that handles tool listing and execution using an EndpointManager.
"""

import json
import logging
import sys
from typing import Any, Dict, List, Optional

from mcp import types as mcp_types
from mcp.server.lowlevel import Server

from mailgun_mcp.config import SERVER_VERSION

from .endpoint_manager import EndpointManager

logging.basicConfig(stream=sys.stderr, level=logging.INFO, format='[%(levelname)s] %(message)s')


def format_result(result: Any) -> str:
    """Render an EndpointManager result as tool output text"""
    if not isinstance(result, dict):
        return str(result)
    if result.get("success"):
        return f"{result.get('message', 'Success')}:\n{json.dumps(result.get('data'), indent=2)}"
    return f"Error: {result.get('message', 'Unknown error occurred')}"


class DynamicMCPServer:
    """Pure MCP Server that serves tools from an EndpointManager

    This server focuses solely on MCP protocol handling (list_tools, call_tool)
    and delegates all endpoint management to an EndpointManager instance.

    Args:
        server_name: Name for the MCP server instance
        endpoint_manager: EndpointManager instance to get tools from
    """

    def __init__(self, server_name: str, endpoint_manager: EndpointManager):
        self.server_name = server_name
        self.server = Server(server_name, version=SERVER_VERSION)
        self.endpoint_manager = endpoint_manager
        self._setup_server()
        logging.info(f"[DynamicMCP] Initialized MCP server '{server_name}'")

    def _setup_server(self) -> None:
        """Setup the MCP server with list_tools and call_tool handlers"""
        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)

    async def list_tools(self) -> List[mcp_types.Tool]:
        tool_list = []
        for tool in self.endpoint_manager.tools.values():
            try:
                tool_list.append(tool.to_mcp_tool())
            except Exception as e:
                logging.error(f"[DynamicMCP] Error converting tool {tool.name} to MCP type: {e}")
        logging.info(f"[DynamicMCP] Returning {len(tool_list)} tools to MCP client")
        return tool_list

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> List[mcp_types.TextContent]:
        logging.info(f"[DynamicMCP] Tool call: {name} with args: {json.dumps(arguments, default=str)}")
        try:
            if name not in self.endpoint_manager.tools:
                logging.warning(f"[DynamicMCP] Tool '{name}' not found")
                return [mcp_types.TextContent(type="text", text=f"Tool '{name}' not found")]

            result = await self.endpoint_manager.call_tool(name, arguments)
            return [mcp_types.TextContent(type="text", text=format_result(result))]

        except Exception as e:
            logging.exception(f"[DynamicMCP] Error executing tool '{name}': {e}")
            return [mcp_types.TextContent(type="text", text=f"Error: {str(e)}")]

    def get_server(self) -> Server:
        """Get the configured MCP server instance

        Returns:
            The underlying MCP Server instance
        """
        return self.server

    def get_endpoint_manager(self) -> EndpointManager:
        return self.endpoint_manager


__all__ = [
    "DynamicMCPServer",
    "format_result",
]
