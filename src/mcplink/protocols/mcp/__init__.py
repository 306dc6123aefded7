"""MCP protocol — Model Context Protocol server and client."""

from mcplink.protocols.mcp.client import MCPClient
from mcplink.protocols.mcp.content import Unrecognized, normalize_content
from mcplink.protocols.mcp.models import (
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    PromptDefinition,
    ResourceDefinition,
    ServerConnection,
    ToolDefinition,
)
from mcplink.protocols.mcp.server import MCPServer
from mcplink.protocols.mcp.transport import HttpTransport, MCPTransport, StdioTransport

__all__ = [
    "HttpTransport",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "MCPClient",
    "MCPServer",
    "MCPTransport",
    "PromptDefinition",
    "ResourceDefinition",
    "ServerConnection",
    "StdioTransport",
    "ToolDefinition",
    "Unrecognized",
    "normalize_content",
]
