"""Protocol layer — MCP server, client, and connection dispatch."""

from mcplink.protocols.dispatcher import ToolDispatcher
from mcplink.protocols.errors import (
    ConnectionError,
    HandlerError,
    MCPError,
    ProcessDiedError,
    ProtocolError,
    RequestTimeoutError,
    ToolNotFoundError,
    TransportError,
)
from mcplink.protocols.provider import ToolProvider

__all__ = [
    "ConnectionError",
    "HandlerError",
    "MCPError",
    "ProcessDiedError",
    "ProtocolError",
    "RequestTimeoutError",
    "ToolDispatcher",
    "ToolNotFoundError",
    "ToolProvider",
    "TransportError",
]
