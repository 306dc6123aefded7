"""mcplink — serve and consume Model Context Protocol tools, resources, and prompts."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from mcplink.protocols.dispatcher import ToolDispatcher as ToolDispatcher
    from mcplink.protocols.mcp.client import MCPClient as MCPClient
    from mcplink.protocols.mcp.server import MCPServer as MCPServer

_EXPORTS = {
    "MCPClient": "mcplink.protocols.mcp.client",
    "MCPServer": "mcplink.protocols.mcp.server",
    "ToolDispatcher": "mcplink.protocols.dispatcher",
}


def __getattr__(name: str) -> object:
    module_path = _EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'mcplink' has no attribute {name!r}")
