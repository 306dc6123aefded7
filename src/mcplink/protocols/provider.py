"""ToolProvider protocol — the common interface for tool sources.

:class:`~mcplink.protocols.mcp.client.MCPClient` satisfies this protocol so
that the :class:`~mcplink.protocols.dispatcher.ToolDispatcher` can route tool
calls without knowing which transport sits underneath.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mcplink.protocols.mcp.content import Unrecognized
    from mcplink.protocols.mcp.models import DiscoveredTool


@runtime_checkable
class ToolProvider(Protocol):
    """Discovers and executes tools exposed by an external service."""

    @property
    def name(self) -> str:
        """Identifier used to tag discovered definitions."""
        ...

    async def discover_tools(self, names: list[str] | None = None) -> list[DiscoveredTool]:
        """Return tool definitions tagged with this provider's name."""
        ...

    async def execute_tool(
        self, name: str, arguments: dict[str, Any]
    ) -> str | Unrecognized | dict[str, Any]:
        """Execute a tool by name.

        Returns the normalized result, or an error envelope
        ``{"isError": True, "error": {"code": ..., "message": ...}}``;
        never raises for remote or transport failures.
        """
        ...
