"""MCP transpiler — the wire shape of a ``tools/list`` entry."""

from typing import Any

from mcplink.tools.models import ToolSpec


class MCPTranspiler:
    """Converts between ToolSpec and MCP tool definitions."""

    def to_provider(self, spec: ToolSpec) -> dict[str, Any]:
        return {
            "name": spec.name,
            "description": spec.description,
            "inputSchema": spec.input_schema,
        }

    def from_provider(self, payload: dict[str, Any]) -> ToolSpec:
        return ToolSpec(
            name=payload["name"],
            description=payload.get("description") or "",
            input_schema=payload.get("inputSchema") or {"type": "object", "properties": {}},
        )
