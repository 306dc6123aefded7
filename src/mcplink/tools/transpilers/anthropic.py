"""Anthropic transpiler — tools carry the schema as a top-level ``input_schema``.

Anthropic rejects an empty ``input_schema``; it must at least declare
``{"type": "object"}``.
"""

from typing import Any

from mcplink.tools.models import ToolSpec


class AnthropicTranspiler:
    """Converts between ToolSpec and Anthropic's messages API tool format."""

    def to_provider(self, spec: ToolSpec) -> dict[str, Any]:
        return {
            "name": spec.name,
            "description": spec.description,
            "input_schema": spec.input_schema or {"type": "object"},
        }

    def from_provider(self, payload: dict[str, Any]) -> ToolSpec:
        return ToolSpec(
            name=payload["name"],
            description=payload.get("description") or "",
            input_schema=payload.get("input_schema") or {"type": "object", "properties": {}},
        )
