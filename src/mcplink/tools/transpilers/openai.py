"""OpenAI transpiler — function tools wrap the schema under ``parameters``."""

from typing import Any

from mcplink.tools.models import ToolSpec


class OpenAITranspiler:
    """Converts between ToolSpec and OpenAI's chat completion tool format."""

    def to_provider(self, spec: ToolSpec) -> dict[str, Any]:
        """Return ``{"type": "function", "function": {...}}``."""
        return {
            "type": "function",
            "function": {
                "name": spec.name,
                "description": spec.description,
                "parameters": spec.input_schema,
            },
        }

    def from_provider(self, payload: dict[str, Any]) -> ToolSpec:
        # Accept both the wrapped form and a bare function object.
        func = payload.get("function", payload)
        return ToolSpec(
            name=func["name"],
            description=func.get("description") or "",
            input_schema=func.get("parameters") or {"type": "object", "properties": {}},
        )
