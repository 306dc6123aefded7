"""Gemini transpiler — function declarations with a trimmed OpenAPI schema.

Key differences from JSON Schema:
- ``additionalProperties`` is not accepted anywhere in the tree.
- The schema lives under ``parameters``.
"""

from typing import Any

from mcplink.tools.models import ToolSpec

_UNSUPPORTED_KEYS = frozenset({"additionalProperties", "$schema"})


class GeminiTranspiler:
    """Converts between ToolSpec and Gemini's functionDeclarations format."""

    def to_provider(self, spec: ToolSpec) -> dict[str, Any]:
        return {
            "name": spec.name,
            "description": spec.description,
            "parameters": _strip_unsupported(spec.input_schema),
        }

    def from_provider(self, payload: dict[str, Any]) -> ToolSpec:
        return ToolSpec(
            name=payload["name"],
            description=payload.get("description") or "",
            input_schema=payload.get("parameters") or {"type": "object", "properties": {}},
        )


def _strip_unsupported(value: Any) -> Any:
    """Return a copy of *value* with Gemini-incompatible keys removed at every level."""
    if isinstance(value, dict):
        return {key: _strip_unsupported(item) for key, item in value.items() if key not in _UNSUPPORTED_KEYS}
    if isinstance(value, list):
        return [_strip_unsupported(item) for item in value]
    return value
