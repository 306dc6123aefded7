"""Provider-neutral tool model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mcplink.protocols.mcp.models import ToolDefinition  # noqa: TC001


def _empty_object() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


class ToolSpec(BaseModel):
    """A tool as every transpiler sees it: a name, a description, and a JSON-Schema input."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=_empty_object)

    @classmethod
    def from_definition(cls, definition: ToolDefinition) -> ToolSpec:
        """Build a spec from an MCP tool definition (discovered or registered)."""
        return cls(
            name=definition.name,
            description=definition.description,
            input_schema=dict(definition.input_schema) or _empty_object(),
        )

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )
