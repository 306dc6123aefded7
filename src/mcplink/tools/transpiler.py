"""Transpiler protocol — converts between ToolSpec and provider tool payloads.

Each provider (OpenAI, Anthropic, Gemini, MCP) has a concrete transpiler
that converts both ways: ToolSpec -> provider tool payload and provider
tool payload -> ToolSpec.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from mcplink.tools.transpilers import (
    AnthropicTranspiler,
    GeminiTranspiler,
    MCPTranspiler,
    OpenAITranspiler,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mcplink.tools.models import ToolSpec


class Transpiler(Protocol):
    """Protocol for provider-specific tool format transpilers."""

    def to_provider(self, spec: ToolSpec) -> dict[str, Any]:
        """Convert a ToolSpec to the provider's tool declaration."""
        ...

    def from_provider(self, payload: dict[str, Any]) -> ToolSpec:
        """Convert a provider's tool declaration back into a ToolSpec."""
        ...


def get_transpiler(provider: str) -> Transpiler:
    """Return the appropriate transpiler for a provider."""
    mapping: dict[str, Transpiler] = {
        "openai": OpenAITranspiler(),
        "anthropic": AnthropicTranspiler(),
        "gemini": GeminiTranspiler(),
        "google": GeminiTranspiler(),
        "vertex_ai": GeminiTranspiler(),
        "mcp": MCPTranspiler(),
    }
    return mapping.get(provider.lower(), OpenAITranspiler())


def to_provider_tools(specs: Iterable[ToolSpec], provider: str) -> list[dict[str, Any]]:
    """Convert many tools at once for *provider*."""
    transpiler = get_transpiler(provider)
    return [transpiler.to_provider(spec) for spec in specs]
