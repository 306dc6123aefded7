"""Tests for the server-side capability registry."""

from __future__ import annotations

import pytest

from mcplink.protocols.errors import PromptNotFoundError, ResourceNotFoundError, ToolNotFoundError
from mcplink.protocols.mcp.models import PromptDefinition, ResourceDefinition, ToolDefinition
from mcplink.protocols.mcp.registry import Registry


class TestRegistry:
    def test_tables_are_independent(self) -> None:
        registry = Registry()
        registry.add_tool(ToolDefinition(name="same"), lambda: "tool")
        registry.add_prompt(PromptDefinition(name="same"), lambda: {"messages": []})

        assert "same" in registry.tools
        assert "same" in registry.prompts
        assert len(registry.resources) == 0

    def test_lookup_returns_bound_handler(self) -> None:
        registry = Registry()
        registry.add_tool(ToolDefinition(name="echo"), lambda text: text)
        entry = registry.tool("echo")
        assert entry.definition.name == "echo"
        assert entry.handler(text="hi") == "hi"

    def test_definitions_keep_registration_order(self) -> None:
        registry = Registry()
        for uri in ("b://2", "a://1", "c://3"):
            registry.add_resource(ResourceDefinition(uri=uri), lambda uri: "")
        assert [d.uri for d in registry.resources.definitions()] == ["b://2", "a://1", "c://3"]

    def test_misses_raise_typed_errors(self) -> None:
        registry = Registry()
        with pytest.raises(ToolNotFoundError):
            registry.tool("x")
        with pytest.raises(ResourceNotFoundError):
            registry.resource("x://y")
        with pytest.raises(PromptNotFoundError):
            registry.prompt("x")

    def test_duplicate_rejected(self) -> None:
        registry = Registry()
        registry.add_tool(ToolDefinition(name="t"), lambda: "")
        with pytest.raises(ValueError, match="already registered"):
            registry.add_tool(ToolDefinition(name="t"), lambda: "")

    def test_handler_must_be_callable(self) -> None:
        registry = Registry()
        with pytest.raises(TypeError):
            registry.add_tool(ToolDefinition(name="t"), "not callable")  # type: ignore[arg-type]
