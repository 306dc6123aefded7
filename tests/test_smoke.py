"""Smoke test to verify the project scaffolding works."""

from __future__ import annotations


def test_import() -> None:
    import mcplink

    assert mcplink.__version__ == "0.1.0"


def test_cli_entrypoint() -> None:
    from mcplink.cli import main

    assert callable(main)


def test_protocol_imports() -> None:
    from mcplink.protocols import ToolDispatcher, ToolProvider
    from mcplink.protocols.mcp import MCPClient, MCPServer, ServerConnection, normalize_content
    from mcplink.tools import ToolSpec, get_transpiler, tool, type_tree_to_schema

    assert ToolDispatcher is not None
    assert ToolProvider is not None
    assert MCPClient is not None
    assert MCPServer is not None
    assert ServerConnection is not None
    assert normalize_content is not None
    assert ToolSpec is not None
    assert get_transpiler is not None
    assert tool is not None
    assert type_tree_to_schema is not None


def test_lazy_import_from_mcplink() -> None:
    import mcplink

    assert mcplink.MCPServer is not None
    assert mcplink.MCPClient is not None
    assert mcplink.ToolDispatcher is not None
