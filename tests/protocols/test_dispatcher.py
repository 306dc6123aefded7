"""Tests for ToolDispatcher routing."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import patch

import pytest

from mcplink.protocols.dispatcher import ToolDispatcher
from mcplink.protocols.errors import ErrorCode, RemoteError
from mcplink.protocols.mcp.client import MCPClient
from mcplink.protocols.mcp.models import ServerConnection
from mcplink.protocols.mcp.server import MCPServer


def _server(name: str, **tools: Any) -> MCPServer:
    server = MCPServer(name)
    for tool_name, fn in tools.items():
        server.tool(tool_name, description=f"{tool_name} on {name}")(fn)
    return server


def _loopback(server: MCPServer, scripted: Any) -> Any:
    async def respond(data: dict[str, Any]) -> Any:
        reply = await server.handle_request(json.dumps(data))
        return json.loads(reply) if reply is not None else None

    return scripted(respond)


def _conn(name: str) -> ServerConnection:
    return ServerConnection(name=name, command=f"{name}-server")


class TestToolDispatcher:
    async def test_routes_to_owning_connection(self, scripted: Any) -> None:
        fs = _server("fs", read_file=lambda path: f"fs:{path}")
        gh = _server("gh", search=lambda q: f"gh:{q}")
        transports = [_loopback(fs, scripted), _loopback(gh, scripted)]

        with patch.object(MCPClient, "_create_transport", side_effect=transports):
            async with ToolDispatcher() as dispatcher:
                await dispatcher.connect(_conn("fs"))
                await dispatcher.connect(_conn("gh"))

                tools = {t.name: t.server_name for t in dispatcher.all_tools()}
                assert tools == {"read_file": "fs", "search": "gh"}
                assert await dispatcher.execute("search", {"q": "mcp"}) == "gh:mcp"
                assert await dispatcher.execute("read_file", {"path": "/x"}) == "fs:/x"

        assert all(t.closed for t in transports)

    async def test_unknown_tool_envelope(self) -> None:
        dispatcher = ToolDispatcher()
        result = await dispatcher.execute("nope", {})
        assert result["isError"] is True
        assert result["error"]["code"] == ErrorCode.TOOL_NOT_FOUND

    async def test_execute_all_preserves_order(self, scripted: Any) -> None:
        server = _server("s", a=lambda: "A", b=lambda: "B")
        with patch.object(MCPClient, "_create_transport", return_value=_loopback(server, scripted)):
            async with ToolDispatcher() as dispatcher:
                await dispatcher.connect(_conn("s"))
                results = await dispatcher.execute_all([("b", {}), ("missing", {}), ("a", {})])

        assert results[0] == "B"
        assert results[1]["error"]["code"] == ErrorCode.TOOL_NOT_FOUND
        assert results[2] == "A"

    async def test_resources_and_prompts(self, loopback_transport: Any) -> None:
        with patch.object(MCPClient, "_create_transport", return_value=loopback_transport):
            async with ToolDispatcher() as dispatcher:
                await dispatcher.connect(_conn("sample"))
                assert [r.uri for r in dispatcher.all_resources()] == ["notes://readme"]
                assert [p.name for p in dispatcher.all_prompts()] == ["greet"]

                contents = await dispatcher.read_resource("notes://readme")
                assert contents[0]["text"] == "# Notes"
                prompt = await dispatcher.get_prompt("greet", {"name": "Lin"})
                assert prompt["messages"][0]["content"]["text"] == "Hi, Lin"

                missing = await dispatcher.read_resource("notes://other")
                assert missing["error"]["code"] == ErrorCode.RESOURCE_NOT_FOUND
                missing_prompt = await dispatcher.get_prompt("other")
                assert missing_prompt["error"]["code"] == ErrorCode.PROMPT_NOT_FOUND

    async def test_tools_only_server(self, scripted: Any, init_responder: Any) -> None:
        def respond(data: dict[str, Any]) -> Any:
            method = data.get("method")
            if method == "tools/list":
                return {"jsonrpc": "2.0", "id": data["id"], "result": {"tools": [{"name": "only"}]}}
            if method in ("resources/list", "prompts/list"):
                return {"jsonrpc": "2.0", "id": data["id"], "error": {"code": -32601, "message": "Method not found"}}
            return init_responder(data)

        with patch.object(MCPClient, "_create_transport", return_value=scripted(respond)):
            async with ToolDispatcher() as dispatcher:
                await dispatcher.connect(_conn("tiny"))
                assert [t.name for t in dispatcher.all_tools()] == ["only"]
                assert dispatcher.all_resources() == []
                assert dispatcher.all_prompts() == []

    async def test_discovery_failure_closes_client(self, scripted: Any, init_responder: Any) -> None:
        def respond(data: dict[str, Any]) -> Any:
            if data.get("method") == "tools/list":
                return {"jsonrpc": "2.0", "id": data["id"], "error": {"code": -32603, "message": "broken"}}
            return init_responder(data)

        transport = scripted(respond)
        dispatcher = ToolDispatcher()
        with patch.object(MCPClient, "_create_transport", return_value=transport):
            with pytest.raises(RemoteError):
                await dispatcher.connect(_conn("bad"))
        assert transport.closed
        assert dispatcher.clients == {}

    async def test_duplicate_connection_name_rejected(self, loopback_transport: Any) -> None:
        with patch.object(MCPClient, "_create_transport", return_value=loopback_transport):
            async with ToolDispatcher() as dispatcher:
                await dispatcher.connect(_conn("one"))
                with pytest.raises(ValueError, match="already registered"):
                    await dispatcher.connect(_conn("one"))

    async def test_disconnect_forgets_tools(self, loopback_transport: Any) -> None:
        with patch.object(MCPClient, "_create_transport", return_value=loopback_transport):
            dispatcher = ToolDispatcher()
            await dispatcher.connect(_conn("sample"))
            await dispatcher.disconnect("sample")

        assert dispatcher.all_tools() == []
        assert loopback_transport.closed
        result = await dispatcher.execute("echo", {"text": "x"})
        assert result["error"]["code"] == ErrorCode.TOOL_NOT_FOUND

    async def test_dispatchers_are_independent(self, loopback_transport: Any) -> None:
        first, second = ToolDispatcher(), ToolDispatcher()
        with patch.object(MCPClient, "_create_transport", return_value=loopback_transport):
            await first.connect(_conn("sample"))
        assert first.all_tools()
        assert second.all_tools() == []
        await first.close()

    async def test_later_connection_shadows_duplicate_tool(self, scripted: Any, caplog: pytest.LogCaptureFixture) -> None:
        one = _server("one", same=lambda: "from one")
        two = _server("two", same=lambda: "from two")
        with patch.object(
            MCPClient, "_create_transport", side_effect=[_loopback(one, scripted), _loopback(two, scripted)]
        ):
            async with ToolDispatcher() as dispatcher:
                await dispatcher.connect(_conn("one"))
                await dispatcher.connect(_conn("two"))
                assert await dispatcher.execute("same", {}) == "from two"
        assert "shadows" in caplog.text

    async def test_disconnecting_shadowing_server_restores_earlier_owner(self, scripted: Any) -> None:
        one = _server("one", same=lambda: "from one", only_one=lambda: "one")
        two = _server("two", same=lambda: "from two")
        with patch.object(
            MCPClient, "_create_transport", side_effect=[_loopback(one, scripted), _loopback(two, scripted)]
        ):
            async with ToolDispatcher() as dispatcher:
                await dispatcher.connect(_conn("one"))
                await dispatcher.connect(_conn("two"))
                await dispatcher.disconnect("two")

                assert {t.name: t.server_name for t in dispatcher.all_tools()} == {"same": "one", "only_one": "one"}
                assert await dispatcher.execute("same", {}) == "from one"
