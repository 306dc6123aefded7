"""Shared fixtures: in-memory MCP transports and a sample server."""

from __future__ import annotations

import asyncio
import inspect
import json
from collections.abc import Callable
from typing import Any

import pytest

from mcplink.protocols.errors import ProcessDiedError
from mcplink.protocols.mcp.server import MCPServer

Responder = Callable[[dict[str, Any]], Any]


class ScriptedTransport:
    """In-memory transport.

    Every sent message is recorded in ``sent`` and passed to ``responder``;
    whatever it returns (a message, a list of messages, or ``None``) is
    queued for :meth:`receive`.  Exceptions pushed onto the inbox are raised
    from :meth:`receive`.
    """

    def __init__(self, responder: Responder | None = None) -> None:
        self.responder = responder
        self.sent: list[dict[str, Any]] = []
        self.inbox: asyncio.Queue[Any] = asyncio.Queue()
        self.alive = True
        self.closed = False

    async def connect(self) -> None:
        pass

    async def send(self, data: dict[str, Any]) -> None:
        if not self.alive:
            raise ProcessDiedError("gone")
        self.sent.append(data)
        if self.responder is None:
            return
        reply = self.responder(data)
        if inspect.isawaitable(reply):
            reply = await reply
        if reply is None:
            return
        for message in reply if isinstance(reply, list) else [reply]:
            self.inbox.put_nowait(message)

    async def receive(self) -> dict[str, Any]:
        message = await self.inbox.get()
        if isinstance(message, BaseException):
            raise message
        return message

    async def close(self) -> None:
        self.closed = True
        self.alive = False

    def is_alive(self) -> bool:
        return self.alive

    def push(self, message: Any) -> None:
        self.inbox.put_nowait(message)

    def methods(self) -> list[str]:
        return [m["method"] for m in self.sent]


def initialize_only(data: dict[str, Any]) -> dict[str, Any] | None:
    """Answer ``initialize`` and stay silent for everything else."""
    if data.get("method") == "initialize":
        return {
            "jsonrpc": "2.0",
            "id": data["id"],
            "result": {
                "protocolVersion": "2024-11-05",
                "capabilities": {},
                "serverInfo": {"name": "scripted", "version": "1.0"},
            },
        }
    return None


def loopback(server: MCPServer) -> Responder:
    """Route every message through *server* as if it were on the other end of a pipe."""

    async def _respond(data: dict[str, Any]) -> dict[str, Any] | None:
        reply = await server.handle_request(json.dumps(data))
        return json.loads(reply) if reply is not None else None

    return _respond


def build_sample_server() -> MCPServer:
    server = MCPServer("sample", "1.2.3")

    @server.tool(description="Echo the input back")
    def echo(text: str) -> str:
        return text

    @server.tool(description="Add two numbers")
    async def add(a: int, b: int = 0) -> dict[str, int]:
        return {"sum": a + b}

    @server.tool(description="Always fails")
    def explode() -> str:
        raise RuntimeError("boom")

    @server.resource("notes://readme", description="The readme")
    def readme(uri: str) -> str:
        return "# Notes"

    @server.prompt(description="Greet someone")
    def greet(name: str, formal: bool = False) -> dict[str, Any]:
        greeting = "Good day" if formal else "Hi"
        return {
            "description": "A greeting",
            "messages": [{"role": "user", "content": {"type": "text", "text": f"{greeting}, {name}"}}],
        }

    return server


@pytest.fixture
def scripted() -> type[ScriptedTransport]:
    return ScriptedTransport


@pytest.fixture
def init_responder() -> Responder:
    return initialize_only


@pytest.fixture
def sample_server() -> MCPServer:
    return build_sample_server()


@pytest.fixture
def loopback_transport(sample_server: MCPServer) -> ScriptedTransport:
    return ScriptedTransport(loopback(sample_server))
