"""MCPClient — connects to an MCP server and exposes its capabilities.

Implements the initialize handshake, request/response correlation, and the
``tools/*``, ``resources/*`` and ``prompts/*`` calls over an
:class:`MCPTransport`.

Every request gets its own id and its own future.  A single reader task
drains the transport and resolves the future whose id matches, so any
number of calls can be in flight on one connection and responses may
arrive in any order.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from mcplink import __version__
from mcplink.protocols.errors import (
    ConnectionError,
    ErrorCode,
    MCPError,
    ProcessDiedError,
    ProtocolError,
    RemoteError,
    RequestTimeoutError,
    TransportError,
    error_envelope,
)
from mcplink.protocols.mcp.content import Unrecognized, normalize_content
from mcplink.protocols.mcp.models import (
    PROTOCOL_VERSION,
    DiscoveredPrompt,
    DiscoveredResource,
    DiscoveredTool,
    JsonRpcRequest,
    JsonRpcResponse,
    PromptDefinition,
    ResourceDefinition,
    ToolDefinition,
    capabilities,
)
from mcplink.protocols.mcp.transport import HttpTransport, MCPTransport, StdioTransport
from mcplink.utils.telemetry import (
    ATTR_ERROR_CODE,
    ATTR_METHOD,
    ATTR_REQUEST_ID,
    ATTR_SERVER_NAME,
    ATTR_TOOL_NAME,
    ATTR_TRANSPORT,
    get_tracer,
)

if TYPE_CHECKING:
    from mcplink.protocols.mcp.models import ServerConnection

logger = logging.getLogger(__name__)

_tracer = get_tracer(__name__)

DEFAULT_CLIENT_INFO = {"name": "mcplink", "version": __version__}


class MCPClient:
    """Async context manager that connects to an MCP server.

    Satisfies the :class:`~mcplink.protocols.provider.ToolProvider` protocol.

    Usage::

        ref = ServerConnection(name="fs", command="npx", args=["@mcp/filesystem", "/tmp"])
        async with MCPClient(ref) as client:
            tools = await client.discover_tools()
            result = await client.call_tool("read_file", {"path": "/tmp/x"})

    ``timeout`` is the default per-request deadline in seconds (``None``
    waits forever); each call can override it.
    """

    def __init__(
        self,
        connection: ServerConnection,
        *,
        timeout: float | None = 30.0,
        client_info: dict[str, str] | None = None,
    ) -> None:
        self._ref = connection
        self._timeout = timeout
        self._client_info = client_info or dict(DEFAULT_CLIENT_INFO)
        self._transport: MCPTransport | None = None
        self._reader: asyncio.Task[None] | None = None
        self._pending: dict[int, asyncio.Future[JsonRpcResponse]] = {}
        self._ids = itertools.count(1)
        self._failure: TransportError | None = None
        self.server_info: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self._ref.name

    @property
    def connection(self) -> ServerConnection:
        return self._ref

    @property
    def is_connected(self) -> bool:
        return self._transport is not None and self._failure is None

    @property
    def session_id(self) -> str | None:
        """The HTTP session id, once the server has issued one."""
        if isinstance(self._transport, HttpTransport):
            return self._transport.session_id
        return None

    async def __aenter__(self) -> MCPClient:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the transport, connect, and perform the initialize handshake.

        A live client cannot be connected twice; a failed one is closed first.
        """
        if self._transport is not None:
            if self._failure is None:
                msg = f"Client {self.name} is already connected"
                raise ConnectionError(msg)
            await self.close()
        self._transport = self._create_transport()
        self._failure = None
        try:
            await self._transport.connect()
        except Exception as exc:
            self._transport = None
            raise ConnectionError(f"Cannot start {self.name}: {exc}") from exc
        self._reader = asyncio.create_task(self._read_loop(self._transport))
        try:
            await self._handshake()
        except MCPError as exc:
            await self.close()
            raise ConnectionError(f"Handshake with {self.name} failed: {exc.message}") from exc
        logger.info(
            "Connected to MCP server %s (%s) via %s",
            self.name,
            self.server_info.get("serverInfo", {}).get("name", "?"),
            self._ref.transport,
        )

    async def close(self) -> None:
        """Fail pending calls, stop the reader, and close the transport."""
        self._fail_pending(TransportError(f"Connection to {self.name} closed"))
        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None
        if self._transport is not None:
            await self._transport.close()
            self._transport = None

    def _create_transport(self) -> MCPTransport:
        """Build the appropriate transport from the server connection."""
        if self._ref.transport == "stdio":
            assert self._ref.command is not None
            return StdioTransport(
                command=self._ref.command,
                args=self._ref.args,
                env=dict(self._ref.env) or None,
            )
        assert self._ref.url is not None
        return HttpTransport(url=self._ref.url, headers=self._ref.headers, timeout=self._timeout)

    async def _handshake(self) -> None:
        """Perform the MCP initialize handshake."""
        response = await self._request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": capabilities(),
                "clientInfo": self._client_info,
            },
        )
        if response.error is not None:
            raise RemoteError("initialize", response.error.code, response.error.message)
        self.server_info = response.result if isinstance(response.result, dict) else {}
        if self._ref.transport == "stdio":
            await self.send_notification("notifications/initialized")

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def list_tools(self, *, timeout: float | None = None) -> list[ToolDefinition]:
        """Send ``tools/list`` and return the server's tool definitions in order."""
        raw = await self._list_all("tools/list", "tools", timeout)
        return [ToolDefinition.model_validate(item) for item in raw]

    async def discover_tools(self, names: list[str] | None = None) -> list[DiscoveredTool]:
        """Return tool definitions tagged with this connection, optionally filtered by name."""
        tools = await self.list_tools()
        return [
            DiscoveredTool(**tool.model_dump(), server_name=self.name)
            for tool in tools
            if names is None or tool.name in names
        ]

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> str | Unrecognized | dict[str, Any]:
        """Send ``tools/call`` and normalize the content.

        Returns the normalized content, or an error envelope when the server
        answers with a JSON-RPC error or flags the result with ``isError``.
        """
        response = await self._request(
            "tools/call",
            {"name": name, "arguments": arguments or {}},
            timeout=timeout,
            tool_name=name,
        )
        if response.error is not None:
            return error_envelope(response.error.code, response.error.message)
        result = response.result
        if isinstance(result, dict) and result.get("isError") is True:
            detail = normalize_content(result)
            message = detail if isinstance(detail, str) and detail else f"Tool {name} failed"
            return error_envelope(ErrorCode.HANDLER_ERROR, message)
        return normalize_content(result)

    async def execute_tool(
        self, name: str, arguments: dict[str, Any]
    ) -> str | Unrecognized | dict[str, Any]:
        """Call a tool, converting any client-side failure into an error envelope."""
        try:
            return await self.call_tool(name, arguments)
        except MCPError as exc:
            logger.warning("Tool %s on %s failed: %s", name, self.name, exc.message)
            return exc.to_envelope()

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def list_resources(self, *, timeout: float | None = None) -> list[ResourceDefinition]:
        """Send ``resources/list`` and return the server's resource definitions in order."""
        raw = await self._list_all("resources/list", "resources", timeout)
        return [ResourceDefinition.model_validate(item) for item in raw]

    async def discover_resources(self, uris: list[str] | None = None) -> list[DiscoveredResource]:
        """Return resource definitions tagged with this connection, optionally filtered by uri."""
        resources = await self.list_resources()
        discovered: list[DiscoveredResource] = []
        for resource in resources:
            if uris is not None and resource.uri not in uris:
                continue
            data = resource.model_dump()
            data["mime_type"] = resource.mime_type or "text/plain"
            discovered.append(DiscoveredResource(**data, server_name=self.name))
        return discovered

    async def read_resource(
        self, uri: str, *, timeout: float | None = None
    ) -> list[dict[str, Any]] | dict[str, Any]:
        """Send ``resources/read``; returns the ``contents`` list or an error envelope."""
        response = await self._request("resources/read", {"uri": uri}, timeout=timeout)
        if response.error is not None:
            return error_envelope(response.error.code, response.error.message)
        result = response.result if isinstance(response.result, dict) else {}
        contents: list[dict[str, Any]] = result.get("contents") or []
        return contents

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    async def list_prompts(self, *, timeout: float | None = None) -> list[PromptDefinition]:
        """Send ``prompts/list`` and return the server's prompt definitions in order."""
        raw = await self._list_all("prompts/list", "prompts", timeout)
        return [PromptDefinition.model_validate(item) for item in raw]

    async def discover_prompts(self, names: list[str] | None = None) -> list[DiscoveredPrompt]:
        """Return prompt definitions tagged with this connection, optionally filtered by name."""
        prompts = await self.list_prompts()
        return [
            DiscoveredPrompt(**prompt.model_dump(), server_name=self.name)
            for prompt in prompts
            if names is None or prompt.name in names
        ]

    async def get_prompt(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send ``prompts/get``; returns ``{description?, messages}`` or an error envelope."""
        params: dict[str, Any] = {"name": name}
        if arguments:
            params["arguments"] = arguments
        response = await self._request("prompts/get", params, timeout=timeout)
        if response.error is not None:
            return error_envelope(response.error.code, response.error.message)
        result = response.result if isinstance(response.result, dict) else {}
        prompt: dict[str, Any] = {"messages": result.get("messages") or []}
        if result.get("description") is not None:
            prompt["description"] = result["description"]
        return prompt

    # ------------------------------------------------------------------
    # JSON-RPC plumbing
    # ------------------------------------------------------------------

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification; no response is expected and nothing is awaited."""
        transport = self._usable_transport()
        notification = JsonRpcRequest(method=method, params=params or {})
        try:
            await transport.send(notification.to_wire())
        except ProcessDiedError as exc:
            self._fail(exc)
            raise

    async def _list_all(
        self, method: str, key: str, timeout: float | None
    ) -> list[dict[str, Any]]:
        """Collect every page of a ``*/list`` method, following ``nextCursor``."""
        items: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            params = {"cursor": cursor} if cursor else {}
            response = await self._request(method, params, timeout=timeout)
            if response.error is not None:
                raise RemoteError(method, response.error.code, response.error.message)
            result = response.result if isinstance(response.result, dict) else {}
            items.extend(result.get(key) or [])
            cursor = result.get("nextCursor")
            if not cursor:
                return items

    async def _request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        tool_name: str | None = None,
    ) -> JsonRpcResponse:
        """Send a JSON-RPC request and wait for the response with the same id.

        Raises:
            ProcessDiedError: the server process is gone (now or earlier).
            RequestTimeoutError: no response within the deadline.
            TransportError: the transport failed for this request.
            ProtocolError: the matching response was malformed.
        """
        transport = self._usable_transport()
        request_id = next(self._ids)
        request = JsonRpcRequest(method=method, id=request_id, params=params or {})
        deadline = self._timeout if timeout is None else timeout

        future: asyncio.Future[JsonRpcResponse] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        with _tracer.start_as_current_span("mcp.client.request") as span:
            span.set_attribute(ATTR_METHOD, method)
            span.set_attribute(ATTR_REQUEST_ID, request_id)
            span.set_attribute(ATTR_SERVER_NAME, self.name)
            span.set_attribute(ATTR_TRANSPORT, self._ref.transport)
            if tool_name is not None:
                span.set_attribute(ATTR_TOOL_NAME, tool_name)
            try:
                logger.debug("-> %s #%s %s", self.name, request_id, method)
                await transport.send(request.to_wire())
                response = await asyncio.wait_for(future, deadline)
            except asyncio.TimeoutError:
                assert deadline is not None
                span.set_attribute(ATTR_ERROR_CODE, ErrorCode.TIMEOUT)
                raise RequestTimeoutError(method, deadline) from None
            except ProcessDiedError as exc:
                self._fail(exc)
                span.set_attribute(ATTR_ERROR_CODE, exc.code)
                raise ProcessDiedError(exc.detail) from exc
            except MCPError as exc:
                span.set_attribute(ATTR_ERROR_CODE, exc.code)
                raise
            finally:
                self._pending.pop(request_id, None)

            if response.error is not None:
                span.set_attribute(ATTR_ERROR_CODE, response.error.code)
            logger.debug("<- %s #%s %s", self.name, request_id, "error" if response.is_error else "ok")
            return response

    def _usable_transport(self) -> MCPTransport:
        """Return the transport, or raise without touching it if the connection is unusable."""
        if self._failure is not None:
            raise self._replay_failure()
        if self._transport is None:
            msg = "Client not connected"
            raise TransportError(msg)
        if not self._transport.is_alive():
            if self._ref.transport == "stdio":
                self._fail(ProcessDiedError("process is no longer running"))
                raise self._replay_failure()
            msg = f"Connection to {self.name} is closed"
            raise TransportError(msg)
        return self._transport

    def _replay_failure(self) -> TransportError:
        assert self._failure is not None
        return _fresh(self._failure)

    def _fail(self, exc: TransportError) -> None:
        """Mark the connection permanently unusable and fail every pending call."""
        if self._failure is None:
            logger.error("MCP connection %s failed: %s", self.name, exc.message)
            self._failure = exc
        self._fail_pending(exc)

    def _fail_pending(self, exc: TransportError) -> None:
        for request_id, future in list(self._pending.items()):
            if not future.done():
                future.set_exception(_fresh(exc))
            self._pending.pop(request_id, None)

    async def _read_loop(self, transport: MCPTransport) -> None:
        """Drain the transport, routing each response to the waiter with its id."""
        while True:
            try:
                message = await transport.receive()
            except ProcessDiedError as exc:
                self._fail(exc)
                return
            except ProtocolError as exc:
                logger.warning("Malformed message from %s: %s", self.name, exc.message)
                continue
            except TransportError as exc:
                self._fail(exc)
                return
            self._deliver(message)

    def _deliver(self, message: dict[str, Any]) -> None:
        if "method" in message:
            logger.debug("Ignoring server-initiated %s from %s", message.get("method"), self.name)
            return

        request_id = message.get("id")
        future = self._pending.get(request_id) if isinstance(request_id, int) else None
        if future is None or future.done():
            logger.debug("Dropping response for unknown or abandoned id %r from %s", request_id, self.name)
            return

        if ("result" in message) == ("error" in message):
            future.set_exception(ProtocolError(f"Response #{request_id} must carry exactly one of result/error"))
            return
        try:
            response = JsonRpcResponse.model_validate(message)
        except ValidationError as exc:
            future.set_exception(ProtocolError(f"Malformed response #{request_id}: {exc}"))
            return
        future.set_result(response)


def _fresh(exc: TransportError) -> TransportError:
    """Copy a stored connection failure so each caller gets its own exception."""
    if isinstance(exc, ProcessDiedError):
        return ProcessDiedError(exc.detail)
    return TransportError(exc.message)
