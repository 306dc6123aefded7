"""MCPServer — exposes registered tools, resources, and prompts over MCP.

The dispatcher works on raw lines: :meth:`MCPServer.handle_request` takes one
newline-delimited JSON message and returns the reply line, or ``None`` when
nothing must be written (notifications, transport noise).
"""

from __future__ import annotations

import asyncio
import base64
import inspect
import json
import logging
import sys
from enum import Enum
from typing import TYPE_CHECKING, Any, TextIO

from mcplink.protocols.errors import (
    HandlerError,
    InvalidParamsError,
    InvalidRequestError,
    InvalidResultError,
    MCPError,
    MethodNotFoundError,
)
from mcplink.protocols.mcp.models import (
    PROTOCOL_VERSION,
    JsonRpcError,
    JsonRpcResponse,
    PromptArgument,
    PromptDefinition,
    ResourceDefinition,
    ToolDefinition,
    capabilities,
)
from mcplink.protocols.mcp.registry import Registry
from mcplink.utils.telemetry import ATTR_ERROR_CODE, ATTR_METHOD, ATTR_REQUEST_ID, get_tracer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

_tracer = get_tracer(__name__)


class Method(str, Enum):
    """Every method this server routes."""

    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"


class MCPServer:
    """Routes JSON-RPC requests to registered capability handlers.

    Usage::

        server = MCPServer("notes", "1.0.0")

        @server.tool(description="Echo the input back")
        def echo(text: str) -> str:
            return text

        server.run_stdio()
    """

    def __init__(self, name: str, version: str = "0.1.0") -> None:
        self.name = name
        self.version = version
        self.registry = Registry()
        self._routes: dict[Method, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            Method.INITIALIZE: self._initialize,
            Method.INITIALIZED: self._initialized,
            Method.TOOLS_LIST: self._tools_list,
            Method.TOOLS_CALL: self._tools_call,
            Method.RESOURCES_LIST: self._resources_list,
            Method.RESOURCES_READ: self._resources_read,
            Method.PROMPTS_LIST: self._prompts_list,
            Method.PROMPTS_GET: self._prompts_get,
        }
        missing = set(Method) - set(self._routes)
        if missing:
            msg = f"Unrouted MCP methods: {sorted(m.value for m in missing)}"
            raise RuntimeError(msg)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_tool(self, definition: ToolDefinition, handler: Callable[..., Any]) -> None:
        """Expose *handler* as a tool; it is called with the tool arguments as keywords."""
        self.registry.add_tool(definition, handler)

    def register_resource(
        self, definition: ResourceDefinition, handler: Callable[..., Any]
    ) -> None:
        """Expose *handler* as a resource; it is called with the uri.

        The handler returns a string, or a mapping with ``text`` or ``blob``
        (and optionally ``mimeType``).  A ``bytes`` blob is base64-encoded.
        """
        self.registry.add_resource(definition, handler)

    def register_prompt(self, definition: PromptDefinition, handler: Callable[..., Any]) -> None:
        """Expose *handler* as a prompt; it must return ``{"messages": [...]}``."""
        self.registry.add_prompt(definition, handler)

    def tool(
        self,
        name: str | None = None,
        *,
        description: str | None = None,
        input_schema: dict[str, Any] | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of :meth:`register_tool`.

        Without an explicit ``input_schema`` one is derived from the
        function signature (see :func:`mcplink.tools.schema.schema_from_signature`).
        """

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            from mcplink.tools.schema import schema_from_signature

            definition = ToolDefinition(
                name=name or fn.__name__,
                description=description or inspect.getdoc(fn) or "",
                input_schema=input_schema or schema_from_signature(fn),
            )
            self.register_tool(definition, fn)
            return fn

        return decorator

    def resource(
        self,
        uri: str,
        *,
        name: str | None = None,
        description: str | None = None,
        mime_type: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of :meth:`register_resource`."""

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            definition = ResourceDefinition(
                uri=uri,
                name=name or fn.__name__,
                description=description or inspect.getdoc(fn) or "",
                mime_type=mime_type,
            )
            self.register_resource(definition, fn)
            return fn

        return decorator

    def prompt(
        self, name: str | None = None, *, description: str | None = None
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of :meth:`register_prompt`; arguments come from the signature."""

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            arguments = [
                PromptArgument(name=param.name, required=param.default is inspect.Parameter.empty)
                for param in inspect.signature(fn).parameters.values()
                if param.kind in (param.POSITIONAL_OR_KEYWORD, param.KEYWORD_ONLY)
            ]
            definition = PromptDefinition(
                name=name or fn.__name__,
                description=description or inspect.getdoc(fn) or "",
                arguments=arguments,
            )
            self.register_prompt(definition, fn)
            return fn

        return decorator

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle_request(self, line: str) -> str | None:
        """Handle one raw JSON-RPC line and return the reply line, if any.

        Unparseable lines and objects without a ``jsonrpc`` field are
        dropped without a reply.
        """
        try:
            message = json.loads(line)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Dropping unparseable line: %.200s", line)
            return None
        if not isinstance(message, dict) or "jsonrpc" not in message:
            logger.debug("Dropping non JSON-RPC message: %.200s", line)
            return None

        response = await self.dispatch(message)
        if response is None:
            return None
        return json.dumps(response.to_wire())

    async def dispatch(self, message: dict[str, Any]) -> JsonRpcResponse | None:
        """Route a decoded JSON-RPC message; returns ``None`` for notifications."""
        request_id = message.get("id")
        method = message.get("method")
        if not _valid_id(request_id):
            logger.debug("Rejecting %s with unusable id %r", method, request_id)
            invalid = InvalidRequestError("Request 'id' must be a string, an integer, or null")
            return JsonRpcResponse(id=None, error=JsonRpcError(code=invalid.code, message=invalid.message))

        with _tracer.start_as_current_span("mcp.server.dispatch") as span:
            span.set_attribute(ATTR_METHOD, str(method))
            if request_id is not None:
                span.set_attribute(ATTR_REQUEST_ID, str(request_id))

            try:
                result = await self._route(method, message.get("params"))
                _ensure_json(method, result)
            except MCPError as exc:
                error = JsonRpcError(code=exc.code, message=exc.message)
            except Exception as exc:
                logger.error("Internal error handling %s: %s", method, exc, exc_info=True)
                wrapped = HandlerError(str(method), str(exc))
                error = JsonRpcError(code=wrapped.code, message=wrapped.message)
            else:
                if request_id is None:
                    return None
                return JsonRpcResponse(id=request_id, result=result)

            span.set_attribute(ATTR_ERROR_CODE, error.code)
            if request_id is None:
                logger.debug("Notification %s failed: %s", method, error.message)
                return None
            return JsonRpcResponse(id=request_id, error=error)

    async def _route(self, method: Any, params: Any) -> Any:
        if not isinstance(method, str):
            msg = "Request is missing a string 'method'"
            raise InvalidRequestError(msg)
        try:
            route = self._routes[Method(method)]
        except ValueError:
            raise MethodNotFoundError(method) from None
        if params is None:
            params = {}
        if not isinstance(params, dict):
            msg = "Request 'params' must be an object"
            raise InvalidParamsError(msg)
        return await route(params)

    # ------------------------------------------------------------------
    # Method handlers
    # ------------------------------------------------------------------

    async def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        client = params.get("clientInfo") or {}
        logger.info("Initialize from client %s", client.get("name", "?"))
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {"name": self.name, "version": self.version},
            "capabilities": capabilities(),
        }

    async def _initialized(self, params: dict[str, Any]) -> None:
        logger.debug("Client finished initialization")

    async def _tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": [d.to_wire() for d in self.registry.tools.definitions()]}

    async def _tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        name = _require_str(params, "name")
        entry = self.registry.tool(name)
        arguments = _arguments(params)
        result = await _invoke(name, entry.handler, (), arguments)
        text = result if isinstance(result, str) else _pretty_json(result)
        return {"content": [{"type": "text", "text": text}], "isError": False}

    async def _resources_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"resources": [d.to_wire() for d in self.registry.resources.definitions()]}

    async def _resources_read(self, params: dict[str, Any]) -> dict[str, Any]:
        uri = _require_str(params, "uri")
        entry = self.registry.resource(uri)
        result = await _invoke(uri, entry.handler, (uri,), {})
        declared = entry.definition.mime_type

        item: dict[str, Any]
        if isinstance(result, str):
            item = {"uri": uri, "mimeType": declared or "text/plain", "text": result}
        elif isinstance(result, dict) and result.get("text") is not None:
            mime = result.get("mimeType") or declared or "text/plain"
            item = {"uri": uri, "mimeType": mime, "text": result["text"]}
        elif isinstance(result, dict) and result.get("blob") is not None:
            mime = result.get("mimeType") or declared or "application/octet-stream"
            blob = result["blob"]
            if isinstance(blob, (bytes, bytearray)):
                blob = base64.b64encode(blob).decode("ascii")
            item = {"uri": uri, "mimeType": mime, "blob": blob}
        else:
            item = {"uri": uri, "mimeType": "text/plain", "text": _pretty_json(result)}
        return {"contents": [item]}

    async def _prompts_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"prompts": [d.to_wire() for d in self.registry.prompts.definitions()]}

    async def _prompts_get(self, params: dict[str, Any]) -> dict[str, Any]:
        name = _require_str(params, "name")
        entry = self.registry.prompt(name)
        result = await _invoke(name, entry.handler, (), _arguments(params))
        if not isinstance(result, dict) or result.get("messages") is None:
            msg = f"Prompt handler {name!r} must return a mapping with a 'messages' field"
            raise InvalidResultError(msg)
        reply: dict[str, Any] = {"messages": result["messages"]}
        if result.get("description") is not None:
            reply["description"] = result["description"]
        return reply

    # ------------------------------------------------------------------
    # Stdio serving
    # ------------------------------------------------------------------

    async def serve_stdio(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        """Serve newline-delimited JSON-RPC until *stdin* reaches EOF.

        Each line is dispatched as its own task, so a slow handler never
        holds up unrelated requests.  Replies are written whole, one per line.
        """
        reader = stdin or sys.stdin
        writer = stdout or sys.stdout
        pending: set[asyncio.Task[None]] = set()

        async def _answer(line: str) -> None:
            reply = await self.handle_request(line)
            if reply is not None:
                writer.write(reply + "\n")
                writer.flush()

        logger.info("Serving %s %s over stdio", self.name, self.version)
        while True:
            line = await asyncio.to_thread(reader.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            task = asyncio.create_task(_answer(line))
            pending.add(task)
            task.add_done_callback(pending.discard)

        if pending:
            await asyncio.gather(*pending)
        logger.info("stdin closed, %s shutting down", self.name)

    def run_stdio(self) -> None:
        """Blocking entry point: serve over the process's own stdin/stdout."""
        asyncio.run(self.serve_stdio())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_str(params: dict[str, Any], key: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value:
        msg = f"Missing required string parameter '{key}'"
        raise InvalidParamsError(msg)
    return value


def _arguments(params: dict[str, Any]) -> dict[str, Any]:
    arguments = params.get("arguments")
    if arguments is None:
        return {}
    if not isinstance(arguments, dict):
        msg = "'arguments' must be an object"
        raise InvalidParamsError(msg)
    return arguments


async def _invoke(
    name: str, handler: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]
) -> Any:
    """Call *handler*; sync handlers run in a worker thread.

    Arguments that do not bind to the signature are an input problem, not a
    handler failure.
    """
    try:
        inspect.signature(handler).bind(*args, **kwargs)
    except TypeError as exc:
        msg = f"Invalid arguments for {name}: {exc}"
        raise InvalidParamsError(msg) from exc
    except ValueError:
        # Builtins without an introspectable signature; let the call decide.
        pass

    try:
        if inspect.iscoroutinefunction(handler):
            return await handler(*args, **kwargs)
        result = await asyncio.to_thread(handler, *args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
    except MCPError:
        raise
    except Exception as exc:
        logger.warning("Handler %s raised %s: %s", name, type(exc).__name__, exc)
        raise HandlerError(name, str(exc)) from exc


def _valid_id(request_id: Any) -> bool:
    if request_id is None:
        return True
    return isinstance(request_id, (int, str)) and not isinstance(request_id, bool)


def _ensure_json(method: Any, result: Any) -> None:
    """Reject results that cannot be written back on the wire."""
    try:
        json.dumps(result)
    except (TypeError, ValueError) as exc:
        msg = f"Result of {method} is not JSON serializable: {exc}"
        raise InvalidResultError(msg) from exc


def _pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)
