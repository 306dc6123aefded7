"""Shared error types for the protocol layer.

Every error carries the JSON-RPC ``code`` it maps to, so the server can turn
it into an error response and the client can turn it into an error envelope
without losing the original code.
"""

from __future__ import annotations

from typing import Any


class ErrorCode:
    """JSON-RPC 2.0 standard error codes and MCP application codes."""

    # Standard JSON-RPC 2.0 error codes
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server-side application codes
    HANDLER_ERROR = -32000
    TOOL_NOT_FOUND = -32001
    RESOURCE_NOT_FOUND = -32002
    PROMPT_NOT_FOUND = -32003
    INVALID_RESULT = -32004

    # Client-side codes (never sent over the wire)
    TRANSPORT_ERROR = -32050
    PROCESS_DIED = -32051
    TIMEOUT = -32052
    PROTOCOL_ERROR = -32053
    CONNECTION_ERROR = -32054


class MCPError(Exception):
    """Base error for all protocol-layer failures."""

    code: int = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str = "", *, code: int | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)

    def to_envelope(self) -> dict[str, Any]:
        """Return the caller-facing error envelope for this error."""
        return error_envelope(self.code, self.message)


class ParseError(MCPError):
    """A line could not be decoded as JSON."""

    code = ErrorCode.PARSE_ERROR


class InvalidRequestError(MCPError):
    """The message is JSON but not a valid JSON-RPC request."""

    code = ErrorCode.INVALID_REQUEST


class MethodNotFoundError(MCPError):
    """No handler is routed for the requested method."""

    code = ErrorCode.METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class InvalidParamsError(MCPError):
    """Request params are missing or do not fit the handler."""

    code = ErrorCode.INVALID_PARAMS


class ToolNotFoundError(MCPError):
    """Requested tool does not exist in the provider's registry."""

    code = ErrorCode.TOOL_NOT_FOUND

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class ResourceNotFoundError(MCPError):
    """Requested resource uri is not registered."""

    code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"Resource not found: {uri}")


class PromptNotFoundError(MCPError):
    """Requested prompt does not exist in the provider's registry."""

    code = ErrorCode.PROMPT_NOT_FOUND

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Prompt not found: {name}")


class InvalidResultError(MCPError):
    """A registered handler returned a value that violates its result contract."""

    code = ErrorCode.INVALID_RESULT


class HandlerError(MCPError):
    """A registered handler raised while being invoked."""

    code = ErrorCode.HANDLER_ERROR

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Handler failed: {name}" + (f": {detail}" if detail else ""))


class RemoteError(MCPError):
    """The server answered a request with a JSON-RPC error; ``code`` is the server's."""

    def __init__(self, method: str, code: int, message: str) -> None:
        self.method = method
        super().__init__(message, code=code)


class TransportError(MCPError):
    """The transport failed: HTTP error, bad status, closed pipe."""

    code = ErrorCode.TRANSPORT_ERROR


class ConnectionError(TransportError):
    """Failed to connect to, or handshake with, an MCP server."""

    code = ErrorCode.CONNECTION_ERROR


class ProcessDiedError(TransportError):
    """The stdio server process exited; the connection is permanently unusable."""

    code = ErrorCode.PROCESS_DIED

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("MCP server process died" + (f": {detail}" if detail else ""))


class RequestTimeoutError(TransportError):
    """No response arrived for a request within its timeout."""

    code = ErrorCode.TIMEOUT

    def __init__(self, method: str, timeout: float) -> None:
        self.method = method
        self.timeout = timeout
        super().__init__(f"Request {method} timed out after {timeout}s")


class ProtocolError(MCPError):
    """The remote peer sent a malformed JSON-RPC envelope."""

    code = ErrorCode.PROTOCOL_ERROR


def error_envelope(code: int, message: str) -> dict[str, Any]:
    """Build the explicit error value handed to callers instead of a result."""
    return {"isError": True, "error": {"code": code, "message": message}}


def is_error_envelope(value: Any) -> bool:
    """Return ``True`` if *value* is an envelope built by :func:`error_envelope`."""
    return isinstance(value, dict) and value.get("isError") is True and "error" in value
