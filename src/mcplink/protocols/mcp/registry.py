"""Server-side capability registry.

Three independent tables keyed by tool name, resource uri, and prompt name.
Tables are filled while the server is being wired and only read afterwards,
so concurrent dispatches share them without locking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from mcplink.protocols.errors import PromptNotFoundError, ResourceNotFoundError, ToolNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable

    from mcplink.protocols.errors import MCPError
    from mcplink.protocols.mcp.models import PromptDefinition, ResourceDefinition, ToolDefinition

logger = logging.getLogger(__name__)

D = TypeVar("D")


@dataclass(frozen=True)
class Entry(Generic[D]):
    """A definition bound to the callable that serves it."""

    definition: D
    handler: Callable[..., Any]


class _Table(Generic[D]):
    def __init__(self, kind: str, not_found: Callable[[str], MCPError]) -> None:
        self._kind = kind
        self._not_found = not_found
        self._entries: dict[str, Entry[D]] = {}

    def add(self, key: str, definition: D, handler: Callable[..., Any]) -> None:
        if not callable(handler):
            msg = f"{self._kind} handler for {key!r} must be callable"
            raise TypeError(msg)
        if key in self._entries:
            msg = f"{self._kind} already registered: {key}"
            raise ValueError(msg)
        self._entries[key] = Entry(definition=definition, handler=handler)
        logger.debug("Registered %s: %s", self._kind, key)

    def get(self, key: str) -> Entry[D]:
        entry = self._entries.get(key)
        if entry is None:
            raise self._not_found(key)
        return entry

    def definitions(self) -> list[D]:
        return [entry.definition for entry in self._entries.values()]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class Registry:
    """Name/uri-keyed tables of tools, resources, and prompts.

    Usage::

        registry = Registry()
        registry.add_tool(ToolDefinition(name="echo"), lambda text: text)
        entry = registry.tool("echo")
        entry.handler(text="hi")
    """

    def __init__(self) -> None:
        self.tools: _Table[ToolDefinition] = _Table("tool", ToolNotFoundError)
        self.resources: _Table[ResourceDefinition] = _Table("resource", ResourceNotFoundError)
        self.prompts: _Table[PromptDefinition] = _Table("prompt", PromptNotFoundError)

    def add_tool(self, definition: ToolDefinition, handler: Callable[..., Any]) -> None:
        self.tools.add(definition.name, definition, handler)

    def add_resource(self, definition: ResourceDefinition, handler: Callable[..., Any]) -> None:
        self.resources.add(definition.uri, definition, handler)

    def add_prompt(self, definition: PromptDefinition, handler: Callable[..., Any]) -> None:
        self.prompts.add(definition.name, definition, handler)

    def tool(self, name: str) -> Entry[ToolDefinition]:
        """Look up a tool; raises :class:`ToolNotFoundError` on a miss."""
        return self.tools.get(name)

    def resource(self, uri: str) -> Entry[ResourceDefinition]:
        """Look up a resource; raises :class:`ResourceNotFoundError` on a miss."""
        return self.resources.get(uri)

    def prompt(self, name: str) -> Entry[PromptDefinition]:
        """Look up a prompt; raises :class:`PromptNotFoundError` on a miss."""
        return self.prompts.get(name)
