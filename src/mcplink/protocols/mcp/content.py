"""Content normalization for ``tools/call`` results.

MCP servers return a ``content`` array mixing ``text``, ``resource`` and
``image`` items. Servers such as GitHub's answer ``get_file_contents`` with a
text status line followed by the actual file as a resource, so resource and
image items win over text items.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Unrecognized:
    """A result whose shape carried no content array.

    ``raw`` is the original response, unmodified.
    """

    raw: Any


def normalize_content(result: Any) -> str | Unrecognized:
    """Reduce a ``tools/call`` result to a single consumable value.

    Resource/image payloads are joined with newlines when any exist,
    otherwise text items are. An absent or empty content array yields
    :class:`Unrecognized` wrapping *result*.
    """
    content = result.get("content") if isinstance(result, dict) else None
    if not isinstance(content, list) or not content:
        return Unrecognized(raw=result)

    priority: list[str] = []
    texts: list[str] = []
    for item in content:
        if not isinstance(item, dict):
            continue
        kind = item.get("type")
        if kind == "resource":
            priority.append(_resource_payload(item.get("resource")))
        elif kind == "image":
            priority.append(
                json.dumps(
                    {"type": "image", "data": item.get("data"), "mimeType": item.get("mimeType")},
                    separators=(",", ":"),
                )
            )
        elif kind == "text":
            texts.append(str(item.get("text") or ""))

    if priority:
        return "\n".join(priority)
    return "\n".join(texts)


def _resource_payload(resource: Any) -> str:
    if not isinstance(resource, dict):
        return ""
    text = resource.get("text")
    if text is not None:
        return str(text)
    blob = resource.get("blob")
    return str(blob) if blob is not None else ""
