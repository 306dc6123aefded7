"""JSON Schema builders for tool inputs.

Three ways in:

* :func:`type_tree_to_schema` converts a third-party typed-parameter tree
  (nodes with ``type``, ``description``, ``items``, ``properties`` and a
  per-property ``required`` flag) into JSON Schema.
* :func:`tool` builds a :class:`~mcplink.tools.models.ToolSpec` from compact
  parameter specs such as ``"string* Path to read"``.
* :func:`schema_from_signature` derives an input schema from a Python
  function's signature and annotations.
"""

from __future__ import annotations

import inspect
import logging
import re
import types
import typing
from collections.abc import Callable, Mapping
from typing import Any, Literal, Union

from mcplink.tools.models import ToolSpec

logger = logging.getLogger(__name__)

PRIMITIVE_KINDS = frozenset({"string", "number", "integer", "boolean", "array", "object"})

_META_FIELDS = ("type", "description")
_ARRAY_SPEC = re.compile(r"^\[(.+)\]$")
_STRING_SPEC = re.compile(r"^(\S+)\s*(.*)$", re.DOTALL)

_SPEC_TYPES: dict[str, dict[str, str]] = {
    "string": {"type": "string"},
    "integer": {"type": "integer"},
    "number": {"type": "number"},
    "boolean": {"type": "boolean"},
    "object": {"type": "object"},
    "date": {"type": "string", "format": "date"},
    "date-time": {"type": "string", "format": "date-time"},
}

_PYTHON_TYPES: dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    set: "array",
    dict: "object",
}


# ---------------------------------------------------------------------------
# Typed-parameter trees
# ---------------------------------------------------------------------------


def type_tree_to_schema(node: Any) -> dict[str, Any]:
    """Recursively convert a typed-parameter tree into JSON Schema.

    Nodes may be mappings or objects exposing the same fields as attributes.
    Kinds are matched case-insensitively; an unrecognized kind becomes
    ``"string"`` (logged at warning level) rather than failing.
    """
    raw_kind = _field(node, "type")
    kind = str(raw_kind).lower() if raw_kind is not None else "string"
    if kind not in PRIMITIVE_KINDS:
        logger.warning("Unknown parameter type %r, defaulting to 'string'", raw_kind)
        kind = "string"

    schema: dict[str, Any] = {"type": kind}
    description = _field(node, "description")
    if description:
        schema["description"] = str(description)

    if kind == "array":
        items = _field(node, "items")
        if items is not None:
            schema["items"] = type_tree_to_schema(items)
    elif kind == "object":
        properties = _field(node, "properties") or {}
        schema["properties"] = {
            str(name): type_tree_to_schema(child) for name, child in properties.items()
        }
        required = [str(name) for name, child in properties.items() if _field(child, "required") is True]
        if required:
            schema["required"] = required
    return schema


def _field(node: Any, key: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(key)
    return getattr(node, key, None)


# ---------------------------------------------------------------------------
# Compact parameter specs
# ---------------------------------------------------------------------------


def tool(name: str, description: str, **params: str | Mapping[str, Any]) -> ToolSpec:
    """Build a tool from compact parameter specs.

    Each keyword is a parameter.  String specs read ``"type[*] [description]"``
    where ``*`` marks the parameter required and ``[type]`` makes it an
    array::

        tool(
            "search",
            "Search the catalogue",
            query="string* Free text query",
            tags="[string] Filter tags",
            since="date Only items added after this day",
        )

    Mapping specs describe nested objects: ``type`` is ``"object"`` or
    ``"[object]"`` (optionally starred), ``description`` is optional, and
    every other key is a nested parameter spec.
    """
    if not isinstance(name, str) or not name:
        msg = "name must be a non-empty string"
        raise ValueError(msg)
    if not isinstance(description, str) or not description:
        msg = "description must be a non-empty string"
        raise ValueError(msg)
    if not params:
        logger.warning("No parameters specified for tool %r", name)
        return ToolSpec(name=name, description=description)

    properties, required = _parse_params(params)
    return ToolSpec(
        name=name,
        description=description,
        input_schema={"type": "object", "properties": properties, "required": required},
    )


def _parse_params(params: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    properties: dict[str, Any] = {}
    required: list[str] = []
    for param_name, spec in params.items():
        schema, is_required = _parse_param_spec(spec, param_name)
        properties[param_name] = schema
        if is_required:
            required.append(param_name)
    return properties, required


def _parse_param_spec(spec: Any, param_name: str) -> tuple[dict[str, Any], bool]:
    if isinstance(spec, str):
        return _parse_string_spec(spec)
    if isinstance(spec, Mapping):
        return _parse_mapping_spec(spec, param_name)
    msg = f"Parameter {param_name!r} must be a string or mapping specification"
    raise ValueError(msg)


def _parse_string_spec(spec: str) -> tuple[dict[str, Any], bool]:
    required = "*" in spec
    match = _STRING_SPEC.match(spec.replace("*", "").strip())
    if match is None:
        msg = f"Invalid type specification: {spec!r}"
        raise ValueError(msg)
    type_str, desc = match.group(1), match.group(2).strip()

    schema = _spec_type(type_str)
    if desc:
        schema["description"] = desc
    return schema, required


def _parse_mapping_spec(spec: Mapping[str, Any], param_name: str) -> tuple[dict[str, Any], bool]:
    type_str = spec.get("type")
    if not isinstance(type_str, str):
        msg = f"Mapping specification for {param_name!r} must have a 'type' field"
        raise ValueError(msg)
    required = "*" in type_str
    kind = type_str.replace("*", "").strip()
    if kind not in ("object", "[object]"):
        msg = f"Mapping specifications only support object types, got {kind!r} for {param_name!r}"
        raise ValueError(msg)

    nested = {key: value for key, value in spec.items() if key not in _META_FIELDS}
    properties, nested_required = _parse_params(nested)
    object_schema: dict[str, Any] = {
        "type": "object",
        "properties": properties,
        "required": nested_required,
    }
    description = spec.get("description")

    if kind == "[object]":
        array_schema: dict[str, Any] = {"type": "array"}
        if description:
            array_schema["description"] = description
        array_schema["items"] = object_schema
        return array_schema, required

    if description:
        object_schema["description"] = description
    return object_schema, required


def _spec_type(type_str: str) -> dict[str, Any]:
    match = _ARRAY_SPEC.match(type_str)
    if match is not None:
        return {"type": "array", "items": _spec_type(match.group(1))}
    known = _SPEC_TYPES.get(type_str.lower())
    if known is not None:
        return dict(known)
    logger.warning("Unknown type %r, defaulting to 'string'", type_str)
    return {"type": "string"}


# ---------------------------------------------------------------------------
# Python signatures
# ---------------------------------------------------------------------------


def schema_from_signature(fn: Callable[..., Any]) -> dict[str, Any]:
    """Derive an object schema from *fn*'s parameters.

    Parameters without a default are required.  ``*args`` / ``**kwargs``
    are ignored.  Unannotated parameters are strings.
    """
    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError):
        # Unresolvable forward references; fall back to untyped parameters.
        hints = {}

    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in inspect.signature(fn).parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        properties[param.name] = _annotation_schema(hints.get(param.name, str))
        if param.default is inspect.Parameter.empty:
            required.append(param.name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _annotation_schema(annotation: Any) -> dict[str, Any]:
    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin in (Union, types.UnionType):
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1:
            return _annotation_schema(members[0])
        return {"anyOf": [_annotation_schema(arg) for arg in members]}

    if origin is Literal:
        return {"type": _PYTHON_TYPES.get(type(args[0]), "string"), "enum": list(args)}

    base = origin or annotation
    kind = _PYTHON_TYPES.get(base) if isinstance(base, type) else None
    if kind is None:
        return {"type": "string"}

    schema: dict[str, Any] = {"type": kind}
    if kind == "array" and args:
        schema["items"] = _annotation_schema(args[0])
    return schema
