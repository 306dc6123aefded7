"""Tool/schema conversion layer — provider-neutral tools and their wire forms."""

from mcplink.tools.models import ToolSpec
from mcplink.tools.schema import schema_from_signature, tool, type_tree_to_schema
from mcplink.tools.transpiler import Transpiler, get_transpiler, to_provider_tools

__all__ = [
    "ToolSpec",
    "Transpiler",
    "get_transpiler",
    "schema_from_signature",
    "to_provider_tools",
    "tool",
    "type_tree_to_schema",
]
