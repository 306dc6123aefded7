"""Provider-specific transpiler implementations."""

from mcplink.tools.transpilers.anthropic import AnthropicTranspiler
from mcplink.tools.transpilers.gemini import GeminiTranspiler
from mcplink.tools.transpilers.mcp import MCPTranspiler
from mcplink.tools.transpilers.openai import OpenAITranspiler

__all__ = ["AnthropicTranspiler", "GeminiTranspiler", "MCPTranspiler", "OpenAITranspiler"]
