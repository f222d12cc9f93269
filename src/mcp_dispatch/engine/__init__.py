"""
MCP Engine

The protocol engine the dispatcher drives: JSON-RPC envelope handling,
method routing and the tool, prompt and resource descriptors it serves.
"""

from .errors import EngineError, InvalidJSONError, JsonRpcErrorCode, RequestHandlerError
from .primitives import (
    Prompt,
    PromptArgument,
    PromptMessage,
    PromptResult,
    Resource,
    Tool,
    ToolResponse,
    text_content,
    tool,
)
from .server import McpEngine

__all__ = [
    "McpEngine",
    "EngineError",
    "InvalidJSONError",
    "JsonRpcErrorCode",
    "RequestHandlerError",
    "Tool",
    "ToolResponse",
    "Prompt",
    "PromptArgument",
    "PromptMessage",
    "PromptResult",
    "Resource",
    "text_content",
    "tool",
]
