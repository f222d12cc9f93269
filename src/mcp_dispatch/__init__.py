"""
MCP Dispatch - HTTP adapter for Model Context Protocol engines

This package puts an embeddable MCP engine behind an HTTP endpoint. Each
request is authenticated, given a per-request context, handed to a fresh
engine (directly or through a pluggable transport) and answered with a
well-formed JSON response.
"""

__version__ = "0.1.0"
__description__ = "HTTP adapter for Model Context Protocol engines"

from .config import Catalog, Configuration, Settings, configure
from .dispatcher import Dispatcher
from .engine import (
    McpEngine,
    Prompt,
    PromptArgument,
    PromptMessage,
    PromptResult,
    Resource,
    Tool,
    ToolResponse,
    tool,
)
from .response import HTTPResponse
from .transport import Transport

__all__ = [
    "configure",
    "Configuration",
    "Catalog",
    "Settings",
    "Dispatcher",
    "HTTPResponse",
    "Transport",
    "McpEngine",
    "Tool",
    "ToolResponse",
    "Prompt",
    "PromptArgument",
    "PromptMessage",
    "PromptResult",
    "Resource",
    "tool",
    "__version__",
    "__description__",
]
