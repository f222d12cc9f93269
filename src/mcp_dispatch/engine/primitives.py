"""
MCP Primitives

Descriptor types for the tools, prompts and resources an engine exposes.
Each descriptor knows how to render itself for the corresponding ``*/list``
method through ``to_json()``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


def text_content(text: str) -> Dict[str, Any]:
    """Build a text content block."""
    return {"type": "text", "text": text}


def _default_input_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass
class ToolResponse:
    """Result of a tool invocation."""

    content: List[Dict[str, Any]] = field(default_factory=list)
    is_error: bool = False
    structured_content: Optional[Dict[str, Any]] = None

    def to_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"content": self.content, "isError": self.is_error}
        if self.structured_content is not None:
            result["structuredContent"] = self.structured_content
        return result

    @classmethod
    def coerce(cls, value: Any) -> "ToolResponse":
        """
        Convert a tool handler's return value into a ToolResponse.

        Strings become a single text block, dictionaries carrying a
        ``content`` key are taken as already formatted, and anything else is
        rendered as JSON text.

        Args:
            value: Raw return value from the tool handler

        Returns:
            ToolResponse wrapping the value
        """
        if isinstance(value, ToolResponse):
            return value
        if value is None:
            return cls()
        if isinstance(value, str):
            return cls(content=[text_content(value)])
        if isinstance(value, dict) and "content" in value:
            return cls(
                content=list(value["content"]),
                is_error=bool(value.get("isError", False)),
                structured_content=value.get("structuredContent"),
            )
        return cls(content=[text_content(json.dumps(value, default=str))])


@dataclass
class Tool:
    """
    A callable tool exposed through ``tools/list`` and ``tools/call``.

    The handler receives the call arguments as keyword arguments. Handlers
    that declare a ``server_context`` parameter (or ``**kwargs``) also
    receive the per-request context.
    """

    name: str
    handler: Callable[..., Any]
    description: str = ""
    input_schema: Dict[str, Any] = field(default_factory=_default_input_schema)
    annotations: Optional[Dict[str, Any]] = None

    def to_json(self) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }
        if self.annotations:
            result["annotations"] = self.annotations
        return result


def tool(
    name: Optional[str] = None,
    description: Optional[str] = None,
    input_schema: Optional[Dict[str, Any]] = None,
) -> Callable[[Callable[..., Any]], Tool]:
    """
    Decorator turning a function into a Tool.

    The tool name defaults to the function name and the description to the
    first line of its docstring.
    """

    def decorator(func: Callable[..., Any]) -> Tool:
        doc = (func.__doc__ or "").strip().splitlines()
        return Tool(
            name=name or func.__name__,
            handler=func,
            description=description if description is not None else (doc[0] if doc else ""),
            input_schema=input_schema or _default_input_schema(),
        )

    return decorator


@dataclass
class PromptArgument:
    name: str
    description: str = ""
    required: bool = False

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "required": self.required,
        }


@dataclass
class PromptMessage:
    role: str
    content: Dict[str, Any]

    def to_json(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class PromptResult:
    messages: List[PromptMessage] = field(default_factory=list)
    description: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "messages": [message.to_json() for message in self.messages]
        }
        if self.description is not None:
            result["description"] = self.description
        return result


@dataclass
class Prompt:
    """
    A prompt template exposed through ``prompts/list`` and ``prompts/get``.

    The template is called with the argument dictionary and, when it
    accepts one, a ``server_context`` keyword argument. It must return a
    PromptResult.
    """

    name: str
    template: Callable[..., PromptResult]
    description: str = ""
    arguments: List[PromptArgument] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [argument.to_json() for argument in self.arguments],
        }


@dataclass
class Resource:
    uri: str
    name: str
    description: str = ""
    mime_type: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        result = {"uri": self.uri, "name": self.name, "description": self.description}
        if self.mime_type:
            result["mimeType"] = self.mime_type
        return result
