"""
MCP Protocol Engine

This module implements JSON-RPC 2.0 message handling for the Model Context
Protocol: envelope parsing and validation, method routing, and response
formatting for the tool, prompt and resource operations.

One engine instance is built per HTTP request from the catalogs and the
request context the dispatcher assembled. The engine itself holds no state
that outlives the request.

Supported methods:
- initialize, ping
- notifications/* (acknowledged, no response)
- tools/list, tools/call
- prompts/list, prompts/get
- resources/list, resources/read, resources/templates/list
"""

import inspect
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from .errors import InvalidJSONError, JsonRpcErrorCode, RequestHandlerError
from .primitives import Prompt, PromptResult, Resource, Tool, ToolResponse, text_content
from .schema import ArgumentValidator, SchemaValidationError

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
LATEST_PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")


class JsonRpcRequest(BaseModel):
    """
    JSON-RPC 2.0 request envelope.

    ``id`` is absent for notifications; the engine checks for the key on
    the raw message since a validated model cannot tell absent from null.
    """

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str = Field(..., pattern=r"^2\.0$")
    method: StrictStr = Field(..., min_length=1)
    params: Optional[Union[Dict[str, Any], List[Any]]] = None
    id: Optional[Union[StrictInt, StrictStr]] = None


def _accepts_context(func: Callable[..., Any]) -> bool:
    """Check whether a handler takes a ``server_context`` keyword argument."""
    try:
        parameters = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return False
    return any(
        p.name == "server_context" or p.kind is inspect.Parameter.VAR_KEYWORD
        for p in parameters
    )


def _index_by(items: Iterable[Any], attribute: str) -> Dict[str, Any]:
    indexed: Dict[str, Any] = {}
    for item in items:
        key = getattr(item, attribute)
        if key in indexed:
            logger.warning(f"Duplicate {attribute} '{key}' in catalog, last entry wins")
        indexed[key] = item
    return indexed


class McpEngine:
    """
    Handles MCP JSON-RPC messages for a single request.

    The engine can be driven directly through ``handle_json`` or handed to a
    transport, which then decides how the HTTP exchange maps onto
    ``handle``.
    """

    # Engines that cannot be driven by a transport set this to False; the
    # dispatcher then always uses handle_json.
    supports_transport = True

    def __init__(
        self,
        name: str = "mcp_server",
        version: str = "0.1.0",
        tools: Optional[Iterable[Tool]] = None,
        prompts: Optional[Iterable[Prompt]] = None,
        resources: Optional[Iterable[Resource]] = None,
        server_context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the engine.

        Args:
            name: Server name reported by ``initialize``
            version: Server version reported by ``initialize``
            tools: Tools available to this request
            prompts: Prompts available to this request
            resources: Resources available to this request
            server_context: Per-request context passed to handlers
        """
        self.name = name
        self.version = version
        self.tools = _index_by(tools or [], "name")
        self.prompts = _index_by(prompts or [], "name")
        self.resources = list(resources or [])
        self.server_context = server_context if server_context is not None else {}
        self.transport = None
        self._resources_read_handler: Optional[Callable[..., Any]] = None
        self._validator = ArgumentValidator()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "initialize": self._handle_initialize,
            "ping": self._handle_ping,
            "tools/list": self._handle_list_tools,
            "tools/call": self._handle_call_tool,
            "prompts/list": self._handle_list_prompts,
            "prompts/get": self._handle_get_prompt,
            "resources/list": self._handle_list_resources,
            "resources/read": self._handle_read_resource,
            "resources/templates/list": self._handle_list_resource_templates,
        }

    def resources_read_handler(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Register the handler that serves ``resources/read`` calls."""
        self._resources_read_handler = handler
        return handler

    def handle_json(self, body: Union[str, bytes, None]) -> Optional[str]:
        """
        Handle a raw JSON-RPC request body.

        Args:
            body: Raw request body (a single request or a batch)

        Returns:
            JSON text of the response, or None when the body only carried
            notifications

        Raises:
            InvalidJSONError: If the body is empty or not valid JSON
        """
        message = self._parse_body(body)

        if isinstance(message, list):
            if not message:
                response: Any = self._error_response(
                    None, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request: empty batch"
                )
            else:
                replies = [r for r in (self.handle(m) for m in message) if r is not None]
                response = replies or None
        else:
            response = self.handle(message)

        if response is None:
            return None
        return json.dumps(response, separators=(",", ":"), default=str)

    def _parse_body(self, body: Union[str, bytes, None]) -> Any:
        if isinstance(body, (bytes, bytearray)):
            try:
                body = bytes(body).decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidJSONError(f"Request body is not valid UTF-8: {e}")

        if body is None or not body.strip():
            raise InvalidJSONError("Request body is empty")

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise InvalidJSONError(f"Invalid JSON: {e}")

    def handle(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one decoded JSON-RPC message.

        Args:
            message: Decoded JSON-RPC request object

        Returns:
            Response envelope, or None for notifications
        """
        if not isinstance(message, dict):
            return self._error_response(
                None, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request"
            )

        is_notification = "id" not in message
        raw_id = message.get("id")
        request_id = raw_id if isinstance(raw_id, (int, str)) and not isinstance(raw_id, bool) else None

        try:
            request = JsonRpcRequest.model_validate(message)
        except ValidationError as e:
            logger.warning(f"Invalid JSON-RPC envelope: {e.error_count()} error(s)")
            return self._error_response(
                request_id,
                JsonRpcErrorCode.INVALID_REQUEST,
                "Invalid Request",
                data=[err["msg"] for err in e.errors()],
            )

        logger.debug(f"Handling MCP request: {request.method}")

        if request.method.startswith("notifications/"):
            return None

        handler = self._handlers.get(request.method)
        if handler is None:
            if is_notification:
                return None
            logger.warning(f"Unsupported MCP method: {request.method}")
            return self._error_response(
                request.id,
                JsonRpcErrorCode.METHOD_NOT_FOUND,
                f"Method not found: {request.method}",
            )

        params = request.params if request.params is not None else {}
        try:
            if not isinstance(params, dict):
                raise RequestHandlerError(
                    JsonRpcErrorCode.INVALID_PARAMS, "params must be an object"
                )
            result = handler(params)
        except RequestHandlerError as e:
            if is_notification:
                return None
            return {"jsonrpc": JSONRPC_VERSION, "id": request.id, "error": e.to_json()}
        except Exception as e:
            logger.error(f"Request handling failed: {e}", exc_info=True)
            if is_notification:
                return None
            return self._error_response(
                request.id, JsonRpcErrorCode.INTERNAL_ERROR, f"Internal error: {e}"
            )

        if is_notification:
            return None
        return {"jsonrpc": JSONRPC_VERSION, "id": request.id, "result": result}

    def _error_response(
        self,
        request_id: Optional[Union[int, str]],
        code: JsonRpcErrorCode,
        message: str,
        data: Optional[Any] = None,
    ) -> Dict[str, Any]:
        error = RequestHandlerError(code, message, data)
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_json()}

    def _call_with_context(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        if _accepts_context(func):
            kwargs["server_context"] = self.server_context
        return func(*args, **kwargs)

    def _handle_initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        protocol_version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        )
        return {
            "protocolVersion": protocol_version,
            "capabilities": {
                "tools": {"listChanged": False},
                "prompts": {"listChanged": False},
                "resources": {"listChanged": False, "subscribe": False},
            },
            "serverInfo": {"name": self.name, "version": self.version},
        }

    def _handle_ping(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def _handle_list_tools(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": [t.to_json() for t in self.tools.values()]}

    def _handle_call_tool(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Handle the tools/call operation.

        Arguments are validated against the tool's input schema before the
        handler runs. A handler that raises yields an ``isError`` result
        rather than a JSON-RPC error, so the client sees the failure as tool
        output.
        """
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise RequestHandlerError(
                JsonRpcErrorCode.INVALID_PARAMS, "Tool name is required for tools/call"
            )

        tool = self.tools.get(name)
        if tool is None:
            raise RequestHandlerError(
                JsonRpcErrorCode.INVALID_PARAMS, f"Tool not found: {name}"
            )

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise RequestHandlerError(
                JsonRpcErrorCode.INVALID_PARAMS,
                f"arguments must be an object, got {type(arguments).__name__}",
            )

        try:
            self._validator.validate_args(arguments, tool.input_schema, name)
        except SchemaValidationError as e:
            raise RequestHandlerError(JsonRpcErrorCode.INVALID_PARAMS, str(e))

        logger.debug(f"Calling tool: {name}")
        try:
            result = self._call_with_context(tool.handler, **arguments)
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}", exc_info=True)
            return ToolResponse(
                content=[text_content(f"Tool {name} failed: {e}")], is_error=True
            ).to_json()

        return ToolResponse.coerce(result).to_json()

    def _handle_list_prompts(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"prompts": [p.to_json() for p in self.prompts.values()]}

    def _handle_get_prompt(self, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        prompt = self.prompts.get(name) if isinstance(name, str) else None
        if prompt is None:
            raise RequestHandlerError(
                JsonRpcErrorCode.INVALID_PARAMS, f"Prompt not found: {name}"
            )

        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise RequestHandlerError(
                JsonRpcErrorCode.INVALID_PARAMS, "arguments must be an object"
            )

        missing = [a.name for a in prompt.arguments if a.required and a.name not in arguments]
        if missing:
            raise RequestHandlerError(
                JsonRpcErrorCode.INVALID_PARAMS,
                f"Missing required arguments: {', '.join(missing)}",
            )

        result = self._call_with_context(prompt.template, arguments)
        if isinstance(result, PromptResult):
            return result.to_json()
        if isinstance(result, dict):
            return result
        raise RequestHandlerError(
            JsonRpcErrorCode.INTERNAL_ERROR,
            f"Prompt {name} returned {type(result).__name__}, expected PromptResult",
        )

    def _handle_list_resources(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"resources": [r.to_json() for r in self.resources]}

    def _handle_list_resource_templates(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"resourceTemplates": []}

    def _handle_read_resource(self, params: Dict[str, Any]) -> Dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str) or not uri:
            raise RequestHandlerError(
                JsonRpcErrorCode.INVALID_PARAMS, "uri is required for resources/read"
            )

        if self._resources_read_handler is None:
            return {"contents": []}

        contents = self._call_with_context(self._resources_read_handler, params)
        return {"contents": list(contents or [])}
