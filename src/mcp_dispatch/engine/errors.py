"""Error types raised by the MCP engine."""

from enum import IntEnum
from typing import Any, Optional


class JsonRpcErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class EngineError(Exception):
    """Base class for engine errors."""

    pass


class InvalidJSONError(EngineError, ValueError):
    """Raised when a request body cannot be decoded as JSON."""

    pass


class RequestHandlerError(EngineError):
    """
    Raised by a method handler to produce a JSON-RPC error response.

    Args:
        code: JSON-RPC error code
        message: Human readable error message
        data: Optional structured error data
    """

    def __init__(
        self, code: JsonRpcErrorCode, message: str, data: Optional[Any] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_json(self) -> dict:
        error = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error
