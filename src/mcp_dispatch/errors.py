"""
Dispatcher error taxonomy.

Each error maps to one HTTP status. They are raised inside the dispatch
pipeline and converted to a response exactly once, at the top of
``Dispatcher.dispatch``.
"""

from typing import Optional

from .response import HTTPResponse, error_response


class DispatchError(Exception):
    """Base class for errors that terminate a dispatch with an HTTP status."""

    status = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> HTTPResponse:
        return error_response(self.status, self.message)


class AuthorizationDenied(DispatchError):
    """The authentication predicate refused the request."""

    status = 401
    default_message = "Unauthorized"


class MethodNotAllowed(DispatchError):
    status = 405
    default_message = "Method not allowed"


class BodyParseFailure(DispatchError):
    """The request body was empty or not valid JSON."""

    status = 400
    default_message = "Invalid JSON"


class EngineFailure(DispatchError):
    """The engine, a transport or an extension point raised."""

    status = 500


class NoResponseError(DispatchError):
    """No dispatch path produced a response."""

    status = 500
