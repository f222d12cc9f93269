"""
HTTP response triple and body normalization.
"""

import json
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

JSON_HEADERS = {"Content-Type": "application/json"}


class HTTPResponse(NamedTuple):
    """
    A ``(status, headers, body)`` triple.

    ``body`` is a list of text chunks once normalized; it unpacks like a
    plain tuple so response handlers can write
    ``status, headers, body = response``.
    """

    status: int
    headers: Dict[str, str]
    body: List[str]

    def text(self) -> str:
        return "".join(self.body)


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def normalize_body(body: Any) -> List[str]:
    """
    Normalize a transport-supplied body into a list of text chunks.

    - None becomes an empty list
    - a single string (or bytes) becomes a one-element list
    - any other iterable (list, tuple, generator) has None elements removed,
      the rest converted to text
    - a mapping becomes its compact JSON text
    - anything else becomes ``str(value)``

    Args:
        body: Body as returned by a transport

    Returns:
        List of text chunks
    """
    if body is None:
        return []
    if isinstance(body, (str, bytes, bytearray, Mapping)):
        return [_to_text(body)]
    if isinstance(body, Iterable):
        return [_to_text(chunk) for chunk in body if chunk is not None]
    return [_to_text(body)]


def normalize_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    if not headers:
        return {}
    return {str(key): str(value) for key, value in dict(headers).items()}


def json_response(status: int, payload: Any, headers: Optional[Mapping[str, str]] = None) -> HTTPResponse:
    merged = dict(JSON_HEADERS)
    if headers:
        merged.update(headers)
    return HTTPResponse(status, merged, [json.dumps(payload, separators=(",", ":"))])


def error_response(status: int, message: str) -> HTTPResponse:
    """Build a JSON error response ``{"error": message}``."""
    return json_response(status, {"error": message})
