"""
Transport strategy interface.

A transport mediates between the raw HTTP request and the engine and
produces a full ``(status, headers, body)`` triple. Transports are
third-party pluggable, so the dispatcher normalizes whatever body shape
they return.
"""

import logging
from typing import Any, Awaitable, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

logger = logging.getLogger(__name__)

TransportResult = Tuple[int, Optional[Mapping[str, str]], Any]


@runtime_checkable
class Transport(Protocol):
    """Interface a transport class must implement."""

    def __init__(self, server: Any) -> None: ...

    def handle_request(
        self, request: Any
    ) -> Union[TransportResult, Awaitable[TransportResult]]: ...


def supports_transport(transport_class: Optional[type], engine_class: type) -> bool:
    """
    Decide once whether requests can be routed through a transport.

    Both sides must opt in: the transport class must define a callable
    ``handle_request`` and the engine class must advertise
    ``supports_transport``. Otherwise the dispatcher uses direct JSON-RPC
    handling.

    Args:
        transport_class: Configured transport class, if any
        engine_class: Engine class instantiated per request

    Returns:
        True if transport-mediated handling is available
    """
    if transport_class is None:
        return False

    if not callable(getattr(transport_class, "handle_request", None)):
        logger.warning(
            f"Transport {getattr(transport_class, '__name__', transport_class)!s} "
            f"has no handle_request; falling back to direct JSON-RPC handling"
        )
        return False

    if not getattr(engine_class, "supports_transport", False):
        logger.warning(
            f"Engine {engine_class.__name__} does not support transports; "
            f"falling back to direct JSON-RPC handling"
        )
        return False

    return True
