"""
Request Dispatcher

The single entry point invoked once per HTTP request. It runs the dispatch
pipeline against one Configuration snapshot:

1. authentication gate (401)
2. method gate when POST-only is enforced (405)
3. context assembly
4. engine instantiation from the resolved catalogs
5. invocation through the transport, or direct JSON-RPC handling
6. body normalization
7. response post-processing

Every failure, including failures raised by extension points, is turned
into a JSON error response. ``dispatch`` always returns an HTTPResponse.
"""

import inspect
import json
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional

from starlette.concurrency import run_in_threadpool

from .config import Configuration
from .engine import InvalidJSONError
from .errors import (
    AuthorizationDenied,
    BodyParseFailure,
    DispatchError,
    EngineFailure,
    MethodNotAllowed,
    NoResponseError,
)
from .response import JSON_HEADERS, HTTPResponse, normalize_body, normalize_headers

logger = logging.getLogger(__name__)


async def call_extension(func: Callable[..., Any], *args: Any) -> Any:
    """
    Invoke an extension-point callable.

    Coroutine functions are awaited on the event loop; plain callables run
    in the thread pool so blocking hooks do not stall other requests.
    """
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    result = await run_in_threadpool(func, *args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def read_body(request: Any) -> bytes:
    """
    Read the full request body.

    Starlette caches ``Request.body()``, so a body already consumed by
    earlier code is returned again. Requests exposing a file-like body are
    rewound before reading when the stream supports it.
    """
    body = request.body
    if callable(body):
        body = body()
        if inspect.isawaitable(body):
            body = await body

    if hasattr(body, "read"):
        seekable = getattr(body, "seekable", None)
        if seekable is not None and seekable():
            body.seek(0)
        body = body.read()

    return body if body is not None else b""


class Dispatcher:
    """
    Dispatches HTTP requests to the MCP engine.

    Args:
        config: Configuration built during setup; never mutated afterwards
    """

    def __init__(self, config: Configuration):
        self.config = config

    async def __call__(self, request: Any) -> HTTPResponse:
        return await self.dispatch(request)

    async def dispatch(self, request: Any) -> HTTPResponse:
        """
        Dispatch one HTTP request.

        Args:
            request: Inbound request (a Starlette Request in the HTTP app)

        Returns:
            HTTPResponse triple, never None
        """
        start_time = time.time()

        try:
            await self._authenticate(request)
            self._check_method(request)
            response = await self._invoke(request)
            response = await self._post_process(response, request)
        except DispatchError as e:
            response = e.to_response()
        except Exception as e:
            logger.error(f"Dispatch failed: {e}", exc_info=True)
            response = EngineFailure(str(e)).to_response()

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"{getattr(request, 'method', '?')} dispatched with status "
            f"{response.status} in {elapsed_ms}ms"
        )
        return response

    async def _authenticate(self, request: Any) -> None:
        predicate = self.config.authenticate_with
        if predicate is None:
            return
        if not await call_extension(predicate, request):
            logger.warning("Request rejected by authentication predicate")
            raise AuthorizationDenied()

    def _check_method(self, request: Any) -> None:
        if self.config.post_only and str(request.method).upper() != "POST":
            raise MethodNotAllowed()

    async def _invoke(self, request: Any) -> HTTPResponse:
        """Run context assembly and the engine, containing every failure."""
        try:
            response = await self._handle(request)
            if response is None:
                raise NoResponseError()
        except DispatchError as e:
            return e.to_response()
        except Exception as e:
            logger.error(f"Engine invocation failed: {e}", exc_info=True)
            return EngineFailure(str(e)).to_response()
        return response

    async def _handle(self, request: Any) -> Optional[HTTPResponse]:
        context = await self.build_context(request)
        engine = await run_in_threadpool(self.build_engine, context)

        if self.config.transport_supported:
            return await self._handle_with_transport(engine, request)
        if self.config.direct_json:
            return await self._handle_json(engine, request)
        return None

    async def build_context(self, request: Any) -> Dict[str, Any]:
        """
        Assemble the per-request server context.

        The context always holds ``request``; entries returned by the
        configured context builder are merged on top. A builder returning
        anything other than a mapping contributes nothing.
        """
        context: Dict[str, Any] = {"request": request}

        builder = self.config.build_context_with
        if builder is not None:
            custom = await call_extension(builder, request)
            if isinstance(custom, Mapping):
                context.update(custom)
            elif custom is not None:
                logger.debug(
                    f"Ignoring context builder result of type {type(custom).__name__}"
                )

        return context

    def build_engine(self, context: Dict[str, Any]) -> Any:
        """Instantiate the engine for one request."""
        config = self.config
        engine = config.engine_class(
            name=config.server_name,
            version=config.server_version,
            tools=config.tools.resolve(),
            prompts=config.prompts.resolve(),
            resources=config.resources.resolve(),
            server_context=context,
        )

        if config.resources_read_handler is not None:
            engine.resources_read_handler(config.resources_read_handler)

        return engine

    async def _handle_with_transport(self, engine: Any, request: Any) -> HTTPResponse:
        transport_class = self.config.transport
        try:
            transport = transport_class(engine)
            engine.transport = transport
            status, headers, body = await call_extension(transport.handle_request, request)
        except Exception as e:
            logger.error(
                f"Transport {getattr(transport_class, '__name__', transport_class)} failed: {e}",
                exc_info=True,
            )
            raise EngineFailure(str(e))

        return HTTPResponse(int(status), normalize_headers(headers), normalize_body(body))

    async def _handle_json(self, engine: Any, request: Any) -> HTTPResponse:
        body = await read_body(request)

        try:
            payload = await run_in_threadpool(engine.handle_json, body)
        except (InvalidJSONError, json.JSONDecodeError) as e:
            logger.warning(f"Rejected request body: {e}")
            raise BodyParseFailure()
        except Exception as e:
            logger.error(f"Engine failed to handle request: {e}", exc_info=True)
            raise EngineFailure(str(e))

        if payload is None:
            # Notifications only; nothing to return
            return HTTPResponse(202, {}, [])
        return HTTPResponse(200, dict(JSON_HEADERS), normalize_body(payload))

    async def _post_process(self, response: HTTPResponse, request: Any) -> HTTPResponse:
        """
        Apply the configured response handler.

        The handler receives a copy, so returning None leaves the original
        response untouched.
        """
        handler = self.config.response_handler
        if handler is None:
            return response

        candidate = HTTPResponse(response.status, dict(response.headers), list(response.body))
        replacement = await call_extension(handler, candidate, request)
        if not replacement:
            return response
        if isinstance(replacement, HTTPResponse):
            return replacement

        status, headers, body = replacement
        return HTTPResponse(status, headers, body)
