"""
HTTP Application for MCP Dispatch

This module builds the FastAPI application that exposes the dispatcher over
HTTP.

Key Features:
- Single MCP endpoint accepting every HTTP method; the dispatcher, not the
  router, decides which methods are allowed
- /health endpoint reporting server identity, dispatch mode and catalog sizes
- Global exception handler so no request ends without a JSON response
- Startup and shutdown logging through the application lifespan
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from . import __version__
from .config import Configuration, Settings
from .dispatcher import Dispatcher
from .response import HTTPResponse, normalize_body

logger = logging.getLogger(__name__)

ENDPOINT_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


class HealthResponse(BaseModel):
    """Health check response for the dispatch service."""

    status: str = Field(..., description="Overall health status: ok or degraded")
    server_name: str = Field(..., description="Server identifier")
    version: str = Field(..., description="Server version")
    mode: str = Field(..., description="Dispatch mode: transport, direct or unavailable")
    tools_available: int = Field(..., description="Number of tools in the catalog")
    prompts_available: int = Field(..., description="Number of prompts in the catalog")
    resources_available: int = Field(..., description="Number of resources in the catalog")
    uptime_seconds: Optional[int] = Field(None, description="Server uptime in seconds")


def to_starlette_response(response: HTTPResponse) -> Response:
    """
    Convert an HTTPResponse triple into a Starlette response.

    Content-Length is dropped from the headers since Starlette computes it
    from the rendered body.
    """
    status, headers, body = response
    headers = {
        key: value
        for key, value in dict(headers or {}).items()
        if key.lower() != "content-length"
    }
    return Response(
        content="".join(normalize_body(body)),
        status_code=int(status),
        headers=headers,
    )


def _catalog_size(catalog: Any) -> int:
    return len(catalog.resolve())


def create_app(config: Configuration, settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the FastAPI application serving the MCP endpoint.

    Args:
        config: Dispatcher configuration
        settings: Process settings; loaded from the environment when omitted

    Returns:
        FastAPI application
    """
    settings = settings or Settings.load_runtime_config()
    dispatcher = Dispatcher(config)
    start_time = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=== MCP Dispatch Starting ===")
        logger.info(f"Server: {config.server_name} v{config.server_version}")
        logger.info(f"Endpoint: {settings.endpoint_path} (mode: {config.mode})")
        logger.info(f"Authentication: {'enabled' if config.authenticate_with else 'disabled'}")
        logger.info(f"POST only: {config.post_only}")
        yield
        logger.info("MCP Dispatch shutting down")

    app = FastAPI(
        title="MCP Dispatch",
        description="HTTP adapter for Model Context Protocol engines",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    app.state.settings = settings

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """
        Report service health.

        Catalog providers are evaluated to count the available
        capabilities; a provider that raises degrades the status instead of
        failing the check.
        """
        status = "ok" if config.mode != "unavailable" else "degraded"
        counts = {}
        for name in ("tools", "prompts", "resources"):
            try:
                counts[name] = await run_in_threadpool(_catalog_size, getattr(config, name))
            except Exception as e:
                logger.warning(f"Health check could not resolve {name}: {e}")
                counts[name] = 0
                status = "degraded"

        return HealthResponse(
            status=status,
            server_name=config.server_name,
            version=config.server_version,
            mode=config.mode,
            tools_available=counts["tools"],
            prompts_available=counts["prompts"],
            resources_available=counts["resources"],
            uptime_seconds=int(time.time() - start_time),
        )

    async def mcp_endpoint(request: Request):
        """MCP endpoint; every request goes through the dispatcher."""
        response = await dispatcher.dispatch(request)
        return to_starlette_response(response)

    app.add_api_route(
        settings.endpoint_path,
        mcp_endpoint,
        methods=ENDPOINT_METHODS,
        include_in_schema=False,
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app
