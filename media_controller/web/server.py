"""
Web Server Module for Media Controller.

This module provides the WebServer class that creates and manages the
FastAPI application, installs the auth gate, registers the REST routes and
maps errors to HTTP responses:

- AuthError -> 401 ``unauthorized``
- UnsupportedCommandError -> 400 ``unsupported``
- ResolutionError -> 409 ``no_target``
- BackendCallError -> 502 ``backend_failed``
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from media_controller import __version__
from media_controller.errors import (
    AuthError,
    BackendCallError,
    ResolutionError,
    UnsupportedCommandError,
)
from media_controller.web.auth import make_auth_dependency
from media_controller.web.routes.api import register_api_routes

if TYPE_CHECKING:
    from media_controller.dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)


def _error(status_code: int, code: str, detail: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": code, "detail": detail},
        headers=headers,
    )


class WebServer:
    """
    FastAPI-based web server for Media Controller.

    Every route requires ``Authorization: Bearer <token>``.
    """

    def __init__(self, dispatcher: CommandDispatcher, api_token: str) -> None:
        """
        Initialize the WebServer.

        Args:
            dispatcher: CommandDispatcher all routes delegate to
            api_token: Secret bearer token required on every request
        """
        self.dispatcher = dispatcher

        # Create FastAPI app; the auth gate runs before every route
        self.app = FastAPI(
            title="Media Controller",
            description="REST bridge for MPRIS players and the system mixer",
            version=__version__,
            dependencies=[Depends(make_auth_dependency(api_token))],
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )

        # Server state
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._host = "0.0.0.0"
        self._port = 8080

        self._register_error_handlers()
        register_api_routes(self.app, dispatcher)

    def _register_error_handlers(self) -> None:
        """Map the error taxonomy to HTTP responses."""

        @self.app.exception_handler(AuthError)
        async def auth_error(request: Request, exc: AuthError) -> JSONResponse:
            logger.info("Rejected unauthorized request: %s %s", request.method, request.url.path)
            return _error(401, "unauthorized", str(exc), headers={"WWW-Authenticate": "Bearer"})

        @self.app.exception_handler(UnsupportedCommandError)
        async def unsupported(request: Request, exc: UnsupportedCommandError) -> JSONResponse:
            return _error(400, "unsupported", str(exc))

        @self.app.exception_handler(ResolutionError)
        async def no_target(request: Request, exc: ResolutionError) -> JSONResponse:
            return _error(409, "no_target", str(exc))

        @self.app.exception_handler(BackendCallError)
        async def backend_failed(request: Request, exc: BackendCallError) -> JSONResponse:
            return _error(502, "backend_failed", str(exc))

    async def start(self, host: str = "0.0.0.0", port: int = 8080) -> None:
        """
        Start the web server.

        Args:
            host: Host address to bind to
            port: Port to listen on
        """
        self._host = host
        self._port = port

        # Configure uvicorn
        config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)

        # Start server in background
        self._serve_task = asyncio.create_task(self._server.serve())

        logger.info("Web server started on http://%s:%d", host, port)

    async def stop(self) -> None:
        """Stop the web server."""
        if self._server is not None:
            self._server.should_exit = True
            self._server = None

        if self._serve_task is not None:
            await self._serve_task
            self._serve_task = None

        logger.info("Web server stopped")

    @property
    def port(self) -> int:
        """Get the server port."""
        return self._port

    @property
    def host(self) -> str:
        """Get the server host."""
        return self._host
