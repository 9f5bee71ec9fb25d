"""
Media Controller Web Layer.

This package provides the authenticated REST API:

- WebServer: FastAPI application with all routes
- auth: bearer-token gate applied to every route
"""

from media_controller.web.server import WebServer

__all__ = [
    "WebServer",
]
