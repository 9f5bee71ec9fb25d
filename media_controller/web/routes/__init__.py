"""
Web Routes Package.

- api: REST control endpoints
"""

from media_controller.web.routes.api import register_api_routes

__all__ = [
    "register_api_routes",
]
