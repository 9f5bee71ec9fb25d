"""
REST API Routes for Media Controller.

- POST /play, /pause, /toggle: playback
- POST /next, /previous: track navigation
- POST /seek_forward, /seek_backward: relative seek
- POST /volume_up, /volume_down: system mixer
- GET /status: last known state and the targeted player
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter

from media_controller.dispatcher import Action

if TYPE_CHECKING:
    from fastapi import FastAPI

    from media_controller.dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)


def register_api_routes(app: FastAPI, dispatcher: CommandDispatcher) -> None:
    """
    Register API routes with the FastAPI app.

    Args:
        app: FastAPI application instance
        dispatcher: CommandDispatcher the routes delegate to
    """
    router = APIRouter(tags=["api"])

    # =========================================================================
    # Playback
    # =========================================================================

    @router.post("/play")
    async def play() -> dict[str, Any]:
        """Tell the targeted player to play."""
        return (await dispatcher.dispatch(Action.PLAY)).to_dict()

    @router.post("/pause")
    async def pause() -> dict[str, Any]:
        """Tell the targeted player to pause."""
        return (await dispatcher.dispatch(Action.PAUSE)).to_dict()

    @router.post("/toggle")
    async def toggle() -> dict[str, Any]:
        """Toggle play/pause on the targeted player."""
        return (await dispatcher.dispatch(Action.TOGGLE)).to_dict()

    # =========================================================================
    # Navigation & Seeking
    # =========================================================================

    @router.post("/next")
    async def next_track() -> dict[str, Any]:
        return (await dispatcher.dispatch(Action.NEXT)).to_dict()

    @router.post("/previous")
    async def previous_track() -> dict[str, Any]:
        return (await dispatcher.dispatch(Action.PREVIOUS)).to_dict()

    @router.post("/seek_forward")
    async def seek_forward() -> dict[str, Any]:
        return (await dispatcher.dispatch(Action.SEEK_FORWARD)).to_dict()

    @router.post("/seek_backward")
    async def seek_backward() -> dict[str, Any]:
        return (await dispatcher.dispatch(Action.SEEK_BACKWARD)).to_dict()

    # =========================================================================
    # Volume
    # =========================================================================

    @router.post("/volume_up")
    async def volume_up() -> dict[str, Any]:
        """Raise the system volume by the configured step."""
        return (await dispatcher.dispatch(Action.VOLUME_UP)).to_dict()

    @router.post("/volume_down")
    async def volume_down() -> dict[str, Any]:
        """Lower the system volume by the configured step."""
        return (await dispatcher.dispatch(Action.VOLUME_DOWN)).to_dict()

    # =========================================================================
    # Status
    # =========================================================================

    @router.get("/status")
    async def status() -> dict[str, Any]:
        """Report our playback state, metadata and the targeted player."""
        return (await dispatcher.status()).to_dict()

    app.include_router(router)
