"""
Player management for Media Controller.

This package holds the player data model, the shared playback state and
the resolver that picks which external player to control.
"""

from media_controller.player.models import (
    PlaybackStatus,
    PlayerCommand,
    PlayerIdentity,
    TrackMetadata,
)
from media_controller.player.resolver import PlayerResolver
from media_controller.player.state import StateSnapshot, StateStore

__all__ = [
    "PlaybackStatus",
    "PlayerCommand",
    "PlayerIdentity",
    "PlayerResolver",
    "StateSnapshot",
    "StateStore",
    "TrackMetadata",
]
