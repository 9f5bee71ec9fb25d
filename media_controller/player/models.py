"""
Player data model.

Plain value types shared by the resolver, the state store, the bus adapters
and the web layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# Prefix every MPRIS player's well-known bus name starts with
MPRIS_BUS_PREFIX = "org.mpris.MediaPlayer2."


class PlaybackStatus(Enum):
    """Playback status as tracked by this service (MPRIS wire strings)."""

    PLAYING = "Playing"
    PAUSED = "Paused"

    def flipped(self) -> PlaybackStatus:
        """Return the opposite status."""
        return PlaybackStatus.PAUSED if self is PlaybackStatus.PLAYING else PlaybackStatus.PLAYING


class PlayerCommand(Enum):
    """Argument-free MPRIS Player methods we issue."""

    PLAY = "Play"
    PAUSE = "Pause"
    PLAY_PAUSE = "PlayPause"
    NEXT = "Next"
    PREVIOUS = "Previous"


def _clean(value: str | None) -> str | None:
    """Normalise empty/whitespace strings to None (unknown)."""
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class TrackMetadata:
    """
    Metadata for the current track.

    A field that is None is unknown. Empty strings are never stored.
    """

    title: str | None = None
    artist: str | None = None
    album: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "title", _clean(self.title))
        object.__setattr__(self, "artist", _clean(self.artist))
        object.__setattr__(self, "album", _clean(self.album))

    @classmethod
    def from_mpris(cls, metadata: dict[str, Any]) -> TrackMetadata:
        """
        Build from an unwrapped MPRIS ``Metadata`` dict.

        ``xesam:artist`` is a list of strings in MPRIS; multiple artists
        are joined with ", ".
        """
        artist = metadata.get("xesam:artist")
        if isinstance(artist, (list, tuple)):
            artist = ", ".join(a for a in (str(x).strip() for x in artist) if a)

        def _str(key: str) -> str | None:
            value = metadata.get(key)
            return str(value) if value is not None else None

        return cls(
            title=_str("xesam:title"),
            artist=str(artist) if artist is not None else None,
            album=_str("xesam:album"),
        )

    def to_dict(self) -> dict[str, str | None]:
        return {"title": self.title, "artist": self.artist, "album": self.album}


@dataclass(frozen=True)
class PlayerIdentity:
    """A player discovered on the bus. Valid only for the current dispatch."""

    bus_name: str
    identity: str = ""

    @property
    def display_name(self) -> str:
        """Human-readable name, falling back to the bus-name suffix."""
        if self.identity:
            return self.identity
        return self.bus_name.removeprefix(MPRIS_BUS_PREFIX)

    def matches(self, needle: str) -> bool:
        """Case-insensitive containment test against identity and bus-name suffix."""
        needle = needle.lower()
        suffix = self.bus_name.removeprefix(MPRIS_BUS_PREFIX).lower()
        return needle in self.identity.lower() or needle in suffix

    def __str__(self) -> str:
        return f"{self.display_name} ({self.bus_name})"
