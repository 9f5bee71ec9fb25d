"""
Shared State Store.

Holds the single ApplicationState of the process: the playback status and
track metadata we last set, plus the publisher they are mirrored to.

Thread-safety: all reads and writes go through one asyncio lock. Mutators
also push the new values to the publisher while holding the lock, so two
handlers can never publish contradictory values. Publisher updates are
in-memory and non-blocking; bus and subprocess calls must never be awaited
while the lock is held.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from media_controller.player.models import PlaybackStatus, TrackMetadata

logger = logging.getLogger(__name__)


class StatePublisher(Protocol):
    """Anything that mirrors our state outward (the MPRIS publisher)."""

    def set_status(self, status: PlaybackStatus) -> None: ...

    def set_metadata(self, metadata: TrackMetadata) -> None: ...


@dataclass(frozen=True)
class StateSnapshot:
    """Immutable, consistent view of the application state."""

    playback_status: PlaybackStatus
    metadata: TrackMetadata


class StateStore:
    """
    Single source of truth for last-known playback status and metadata.

    One instance per process, shared by reference with every request
    handler. Last writer wins.
    """

    def __init__(
        self,
        publisher: StatePublisher | None = None,
        *,
        playback_status: PlaybackStatus = PlaybackStatus.PAUSED,
        metadata: TrackMetadata | None = None,
    ) -> None:
        self._publisher = publisher
        self._playback_status = playback_status
        self._metadata = metadata or TrackMetadata()
        self._lock = asyncio.Lock()

    def _snapshot(self) -> StateSnapshot:
        return StateSnapshot(playback_status=self._playback_status, metadata=self._metadata)

    async def snapshot(self) -> StateSnapshot:
        """Return a consistent copy of the current state."""
        async with self._lock:
            return self._snapshot()

    async def set_playback_status(self, status: PlaybackStatus) -> StateSnapshot:
        """Set the playback status and publish it."""
        async with self._lock:
            self._playback_status = status
            if self._publisher is not None:
                self._publisher.set_status(status)
            return self._snapshot()

    async def toggle_playback_status(self) -> StateSnapshot:
        """
        Flip the playback status and publish it.

        The flip happens under the lock so concurrent toggles never lose
        an update.
        """
        async with self._lock:
            self._playback_status = self._playback_status.flipped()
            if self._publisher is not None:
                self._publisher.set_status(self._playback_status)
            return self._snapshot()

    async def set_metadata(self, metadata: TrackMetadata) -> StateSnapshot:
        """Replace the track metadata and publish it if it changed."""
        async with self._lock:
            if metadata != self._metadata:
                self._metadata = metadata
                if self._publisher is not None:
                    self._publisher.set_metadata(metadata)
                logger.debug("Metadata updated: %s", metadata)
            return self._snapshot()

    async def publish_all(self) -> None:
        """Push the full current state to the publisher (used at startup)."""
        async with self._lock:
            if self._publisher is not None:
                self._publisher.set_metadata(self._metadata)
                self._publisher.set_status(self._playback_status)
