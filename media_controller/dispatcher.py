"""
Command Dispatcher.

Invoked once per HTTP request (and for method calls made on our published
player). Each operation resolves the target player if it needs one, calls
the bus client or the mixer, updates the state store only after the
backend call succeeded, and returns a CommandResult.

Failures propagate as typed errors to the request boundary:
- ResolutionError: no external player to control
- UnsupportedCommandError: the player cannot do what was asked
- BackendCallError: the bus call or mixer invocation failed

NOTE ON TOGGLE:
toggle issues PlayPause and flips our own status without asking the real
player what it did. This is an approximation: if the player was changed
behind our back, our status is inverted until the next play/pause.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from media_controller.errors import BackendCallError, ResolutionError, UnsupportedCommandError
from media_controller.player.models import (
    PlaybackStatus,
    PlayerCommand,
    PlayerIdentity,
    TrackMetadata,
)
from media_controller.player.resolver import PlayerResolver
from media_controller.player.state import StateStore

logger = logging.getLogger(__name__)

MICROSECONDS_PER_SECOND = 1_000_000


class Action(Enum):
    """REST actions, valued by their route name."""

    PLAY = "play"
    PAUSE = "pause"
    TOGGLE = "toggle"
    NEXT = "next"
    PREVIOUS = "previous"
    SEEK_FORWARD = "seek_forward"
    SEEK_BACKWARD = "seek_backward"
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"


class BusClient(Protocol):
    async def list_players(self) -> list[PlayerIdentity]: ...

    async def send_command(self, player: PlayerIdentity, command: PlayerCommand) -> None: ...

    async def seek(self, player: PlayerIdentity, offset_us: int) -> None: ...

    async def can_seek(self, player: PlayerIdentity) -> bool: ...

    async def query_metadata(self, player: PlayerIdentity) -> TrackMetadata: ...

    async def query_playback_status(self, player: PlayerIdentity) -> str: ...


class Mixer(Protocol):
    async def change_volume(self, delta: int) -> str: ...


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a successful dispatch."""

    action: Action
    message: str
    player: PlayerIdentity | None = None
    playback_status: PlaybackStatus | None = None
    metadata: TrackMetadata | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "action": self.action.value,
            "message": self.message,
            "player": self.player.display_name if self.player else None,
        }
        if self.playback_status is not None:
            result["playback_status"] = self.playback_status.value
        if self.metadata is not None:
            result["metadata"] = self.metadata.to_dict()
        return result


@dataclass(frozen=True)
class StatusReport:
    """Response for the read-only status query."""

    playback_status: PlaybackStatus
    metadata: TrackMetadata
    targeted_player: PlayerIdentity | None = None
    targeted_player_status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "playback_status": self.playback_status.value,
            "metadata": self.metadata.to_dict(),
            "targeted_player": self.targeted_player.display_name if self.targeted_player else None,
            "targeted_player_status": self.targeted_player_status,
        }


class CommandDispatcher:
    """
    Routes actions to the bus client or the mixer and keeps state in sync.

    The resolver is consulted on every player-directed action; the result
    is never cached.
    """

    def __init__(
        self,
        bus_client: BusClient,
        mixer: Mixer,
        state: StateStore,
        resolver: PlayerResolver,
        *,
        seek_seconds: int = 30,
        volume_step: int = 5,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            bus_client: MPRIS client used for player-directed actions.
            mixer: Mixer gateway used for volume actions.
            state: The process-wide state store.
            resolver: Player resolver, re-run per command.
            seek_seconds: Seek interval for seek_forward/seek_backward.
            volume_step: Percentage for volume_up/volume_down.
        """
        self._bus = bus_client
        self._mixer = mixer
        self._state = state
        self._resolver = resolver
        self.seek_seconds = seek_seconds
        self.volume_step = volume_step

        self._handlers: dict[Action, Callable[[], Awaitable[CommandResult]]] = {
            Action.PLAY: self.play,
            Action.PAUSE: self.pause,
            Action.TOGGLE: self.toggle,
            Action.NEXT: self.next_track,
            Action.PREVIOUS: self.previous_track,
            Action.SEEK_FORWARD: self.seek_forward,
            Action.SEEK_BACKWARD: self.seek_backward,
            Action.VOLUME_UP: self.volume_up,
            Action.VOLUME_DOWN: self.volume_down,
        }

    async def dispatch(self, action: Action) -> CommandResult:
        """Run the operation for a REST action."""
        try:
            return await self._handlers[action]()
        except ResolutionError as e:
            logger.warning("%s: %s", action.value, e)
            raise
        except BackendCallError as e:
            logger.warning("%s failed: %s", action.value, e)
            raise

    async def handle_bus_command(self, command: PlayerCommand | int) -> CommandResult:
        """
        Handle a method call made on our own published player.

        ``command`` is a PlayerCommand, or a signed seek offset in
        microseconds (direction only; the configured interval is used).
        """
        if isinstance(command, int):
            action = Action.SEEK_FORWARD if command >= 0 else Action.SEEK_BACKWARD
        else:
            action = {
                PlayerCommand.PLAY: Action.PLAY,
                PlayerCommand.PAUSE: Action.PAUSE,
                PlayerCommand.PLAY_PAUSE: Action.TOGGLE,
                PlayerCommand.NEXT: Action.NEXT,
                PlayerCommand.PREVIOUS: Action.PREVIOUS,
            }[command]
        return await self.dispatch(action)

    # -------------------------------------------------------------------------
    # Playback
    # -------------------------------------------------------------------------

    async def _set_playback(
        self, action: Action, command: PlayerCommand, status: PlaybackStatus
    ) -> CommandResult:
        player = await self._resolver.resolve()
        await self._bus.send_command(player, command)
        snapshot = await self._state.set_playback_status(status)
        return CommandResult(
            action=action,
            message=status.value.lower(),
            player=player,
            playback_status=snapshot.playback_status,
        )

    async def play(self) -> CommandResult:
        return await self._set_playback(Action.PLAY, PlayerCommand.PLAY, PlaybackStatus.PLAYING)

    async def pause(self) -> CommandResult:
        return await self._set_playback(Action.PAUSE, PlayerCommand.PAUSE, PlaybackStatus.PAUSED)

    async def toggle(self) -> CommandResult:
        """Issue PlayPause and flip our status (see module notes)."""
        player = await self._resolver.resolve()
        await self._bus.send_command(player, PlayerCommand.PLAY_PAUSE)
        snapshot = await self._state.toggle_playback_status()
        return CommandResult(
            action=Action.TOGGLE,
            message=snapshot.playback_status.value.lower(),
            player=player,
            playback_status=snapshot.playback_status,
        )

    # -------------------------------------------------------------------------
    # Track navigation
    # -------------------------------------------------------------------------

    async def _navigate(self, action: Action, command: PlayerCommand, message: str) -> CommandResult:
        player = await self._resolver.resolve()
        await self._bus.send_command(player, command)

        # The navigation itself succeeded; a failed metadata refresh only
        # means we keep reporting the previous track.
        metadata = None
        try:
            metadata = await self._bus.query_metadata(player)
        except BackendCallError as e:
            logger.warning("Could not refresh metadata from %s: %s", player, e)

        if metadata is not None:
            snapshot = await self._state.set_metadata(metadata)
        else:
            snapshot = await self._state.snapshot()

        return CommandResult(
            action=action,
            message=message,
            player=player,
            metadata=snapshot.metadata,
        )

    async def next_track(self) -> CommandResult:
        return await self._navigate(Action.NEXT, PlayerCommand.NEXT, "skipped to next track")

    async def previous_track(self) -> CommandResult:
        return await self._navigate(
            Action.PREVIOUS, PlayerCommand.PREVIOUS, "skipped to previous track"
        )

    # -------------------------------------------------------------------------
    # Seeking
    # -------------------------------------------------------------------------

    async def _seek(self, action: Action, direction: int) -> CommandResult:
        player = await self._resolver.resolve()
        if not await self._bus.can_seek(player):
            raise UnsupportedCommandError(f"{player.display_name} cannot seek")

        offset_us = direction * self.seek_seconds * MICROSECONDS_PER_SECOND
        await self._bus.seek(player, offset_us)
        word = "forward" if direction > 0 else "backward"
        return CommandResult(
            action=action,
            message=f"seeked {word} {self.seek_seconds}s",
            player=player,
        )

    async def seek_forward(self) -> CommandResult:
        return await self._seek(Action.SEEK_FORWARD, 1)

    async def seek_backward(self) -> CommandResult:
        return await self._seek(Action.SEEK_BACKWARD, -1)

    # -------------------------------------------------------------------------
    # Volume (no player resolution)
    # -------------------------------------------------------------------------

    async def volume_up(self) -> CommandResult:
        percent = await self._mixer.change_volume(self.volume_step)
        return CommandResult(action=Action.VOLUME_UP, message=f"system volume {percent}")

    async def volume_down(self) -> CommandResult:
        percent = await self._mixer.change_volume(-self.volume_step)
        return CommandResult(action=Action.VOLUME_DOWN, message=f"system volume {percent}")

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def status(self) -> StatusReport:
        """
        Report our state plus the player that would currently be targeted.

        Bus failures are logged and never fail the query: the report then
        carries the last known metadata and no targeted player.
        """
        player: PlayerIdentity | None = None
        player_status: str | None = None
        try:
            player = await self._resolver.resolve()
        except (ResolutionError, BackendCallError) as e:
            logger.info("status: no targeted player (%s)", e)

        if player is not None:
            try:
                await self._state.set_metadata(await self._bus.query_metadata(player))
            except BackendCallError as e:
                logger.warning("status: could not read metadata from %s: %s", player, e)
            try:
                player_status = await self._bus.query_playback_status(player)
            except BackendCallError as e:
                logger.warning("status: could not read playback status from %s: %s", player, e)

        snapshot = await self._state.snapshot()
        return StatusReport(
            playback_status=snapshot.playback_status,
            metadata=snapshot.metadata,
            targeted_player=player,
            targeted_player_status=player_status,
        )
