"""
MPRIS publisher - our own player on the session bus.

Registers this process as ``org.mpris.MediaPlayer2.<name>`` so desktop
shells show one controllable entity, mirrors the state store into the
exported properties, and forwards method calls made on it (media keys,
shell widgets) to a command handler.

NOTE: this module deliberately does not use ``from __future__ import
annotations``; dbus-next reads D-Bus signatures from the raw annotation
strings.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from dbus_next.aio import MessageBus
from dbus_next.constants import BusType, NameFlag, PropertyAccess, RequestNameReply
from dbus_next.errors import AuthError as BusAuthError
from dbus_next.errors import DBusError, InvalidAddressError
from dbus_next.service import ServiceInterface, dbus_property, method
from dbus_next.signature import Variant

from media_controller.errors import BusPublishError
from media_controller.mpris.introspection import (
    MPRIS_OBJECT_PATH,
    PLAYER_INTERFACE,
    ROOT_INTERFACE,
)
from media_controller.player.models import (
    MPRIS_BUS_PREFIX,
    PlaybackStatus,
    PlayerCommand,
    TrackMetadata,
)

logger = logging.getLogger(__name__)

NO_TRACK = "/org/mpris/MediaPlayer2/TrackList/NoTrack"
CURRENT_TRACK = "/org/mpris/MediaPlayer2/TrackList/Current"

# Handler for calls made on our player: a PlayerCommand, or a signed seek
# offset in microseconds.
CommandHandler = Callable[["PlayerCommand | int"], Awaitable[Any]]


def metadata_to_mpris(metadata: TrackMetadata) -> dict:
    """Build an MPRIS ``a{sv}`` Metadata dict. Unknown fields are omitted."""
    track_id = CURRENT_TRACK if (metadata.title or metadata.artist or metadata.album) else NO_TRACK
    out = {"mpris:trackid": Variant("o", track_id)}
    if metadata.title is not None:
        out["xesam:title"] = Variant("s", metadata.title)
    if metadata.artist is not None:
        out["xesam:artist"] = Variant("as", [metadata.artist])
    if metadata.album is not None:
        out["xesam:album"] = Variant("s", metadata.album)
    return out


class RootInterface(ServiceInterface):
    """``org.mpris.MediaPlayer2``"""

    def __init__(self, identity: str) -> None:
        super().__init__(ROOT_INTERFACE)
        self._identity = identity

    @method()
    def Raise(self):
        pass

    @method()
    def Quit(self):
        pass

    @dbus_property(access=PropertyAccess.READ)
    def CanQuit(self) -> "b":
        return False

    @dbus_property(access=PropertyAccess.READ)
    def CanRaise(self) -> "b":
        return False

    @dbus_property(access=PropertyAccess.READ)
    def HasTrackList(self) -> "b":
        return False

    @dbus_property(access=PropertyAccess.READ)
    def Identity(self) -> "s":
        return self._identity

    @dbus_property(access=PropertyAccess.READ)
    def SupportedUriSchemes(self) -> "as":
        return []

    @dbus_property(access=PropertyAccess.READ)
    def SupportedMimeTypes(self) -> "as":
        return []


class PlayerInterface(ServiceInterface):
    """
    ``org.mpris.MediaPlayer2.Player``

    Property values come from the state store via set_status() and
    set_metadata(). Incoming method calls are handed to the command handler
    as background tasks; the D-Bus reply does not wait for them.
    """

    def __init__(self, command_handler: Optional[CommandHandler] = None) -> None:
        super().__init__(PLAYER_INTERFACE)
        self.command_handler = command_handler
        self._status = PlaybackStatus.PAUSED
        self._metadata = TrackMetadata()
        self._tasks: set[asyncio.Task] = set()

    def update_status(self, status: PlaybackStatus) -> None:
        self._status = status
        self.emit_properties_changed({"PlaybackStatus": status.value})

    def update_metadata(self, metadata: TrackMetadata) -> None:
        self._metadata = metadata
        self.emit_properties_changed({"Metadata": metadata_to_mpris(metadata)})

    def _forward(self, command: "PlayerCommand | int") -> None:
        if self.command_handler is None:
            logger.info("media key: %s (no handler)", command)
            return
        logger.info("media key: %s", command)
        task = asyncio.get_running_loop().create_task(self._run_handler(command))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_handler(self, command: "PlayerCommand | int") -> None:
        try:
            await self.command_handler(command)
        except Exception as e:
            logger.warning("Bus command %s failed: %s", command, e)

    @method()
    def Next(self):
        self._forward(PlayerCommand.NEXT)

    @method()
    def Previous(self):
        self._forward(PlayerCommand.PREVIOUS)

    @method()
    def Pause(self):
        self._forward(PlayerCommand.PAUSE)

    @method()
    def PlayPause(self):
        self._forward(PlayerCommand.PLAY_PAUSE)

    @method()
    def Stop(self):
        self._forward(PlayerCommand.PAUSE)

    @method()
    def Play(self):
        self._forward(PlayerCommand.PLAY)

    @method()
    def Seek(self, Offset: "x"):
        self._forward(int(Offset))

    @method()
    def SetPosition(self, TrackId: "o", Position: "x"):
        pass

    @method()
    def OpenUri(self, Uri: "s"):
        pass

    @dbus_property(access=PropertyAccess.READ)
    def PlaybackStatus(self) -> "s":
        return self._status.value

    @dbus_property(access=PropertyAccess.READ)
    def Rate(self) -> "d":
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    def Metadata(self) -> "a{sv}":
        return metadata_to_mpris(self._metadata)

    @dbus_property(access=PropertyAccess.READ)
    def Volume(self) -> "d":
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    def Position(self) -> "x":
        return 0

    @dbus_property(access=PropertyAccess.READ)
    def MinimumRate(self) -> "d":
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    def MaximumRate(self) -> "d":
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    def CanGoNext(self) -> "b":
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanGoPrevious(self) -> "b":
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanPlay(self) -> "b":
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanPause(self) -> "b":
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanSeek(self) -> "b":
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanControl(self) -> "b":
        return True


class MprisPublisher:
    """
    Owns our registration on the session bus.

    Initialized once at startup with register(), torn down with close().
    ``bus_name`` is the constant the resolver filters out.
    """

    def __init__(
        self,
        name: str = "my_player",
        identity: str = "My Player",
        bus: Optional[MessageBus] = None,
    ) -> None:
        """
        Initialize the publisher.

        Args:
            name: Bus name suffix; we own ``org.mpris.MediaPlayer2.<name>``.
            identity: Display name shown by desktop shells.
            bus: Optional already connected MessageBus (a dedicated one is
                created by register() otherwise).
        """
        self.bus_name = f"{MPRIS_BUS_PREFIX}{name}"
        self.identity = identity
        self._bus = bus
        self.root = RootInterface(identity)
        self.player = PlayerInterface()
        self._registered = False

    @property
    def command_handler(self) -> Optional[CommandHandler]:
        return self.player.command_handler

    @command_handler.setter
    def command_handler(self, handler: Optional[CommandHandler]) -> None:
        self.player.command_handler = handler

    @property
    def registered(self) -> bool:
        return self._registered

    async def register(self) -> None:
        """
        Export the MPRIS interfaces and claim our well-known name.

        Raises:
            BusPublishError: If the bus is unreachable or the name is taken.
        """
        try:
            if self._bus is None:
                self._bus = await MessageBus(bus_type=BusType.SESSION).connect()
            self._bus.export(MPRIS_OBJECT_PATH, self.root)
            self._bus.export(MPRIS_OBJECT_PATH, self.player)
            reply = await self._bus.request_name(self.bus_name, NameFlag.DO_NOT_QUEUE)
        except (OSError, DBusError, InvalidAddressError, BusAuthError) as e:
            raise BusPublishError(f"could not publish {self.bus_name}: {e}") from e

        if reply not in (RequestNameReply.PRIMARY_OWNER, RequestNameReply.ALREADY_OWNER):
            raise BusPublishError(f"bus name {self.bus_name} is already owned ({reply.name})")

        self._registered = True
        logger.info("Published MPRIS player '%s' as %s", self.identity, self.bus_name)

    def set_status(self, status: PlaybackStatus) -> None:
        """Reflect a playback status into our published player."""
        self.player.update_status(status)

    def set_metadata(self, metadata: TrackMetadata) -> None:
        """Reflect track metadata into our published player."""
        self.player.update_metadata(metadata)

    async def close(self) -> None:
        """Release the name, unexport and disconnect."""
        if self._bus is None:
            return
        bus, self._bus = self._bus, None
        try:
            if self._registered:
                await bus.release_name(self.bus_name)
            bus.unexport(MPRIS_OBJECT_PATH)
        except (OSError, DBusError) as e:
            logger.warning("Error unpublishing %s: %s", self.bus_name, e)
        finally:
            self._registered = False
            bus.disconnect()
        logger.info("Unpublished MPRIS player %s", self.bus_name)
