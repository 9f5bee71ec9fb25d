"""
MPRIS bus client.

Enumerates the MPRIS players visible on the session bus and issues
playback commands to one of them. Every call may fail because the player
can disappear between resolution and invocation; such failures are raised
as BusCallError and never crash the process.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from dbus_next.aio import MessageBus
from dbus_next.constants import BusType
from dbus_next.errors import AuthError as BusAuthError
from dbus_next.errors import DBusError, InvalidAddressError
from dbus_next.introspection import Node
from dbus_next.signature import Variant

from media_controller.errors import BusCallError
from media_controller.mpris.introspection import (
    DBUS_INTERFACE,
    DBUS_OBJECT_PATH,
    DBUS_SERVICE,
    DBUS_XML,
    MPRIS_OBJECT_PATH,
    MPRIS_XML,
    PLAYER_INTERFACE,
    ROOT_INTERFACE,
)
from media_controller.player.models import (
    MPRIS_BUS_PREFIX,
    PlaybackStatus,
    PlayerCommand,
    PlayerIdentity,
    TrackMetadata,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PlayerCommand -> name of the dbus-next proxy coroutine
_COMMAND_METHODS = {
    PlayerCommand.PLAY: "call_play",
    PlayerCommand.PAUSE: "call_pause",
    PlayerCommand.PLAY_PAUSE: "call_play_pause",
    PlayerCommand.NEXT: "call_next",
    PlayerCommand.PREVIOUS: "call_previous",
}


def unwrap_variants(value: Any) -> Any:
    """Recursively replace dbus-next Variants with their plain values."""
    if isinstance(value, Variant):
        return unwrap_variants(value.value)
    if isinstance(value, dict):
        return {k: unwrap_variants(v) for k, v in value.items()}
    if isinstance(value, list):
        return [unwrap_variants(v) for v in value]
    return value


class MprisClient:
    """
    Client side of the session bus.

    Uses its own bus connection, separate from the publisher, so calls to
    our own published name (never made by the resolver) would not loop back
    into the same connection.
    """

    def __init__(self, bus: MessageBus | None = None, *, timeout: float = 5.0) -> None:
        """
        Initialize the client.

        Args:
            bus: An already connected MessageBus. If None, connect() creates one.
            timeout: Upper bound in seconds for each bus call.
        """
        self._bus = bus
        self.timeout = timeout
        self._mpris_node = Node.parse(MPRIS_XML)
        self._dbus_node = Node.parse(DBUS_XML)

    async def connect(self) -> None:
        """Connect to the session bus if not already connected."""
        if self._bus is not None:
            return
        try:
            self._bus = await MessageBus(bus_type=BusType.SESSION).connect()
        except (OSError, DBusError, InvalidAddressError, BusAuthError) as e:
            raise BusCallError(f"could not connect to session bus: {e}") from e
        logger.info("Connected to session bus as %s", self._bus.unique_name)

    def disconnect(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None

    @property
    def bus(self) -> MessageBus:
        if self._bus is None:
            raise BusCallError("not connected to the session bus")
        return self._bus

    async def _call(self, awaitable: Awaitable[T], what: str) -> T:
        """Await a bus call with the configured timeout, mapping failures."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise BusCallError(f"{what} timed out after {self.timeout:g}s") from e
        except DBusError as e:
            raise BusCallError(f"{what} failed: {e.text or e.type}") from e
        except (EOFError, OSError) as e:
            raise BusCallError(f"{what} failed: {e}") from e

    def _interface(self, bus_name: str, interface: str) -> Any:
        proxy = self.bus.get_proxy_object(bus_name, MPRIS_OBJECT_PATH, self._mpris_node)
        return proxy.get_interface(interface)

    def _player(self, player: PlayerIdentity) -> Any:
        return self._interface(player.bus_name, PLAYER_INTERFACE)

    async def list_player_names(self) -> list[str]:
        """Return MPRIS bus names in bus enumeration order."""
        proxy = self.bus.get_proxy_object(DBUS_SERVICE, DBUS_OBJECT_PATH, self._dbus_node)
        dbus = proxy.get_interface(DBUS_INTERFACE)
        names = await self._call(dbus.call_list_names(), "ListNames")
        return [n for n in names if n.startswith(MPRIS_BUS_PREFIX)]

    async def list_players(self) -> list[PlayerIdentity]:
        """
        Enumerate all MPRIS players currently on the bus.

        Players that vanish between ListNames and the Identity lookup are
        skipped.

        Raises:
            BusCallError: If the bus listing itself failed.
        """
        players: list[PlayerIdentity] = []
        for name in await self.list_player_names():
            root = self._interface(name, ROOT_INTERFACE)
            try:
                identity = await self._call(root.get_identity(), f"{name} Identity")
            except BusCallError as e:
                logger.debug("Skipping player %s: %s", name, e)
                continue
            players.append(PlayerIdentity(bus_name=name, identity=str(identity or "")))

        logger.debug("MPRIS players on bus: %s", [str(p) for p in players])
        return players

    async def send_command(self, player: PlayerIdentity, command: PlayerCommand) -> None:
        """
        Issue an argument-free playback command.

        Raises:
            BusCallError: If the call failed or timed out.
        """
        method = getattr(self._player(player), _COMMAND_METHODS[command])
        await self._call(method(), f"{command.value} on {player.display_name}")
        logger.debug("Sent %s to %s", command.value, player)

    async def seek(self, player: PlayerIdentity, offset_us: int) -> None:
        """Seek relative to the current position by ``offset_us`` microseconds."""
        iface = self._player(player)
        await self._call(iface.call_seek(offset_us), f"Seek on {player.display_name}")
        logger.debug("Seeked %s by %dus", player, offset_us)

    async def can_seek(self, player: PlayerIdentity) -> bool:
        iface = self._player(player)
        return bool(await self._call(iface.get_can_seek(), f"CanSeek on {player.display_name}"))

    async def query_metadata(self, player: PlayerIdentity) -> TrackMetadata:
        """Read and normalise the player's current track metadata."""
        iface = self._player(player)
        raw = await self._call(iface.get_metadata(), f"Metadata on {player.display_name}")
        return TrackMetadata.from_mpris(unwrap_variants(raw or {}))

    async def query_playback_status(self, player: PlayerIdentity) -> str:
        """
        Read the player's own PlaybackStatus.

        Returns the raw MPRIS string ("Playing", "Paused" or "Stopped").
        """
        iface = self._player(player)
        return str(
            await self._call(iface.get_playback_status(), f"PlaybackStatus on {player.display_name}")
        )
