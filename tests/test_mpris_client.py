"""
Tests for MprisClient.

The dbus-next MessageBus is replaced with mocks; proxies are looked up by
bus name and interface.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from dbus_next.errors import DBusError
from dbus_next.signature import Variant

from media_controller.errors import BusCallError
from media_controller.mpris.client import MprisClient, unwrap_variants
from media_controller.mpris.introspection import DBUS_INTERFACE, PLAYER_INTERFACE, ROOT_INTERFACE
from media_controller.player.models import PlayerCommand, PlayerIdentity, TrackMetadata

VLC_NAME = "org.mpris.MediaPlayer2.vlc"
CHROMIUM_NAME = "org.mpris.MediaPlayer2.chromium.instance99"


def make_bus(
    names: list[str],
    identities: dict[str, object],
    player_iface: MagicMock | None = None,
) -> MagicMock:
    """
    Build a MessageBus mock.

    ``identities`` maps bus name to an Identity value, or to an exception
    raised by the Identity getter.
    """
    dbus_iface = MagicMock()
    dbus_iface.call_list_names = AsyncMock(return_value=names)
    player_iface = player_iface or MagicMock()

    def get_proxy_object(bus_name, path, introspection):
        proxy = MagicMock()

        def get_interface(name):
            if name == DBUS_INTERFACE:
                return dbus_iface
            if name == PLAYER_INTERFACE:
                return player_iface
            assert name == ROOT_INTERFACE
            root = MagicMock()
            identity = identities[bus_name]
            if isinstance(identity, Exception):
                root.get_identity = AsyncMock(side_effect=identity)
            else:
                root.get_identity = AsyncMock(return_value=identity)
            return root

        proxy.get_interface.side_effect = get_interface
        return proxy

    bus = MagicMock()
    bus.get_proxy_object.side_effect = get_proxy_object
    return bus


class TestListPlayers:
    async def test_keeps_only_mpris_names_in_order(self) -> None:
        bus = make_bus(
            [":1.42", "org.freedesktop.Notifications", CHROMIUM_NAME, VLC_NAME],
            {CHROMIUM_NAME: "Chromium", VLC_NAME: "VLC media player"},
        )
        client = MprisClient(bus)

        players = await client.list_players()

        assert players == [
            PlayerIdentity(CHROMIUM_NAME, "Chromium"),
            PlayerIdentity(VLC_NAME, "VLC media player"),
        ]

    async def test_skips_player_that_vanished(self) -> None:
        bus = make_bus(
            [CHROMIUM_NAME, VLC_NAME],
            {
                CHROMIUM_NAME: DBusError("org.freedesktop.DBus.Error.ServiceUnknown", "gone"),
                VLC_NAME: "VLC media player",
            },
        )
        players = await MprisClient(bus).list_players()
        assert [p.bus_name for p in players] == [VLC_NAME]

    async def test_listing_failure_raises(self) -> None:
        bus = make_bus([], {})
        bus.get_proxy_object.side_effect = None
        bus.get_proxy_object.return_value.get_interface.return_value.call_list_names = AsyncMock(
            side_effect=DBusError("org.freedesktop.DBus.Error.NoReply", "no reply")
        )
        with pytest.raises(BusCallError, match="ListNames failed"):
            await MprisClient(bus).list_players()

    async def test_not_connected(self) -> None:
        with pytest.raises(BusCallError, match="not connected"):
            await MprisClient().list_players()


class TestCommands:
    @pytest.fixture
    def player_iface(self) -> MagicMock:
        iface = MagicMock()
        for name in ("call_play", "call_pause", "call_play_pause", "call_next", "call_previous", "call_seek"):
            setattr(iface, name, AsyncMock(return_value=None))
        iface.get_can_seek = AsyncMock(return_value=True)
        iface.get_playback_status = AsyncMock(return_value="Paused")
        iface.get_metadata = AsyncMock(
            return_value={
                "mpris:trackid": Variant("o", "/org/chromium/MediaPlayer2/TrackList/1"),
                "xesam:title": Variant("s", "Alison"),
                "xesam:artist": Variant("as", ["Slowdive"]),
                "xesam:album": Variant("s", ""),
            }
        )
        return iface

    @pytest.fixture
    def client(self, player_iface: MagicMock) -> MprisClient:
        return MprisClient(make_bus([], {}, player_iface), timeout=0.05)

    @pytest.mark.parametrize(
        "command,method",
        [
            (PlayerCommand.PLAY, "call_play"),
            (PlayerCommand.PAUSE, "call_pause"),
            (PlayerCommand.PLAY_PAUSE, "call_play_pause"),
            (PlayerCommand.NEXT, "call_next"),
            (PlayerCommand.PREVIOUS, "call_previous"),
        ],
    )
    async def test_send_command(
        self, client: MprisClient, player_iface: MagicMock, command: PlayerCommand, method: str
    ) -> None:
        await client.send_command(PlayerIdentity(VLC_NAME, "VLC"), command)
        getattr(player_iface, method).assert_awaited_once()

    async def test_seek(self, client: MprisClient, player_iface: MagicMock) -> None:
        await client.seek(PlayerIdentity(VLC_NAME, "VLC"), -30_000_000)
        player_iface.call_seek.assert_awaited_once_with(-30_000_000)

    async def test_query_metadata(self, client: MprisClient) -> None:
        metadata = await client.query_metadata(PlayerIdentity(VLC_NAME, "VLC"))
        assert metadata == TrackMetadata(title="Alison", artist="Slowdive", album=None)

    async def test_query_status_and_can_seek(self, client: MprisClient) -> None:
        player = PlayerIdentity(VLC_NAME, "VLC")
        assert await client.query_playback_status(player) == "Paused"
        assert await client.can_seek(player) is True

    async def test_dbus_error_becomes_bus_call_error(
        self, client: MprisClient, player_iface: MagicMock
    ) -> None:
        player_iface.call_play = AsyncMock(
            side_effect=DBusError("org.freedesktop.DBus.Error.ServiceUnknown", "gone")
        )
        with pytest.raises(BusCallError, match="Play on VLC failed: gone"):
            await client.send_command(PlayerIdentity(VLC_NAME, "VLC"), PlayerCommand.PLAY)

    async def test_timeout_becomes_bus_call_error(
        self, client: MprisClient, player_iface: MagicMock
    ) -> None:
        async def hang() -> None:
            await asyncio.sleep(10)

        player_iface.call_pause = MagicMock(side_effect=lambda: hang())
        with pytest.raises(BusCallError, match="timed out"):
            await client.send_command(PlayerIdentity(VLC_NAME, "VLC"), PlayerCommand.PAUSE)


def test_unwrap_variants_nested() -> None:
    value = {"a": Variant("as", ["x"]), "b": Variant("v", Variant("s", "y"))}
    assert unwrap_variants(value) == {"a": ["x"], "b": "y"}
