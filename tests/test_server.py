"""
Tests for MediaControllerServer lifecycle and the CLI entry point.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from media_controller.__main__ import EXIT_CONFIG_ERROR, build_settings, main, parse_args
from media_controller.config import Settings
from media_controller.errors import BusPublishError, ConfigError
from media_controller.mpris.publisher import MprisPublisher
from media_controller.player.models import PlaybackStatus
from media_controller.server import MediaControllerServer


@pytest.fixture
def settings() -> Settings:
    return Settings(api_token="abc", bus_name="test_player", port=18080)


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.connect = AsyncMock()
    client.list_players = AsyncMock(return_value=[])
    return client


@pytest.fixture
def publisher() -> MprisPublisher:
    publisher = MprisPublisher("test_player", "Test Player", bus=MagicMock())
    publisher.register = AsyncMock()
    publisher.close = AsyncMock()
    return publisher


class TestMediaControllerServer:
    def test_resolver_excludes_own_bus_name(
        self, settings: Settings, client: MagicMock, publisher: MprisPublisher
    ) -> None:
        server = MediaControllerServer(settings, client=client, publisher=publisher)
        assert server.resolver.exclude_bus_names == {"org.mpris.MediaPlayer2.test_player"}
        assert server.resolver.preferred == "chromium"

    async def test_start_and_stop(
        self, settings: Settings, client: MagicMock, publisher: MprisPublisher
    ) -> None:
        server = MediaControllerServer(settings, client=client, publisher=publisher)

        with patch("media_controller.server.WebServer") as web_cls:
            web_cls.return_value.start = AsyncMock()
            web_cls.return_value.stop = AsyncMock()

            await server.start()

            assert server.is_running
            publisher.register.assert_awaited_once()
            client.connect.assert_awaited_once()
            assert publisher.command_handler == server.dispatcher.handle_bus_command
            assert publisher.player.PlaybackStatus == PlaybackStatus.PAUSED.value
            web_cls.return_value.start.assert_awaited_once_with(host="0.0.0.0", port=18080)

            await server.stop()

        assert not server.is_running
        web_cls.return_value.stop.assert_awaited_once()
        publisher.close.assert_awaited_once()
        client.disconnect.assert_called_once()
        assert publisher.command_handler is None

    async def test_publish_failure_aborts_start(
        self, settings: Settings, client: MagicMock, publisher: MprisPublisher
    ) -> None:
        publisher.register = AsyncMock(side_effect=BusPublishError("name taken"))
        server = MediaControllerServer(settings, client=client, publisher=publisher)

        with patch("media_controller.server.WebServer") as web_cls:
            with pytest.raises(BusPublishError):
                await server.run()

        web_cls.assert_not_called()
        client.connect.assert_not_called()
        assert not server.is_running


class TestCli:
    def test_missing_token_exits_before_start(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MEDIA_CONTROL_API_TOKEN", raising=False)
        with patch("media_controller.__main__.MediaControllerServer") as server_cls:
            assert main([]) == EXIT_CONFIG_ERROR
        server_cls.assert_not_called()

    def test_cli_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MEDIA_CONTROL_API_TOKEN", "abc")
        monkeypatch.setenv("MEDIA_CONTROL_PORT", "9000")

        settings = build_settings(parse_args(["--host", "127.0.0.1", "-p", "9100"]))

        assert settings.host == "127.0.0.1"
        assert settings.port == 9100

    def test_cli_rejects_bad_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MEDIA_CONTROL_API_TOKEN", "abc")
        with pytest.raises(ConfigError):
            build_settings(parse_args(["--port", "0"]))
