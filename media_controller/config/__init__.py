"""
Configuration management for Media Controller.

Settings are read once at startup from an optional TOML file and from
``MEDIA_CONTROL_*`` environment variables (environment wins). The resulting
``Settings`` object is immutable for the lifetime of the process.
"""

from __future__ import annotations

import logging
import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from media_controller.errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "MEDIA_CONTROL_"

# TOML table holding our settings
CONFIG_SECTION = "media_controller"

DEFAULT_PREFERRED_PLAYER = "chromium"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_SEEK_SECONDS = 30
DEFAULT_VOLUME_STEP = 5
DEFAULT_PLAYER_NAME = "My Player"
DEFAULT_BUS_NAME = "my_player"
DEFAULT_MIXER_COMMAND = "pactl"
DEFAULT_MIXER_SINK = "@DEFAULT_SINK@"
DEFAULT_CALL_TIMEOUT = 5.0

# One element of a D-Bus well-known name: ASCII, must not start with a digit
BUS_NAME_ELEMENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration."""

    api_token: str
    preferred_player: str = DEFAULT_PREFERRED_PLAYER
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    seek_seconds: int = DEFAULT_SEEK_SECONDS
    volume_step: int = DEFAULT_VOLUME_STEP
    player_name: str = DEFAULT_PLAYER_NAME
    bus_name: str = DEFAULT_BUS_NAME
    mixer_command: str = DEFAULT_MIXER_COMMAND
    mixer_sink: str = DEFAULT_MIXER_SINK
    call_timeout: float = DEFAULT_CALL_TIMEOUT

    def __repr__(self) -> str:
        # Keep the token out of logs and tracebacks
        return (
            f"Settings(preferred_player={self.preferred_player!r}, host={self.host!r}, "
            f"port={self.port}, seek_seconds={self.seek_seconds}, "
            f"volume_step={self.volume_step}, player_name={self.player_name!r}, "
            f"bus_name={self.bus_name!r})"
        )


def _read_toml(config_path: Path) -> dict[str, Any]:
    """Read the ``[media_controller]`` table from a TOML file."""
    logger.debug("Loading config from %s", config_path)
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    section = data.get(CONFIG_SECTION, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{CONFIG_SECTION}] in {config_path} must be a table")
    return section


def _as_int(name: str, value: Any, minimum: int, maximum: int | None = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e

    if number < minimum or (maximum is not None and number > maximum):
        upper = f"..{maximum}" if maximum is not None else " or more"
        raise ConfigError(f"{name} must be {minimum}{upper}, got {number}")
    return number


def _as_float(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e

    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number


def load_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Load settings from an optional TOML file and the environment.

    Args:
        config_path: Optional path to a TOML file with a ``[media_controller]`` table.
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        The loaded Settings.

    Raises:
        ConfigError: If the API token is missing or a value is malformed.
    """
    if environ is None:
        environ = os.environ

    raw: dict[str, Any] = _read_toml(config_path) if config_path is not None else {}

    for key in (
        "api_token",
        "preferred_player",
        "host",
        "port",
        "seek_seconds",
        "volume_step",
        "player_name",
        "bus_name",
        "mixer_command",
        "mixer_sink",
        "call_timeout",
    ):
        env_value = environ.get(ENV_PREFIX + key.upper())
        if env_value is not None:
            raw[key] = env_value

    token = str(raw.get("api_token") or "").strip()
    if not token:
        raise ConfigError(f"{ENV_PREFIX}API_TOKEN must be set")

    preferred = str(raw.get("preferred_player", DEFAULT_PREFERRED_PLAYER)).strip().lower()
    if not preferred:
        preferred = DEFAULT_PREFERRED_PLAYER

    bus_name = str(raw.get("bus_name", DEFAULT_BUS_NAME)).strip()
    if not BUS_NAME_ELEMENT.fullmatch(bus_name):
        raise ConfigError(f"bus_name must match [A-Za-z_][A-Za-z0-9_]*, got {bus_name!r}")

    return Settings(
        api_token=token,
        preferred_player=preferred,
        host=str(raw.get("host", DEFAULT_HOST)),
        port=_as_int("port", raw.get("port", DEFAULT_PORT), 1, 65535),
        seek_seconds=_as_int("seek_seconds", raw.get("seek_seconds", DEFAULT_SEEK_SECONDS), 1),
        volume_step=_as_int("volume_step", raw.get("volume_step", DEFAULT_VOLUME_STEP), 1, 100),
        player_name=str(raw.get("player_name", DEFAULT_PLAYER_NAME)),
        bus_name=bus_name,
        mixer_command=str(raw.get("mixer_command", DEFAULT_MIXER_COMMAND)),
        mixer_sink=str(raw.get("mixer_sink", DEFAULT_MIXER_SINK)),
        call_timeout=_as_float("call_timeout", raw.get("call_timeout", DEFAULT_CALL_TIMEOUT)),
    )
