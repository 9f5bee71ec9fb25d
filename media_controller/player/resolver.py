"""
Player Resolver - picks the external player to control.

The MPRIS namespace on the session bus reorders whenever a player restarts,
so the target is re-derived on every command and never cached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from media_controller.errors import ResolutionError
from media_controller.player.models import PlayerIdentity

logger = logging.getLogger(__name__)

# Players that advertise themselves under a sibling name. Tried only after
# the configured substring itself found nothing.
PLAYER_ALIASES: dict[str, tuple[str, ...]] = {
    "chromium": ("chrome",),
    "chrome": ("chromium",),
}


class PlayerLister(Protocol):
    async def list_players(self) -> list[PlayerIdentity]: ...


class PlayerResolver:
    """
    Select one external player from the current bus listing.

    Selection order:
    1. Drop our own published player (and any other excluded bus names).
    2. First player whose identity or bus name contains the preferred
       substring (case-insensitive).
    3. First player matching one of the substring's aliases.
    4. First remaining player in enumeration order.

    Raises ResolutionError when nothing is left after exclusion.
    """

    def __init__(
        self,
        lister: PlayerLister,
        preferred: str,
        *,
        exclude_bus_names: Iterable[str] = (),
    ) -> None:
        """
        Initialize the resolver.

        Args:
            lister: Source of the current player listing (the bus client).
            preferred: Preferred player substring, matched case-insensitively.
            exclude_bus_names: Bus names that must never be selected. Always
                includes the bus name our own player is published under.
        """
        self._lister = lister
        self.preferred = preferred.lower()
        self.exclude_bus_names = frozenset(exclude_bus_names)

    def select(self, players: list[PlayerIdentity]) -> PlayerIdentity:
        """
        Apply the selection rule to an already-enumerated listing.

        Raises:
            ResolutionError: If no external player remains.
        """
        external = [p for p in players if p.bus_name not in self.exclude_bus_names]
        if not external:
            raise ResolutionError("No external MPRIS players found")

        for needle in (self.preferred, *PLAYER_ALIASES.get(self.preferred, ())):
            for player in external:
                if player.matches(needle):
                    if needle == self.preferred:
                        logger.info("Found preferred player '%s': %s", self.preferred, player)
                    else:
                        logger.info(
                            "Found '%s' player as '%s' fallback: %s",
                            needle,
                            self.preferred,
                            player,
                        )
                    return player

        fallback = external[0]
        logger.info(
            "Using fallback player (preferred '%s' not found): %s",
            self.preferred,
            fallback,
        )
        return fallback

    async def resolve(self) -> PlayerIdentity:
        """
        Enumerate the bus and select the target player.

        Raises:
            ResolutionError: If no external player is available.
            BusCallError: If the bus listing itself failed.
        """
        players = await self._lister.list_players()
        return self.select(players)
