"""
MPRIS (session D-Bus) adapters.

- MprisClient: enumerates and commands external players
- MprisPublisher: registers this process as a player
"""

from media_controller.mpris.client import MprisClient
from media_controller.mpris.publisher import MprisPublisher

__all__ = [
    "MprisClient",
    "MprisPublisher",
]
