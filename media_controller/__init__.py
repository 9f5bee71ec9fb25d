"""
Media Controller - REST bridge for desktop media players.

Media Controller exposes a small authenticated HTTP API that drives
whichever MPRIS player is running on the session bus, adjusts the system
volume through the mixer utility, and publishes itself on the bus as a
player so desktop shells see one controllable entity.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

from media_controller.server import MediaControllerServer

__all__ = ["MediaControllerServer", "__version__"]
