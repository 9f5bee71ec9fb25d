"""
Error taxonomy for Media Controller.

Every failure a request can hit maps to one of these types; the web layer
turns them into distinct HTTP responses so clients can tell "not authorized"
from "nothing to control" from "the backend call failed".
"""


class MediaControllerError(Exception):
    """Base class for all Media Controller errors."""


class ConfigError(MediaControllerError):
    """Configuration is missing or invalid. Fatal at startup."""


class AuthError(MediaControllerError):
    """Request carried no credential or the wrong one."""


class ResolutionError(MediaControllerError):
    """No external player is available to receive a command."""


class UnsupportedCommandError(MediaControllerError):
    """The resolved player does not support the requested command."""


class BackendCallError(MediaControllerError):
    """A bus call or mixer invocation failed."""


class BusCallError(BackendCallError):
    """A call against an external MPRIS player failed."""


class BusPublishError(BackendCallError):
    """Publishing our own player on the bus failed."""


class MixerError(BackendCallError):
    """The mixer utility could not be run or exited non-zero."""
