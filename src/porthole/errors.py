"""Exception types raised by porthole.

porthole v0.1.0
"""

from __future__ import annotations

from collections.abc import Iterable

__all__ = [
    "PortholeError",
    "CommandNotFound",
    "InvalidOptions",
    "ProtocolError",
    "ChannelClosedError",
    "ProcessNotRunning",
]


class PortholeError(Exception):
    """Base class for porthole errors."""
    pass


class CommandNotFound(PortholeError):
    """The executable for a direct spawn could not be resolved.

    Attributes:
        command: The program name as given by the caller
    """

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Command not found: {command}")


class InvalidOptions(PortholeError):
    """Unrecognized or malformed invocation options.

    Attributes:
        keys: Offending option names (empty when a value was malformed)
    """

    def __init__(self, message: str, keys: Iterable[str] = ()) -> None:
        self.keys = tuple(keys)
        super().__init__(message)


class ProtocolError(PortholeError):
    """The helper sent a frame that cannot be decoded."""
    pass


class ChannelClosedError(PortholeError):
    """Write attempted on a channel whose process is gone."""
    pass


class ProcessNotRunning(PortholeError):
    """The worker behind a process handle has already terminated."""
    pass
