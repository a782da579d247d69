"""Events emitted by a process channel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

__all__ = ["DataEvent", "ExitEvent", "ChannelFailure", "ChannelEvent"]


@dataclass(frozen=True)
class DataEvent:
    """A chunk of output on stdout ("out") or stderr ("err")."""

    channel: Literal["out", "err"]
    payload: bytes


@dataclass(frozen=True)
class ExitEvent:
    """The process exited; status is None if it could not be determined."""

    status: int | None


@dataclass(frozen=True)
class ChannelFailure:
    """The channel broke in a way that is fatal to the session."""

    error: BaseException


ChannelEvent = DataEvent | ExitEvent | ChannelFailure
