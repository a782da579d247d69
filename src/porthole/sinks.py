"""Output and error sinks.

A Sink describes where a process's stdout or stderr goes. Each session gets
fresh sink instances (resolve_sink), chunks are routed into them with
write_chunk, and the Result Finalizer converts them into their terminal value
with flatten.

Adding a variant means extending both write_chunk and flatten; both end in a
TypeError branch for anything they do not know.
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from .errors import InvalidOptions
from .messages import ProcessData
from .bridge import StreamBridge

__all__ = [
    "Discard",
    "Buffer",
    "OpenFile",
    "FilePath",
    "StreamConsumer",
    "MailboxSend",
    "Merge",
    "Sink",
    "resolve_sink",
    "write_chunk",
    "flatten",
]

logger = logging.getLogger(__name__)


@dataclass
class Discard:
    """Drop everything."""


@dataclass
class Buffer:
    """Accumulate chunks in arrival order.

    Attributes:
        mode: "text" flattens to str, "bytes" to bytes
    """

    mode: Literal["text", "bytes"] = "text"
    chunks: list[bytes] = field(default_factory=list, repr=False)


@dataclass
class OpenFile:
    """Write into a file object owned by the caller (never closed here)."""

    handle: Any


@dataclass
class FilePath:
    """Write into a file that is opened on the first chunk.

    Attributes:
        path: Target file
        mode: "truncate" or "append"
    """

    path: str | os.PathLike[str]
    mode: Literal["truncate", "append"] = "truncate"
    _handle: Any = field(default=None, init=False, repr=False, compare=False)

    @property
    def opened(self) -> bool:
        return self._handle is not None


@dataclass
class StreamConsumer:
    """Push chunks into a bridge the caller pulls from."""

    bridge: StreamBridge


@dataclass
class MailboxSend:
    """Post ProcessData messages to a mailbox (an object with put_nowait).

    Attributes:
        destination: The mailbox
        sender: Worker id stamped on each message
        channel: "out" or "err"
    """

    destination: Any
    sender: str = ""
    channel: Literal["out", "err"] = "out"


@dataclass
class Merge:
    """stderr merged into stdout (err only)."""


Sink = Union[Discard, Buffer, OpenFile, FilePath, StreamConsumer, MailboxSend, Merge]

_TEXT_MODES = {"text": "text", "bytes": "bytes"}


def resolve_sink(value: Any, *, channel: Literal["out", "err"] = "out", sender: str = "") -> Sink:
    """Turn the caller's ``out``/``err`` option into a fresh Sink.

    Args:
        value: None, "text", "bytes", "stream", "out" (err only), a mailbox,
            a writable file, a path, or a Sink instance
        channel: Which stream the sink is for
        sender: Worker id used for mailbox messages

    Returns:
        A sink instance private to the session

    Raises:
        InvalidOptions: The value cannot describe a sink
    """
    if value is None or isinstance(value, Discard):
        return Discard()
    if isinstance(value, Buffer):
        return Buffer(mode=value.mode)
    if isinstance(value, FilePath):
        return FilePath(value.path, value.mode)
    if isinstance(value, (OpenFile, StreamConsumer)):
        return value
    if isinstance(value, MailboxSend):
        return MailboxSend(value.destination, sender=sender, channel=channel)
    if isinstance(value, Merge) or value == "out":
        if channel != "err":
            raise InvalidOptions(f"Only err can be merged into out, got {channel}={value!r}")
        return Merge()
    if isinstance(value, str):
        if value in _TEXT_MODES:
            return Buffer(mode=_TEXT_MODES[value])
        if value == "stream":
            return StreamConsumer(StreamBridge())
        raise InvalidOptions(f"Invalid {channel} sink: {value!r}")
    if hasattr(value, "put_nowait"):
        return MailboxSend(value, sender=sender, channel=channel)
    if hasattr(value, "write"):
        return OpenFile(value)
    if isinstance(value, os.PathLike):
        return FilePath(value)
    raise InvalidOptions(f"Invalid {channel} sink: {value!r}")


def write_chunk(sink: Sink, data: bytes) -> None:
    """Route one chunk of process output into a sink."""
    if isinstance(sink, Discard):
        return
    elif isinstance(sink, Buffer):
        sink.chunks.append(data)
    elif isinstance(sink, FilePath):
        if sink._handle is None:
            file_mode = "ab" if sink.mode == "append" else "wb"
            sink._handle = open(sink.path, file_mode)
            logger.debug(f"Opened output file {sink.path} ({file_mode})")
        sink._handle.write(data)
    elif isinstance(sink, OpenFile):
        if isinstance(sink.handle, io.TextIOBase):
            sink.handle.write(data.decode("utf-8", errors="replace"))
        else:
            sink.handle.write(data)
    elif isinstance(sink, StreamConsumer):
        sink.bridge.push(data)
    elif isinstance(sink, MailboxSend):
        sink.destination.put_nowait(ProcessData(sink.sender, sink.channel, data))
    elif isinstance(sink, Merge):
        raise TypeError("Merged stderr is routed to the out sink")
    else:
        raise TypeError(f"Unsupported sink: {sink!r}")


def flatten(sink: Sink) -> Any:
    """Convert accumulated sink state into its terminal value.

    Safe to call more than once: files are closed once, bridges finished once.
    """
    if isinstance(sink, Discard):
        return None
    elif isinstance(sink, Buffer):
        data = b"".join(sink.chunks)
        if sink.mode == "text":
            return data.decode("utf-8", errors="replace")
        return data
    elif isinstance(sink, FilePath):
        if sink._handle is not None:
            sink._handle.close()
            sink._handle = None
            logger.debug(f"Closed output file {sink.path}")
        return sink.path
    elif isinstance(sink, OpenFile):
        flush = getattr(sink.handle, "flush", None)
        if flush is not None and not getattr(sink.handle, "closed", False):
            flush()
        return sink.handle
    elif isinstance(sink, StreamConsumer):
        sink.bridge.finish()
        return sink.bridge
    elif isinstance(sink, MailboxSend):
        return sink
    elif isinstance(sink, Merge):
        return None
    else:
        raise TypeError(f"Unsupported sink: {sink!r}")
