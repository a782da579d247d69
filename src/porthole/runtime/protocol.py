"""goon wire protocol.

The goon helper sits between porthole and the target program and multiplexes
its stdout and stderr over a single pipe.

Helper -> porthole (helper stdout):
    +--------+-----+---------------+
    | len:2  | tag | payload       |    len = 1 + len(payload), big-endian
    +--------+-----+---------------+    tag = b"o" (stdout) or b"e" (stderr)

porthole -> helper (helper stdin):
    +--------+---------------+
    | len:2  | payload       |          a zero-length frame means end of input
    +--------+---------------+

Handshake is done on the helper command line:
    goon -proto 0.0 [-in] [-out nil] [-err nil|out] [-dir PATH] -- PROG ARGS...
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence

from ..errors import ProtocolError
from ..sinks import Discard, Merge, Sink
from ..sources import NoInput, Source
from .events import DataEvent

__all__ = [
    "PROTO_VERSION",
    "MAX_FRAME_SIZE",
    "handshake_flags",
    "helper_argv",
    "encode_input",
    "read_frame",
    "decode_frame",
]

logger = logging.getLogger(__name__)

PROTO_VERSION = "0.0"

# 2-byte length prefix
MAX_FRAME_SIZE = 0xFFFF

_TAGS = {ord("o"): "out", ord("e"): "err"}


def handshake_flags(
    source: Source,
    out: Sink,
    err: Sink,
    directory: str | os.PathLike[str] | None = None,
) -> list[str]:
    """Build the helper flags for a session.

    Args:
        source: Input source (any source except NoInput needs stdin)
        out: Out sink
        err: Err sink
        directory: Working directory for the target program

    Returns:
        Flags to put before ``--``
    """
    flags = ["-proto", PROTO_VERSION]
    if not isinstance(source, NoInput):
        flags.append("-in")
    if isinstance(out, Discard):
        flags += ["-out", "nil"]
    if isinstance(err, Discard):
        flags += ["-err", "nil"]
    elif isinstance(err, Merge):
        flags += ["-err", "nil" if isinstance(out, Discard) else "out"]
    if directory is not None:
        flags += ["-dir", os.fspath(directory)]
    return flags


def helper_argv(goon: Sequence[str], flags: Sequence[str], command: Sequence[str]) -> list[str]:
    """Full argv for the helper: helper, flags, ``--``, target command."""
    return [*goon, *flags, "--", *command]


def encode_input(data: bytes) -> list[bytes]:
    """Frame input for the helper's stdin.

    Empty data becomes the end-of-input frame; data longer than a frame can
    carry is split.
    """
    if not data:
        return [b"\x00\x00"]
    frames = []
    for start in range(0, len(data), MAX_FRAME_SIZE):
        piece = data[start:start + MAX_FRAME_SIZE]
        frames.append(len(piece).to_bytes(2, "big") + piece)
    return frames


async def read_frame(reader: asyncio.StreamReader) -> bytes | None:
    """Read one length-prefixed frame.

    Returns:
        The frame body, or None at a clean EOF between frames

    Raises:
        ProtocolError: EOF in the middle of a frame
    """
    try:
        header = await reader.readexactly(2)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            return None
        raise ProtocolError("Truncated frame header") from e

    length = int.from_bytes(header, "big")
    try:
        return await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise ProtocolError(
            f"Truncated frame: expected {length} bytes, got {len(e.partial)}"
        ) from e


def decode_frame(frame: bytes) -> DataEvent:
    """Strip the channel tag off a frame.

    Raises:
        ProtocolError: Empty frame or unknown tag
    """
    if not frame:
        raise ProtocolError("Empty frame")
    channel = _TAGS.get(frame[0])
    if channel is None:
        raise ProtocolError(f"Unknown channel tag: {frame[:1]!r}")
    return DataEvent(channel, frame[1:])
