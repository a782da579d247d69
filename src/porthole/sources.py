"""Input sources.

A Source describes where a process's stdin comes from. Sources are resolved
from caller options before a session starts and never change afterwards.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass
from typing import Any, BinaryIO, Union

from .errors import InvalidOptions

__all__ = [
    "NoInput",
    "Receive",
    "Literal",
    "OpenFile",
    "FilePath",
    "ChunkStream",
    "Source",
    "RECEIVE",
    "resolve_source",
    "chunk_to_bytes",
]


@dataclass(frozen=True)
class NoInput:
    """No input at all; not even an end-of-input marker is sent."""


@dataclass(frozen=True)
class Receive:
    """Input is fed interactively through the process handle."""


@dataclass(frozen=True)
class Literal:
    """A fixed byte string written once."""

    data: bytes


@dataclass(frozen=True)
class OpenFile:
    """A readable file object owned by the caller."""

    handle: BinaryIO


@dataclass(frozen=True)
class FilePath:
    """A file opened and read by the feeder."""

    path: str | os.PathLike[str]


@dataclass(frozen=True)
class ChunkStream:
    """A lazy (sync or async) sequence of chunks."""

    chunks: Iterable[Any] | AsyncIterable[Any]


Source = Union[NoInput, Receive, Literal, OpenFile, FilePath, ChunkStream]

RECEIVE = Receive()

_SOURCE_TYPES = (NoInput, Receive, Literal, OpenFile, FilePath, ChunkStream)


def chunk_to_bytes(chunk: Any) -> bytes:
    """Normalize one stream chunk: a byte value, bytes-like data or text."""
    if isinstance(chunk, int):
        return bytes([chunk])
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"Unsupported input chunk: {type(chunk).__name__}")


def resolve_source(value: Any) -> Source:
    """Turn the caller's ``in`` option into a Source variant.

    Args:
        value: None, bytes/str, a readable file, a path, an iterable of
            chunks, or a Source instance

    Returns:
        The Source variant

    Raises:
        InvalidOptions: The value cannot describe an input
    """
    if value is None:
        return NoInput()
    if isinstance(value, _SOURCE_TYPES):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Literal(bytes(value))
    if isinstance(value, str):
        return Literal(value.encode("utf-8"))
    if hasattr(value, "read"):
        return OpenFile(value)
    if isinstance(value, os.PathLike):
        return FilePath(value)
    if isinstance(value, (Iterable, AsyncIterable)):
        return ChunkStream(value)
    raise InvalidOptions(f"Invalid input source: {value!r}")
