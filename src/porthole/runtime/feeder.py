"""Input feeder: turns a Source into writes on a channel.

Literal data is written once, files are piped in fixed-size blocks, chunk
streams are written chunk by chunk. Every source except NoInput/Receive ends
with an end-of-input marker (an empty write).

If the process exits while input is still being written, the feeder stops
quietly, as if the input had been exhausted.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable
from typing import Any

from anyio import to_thread

from ..errors import ChannelClosedError
from ..sources import (
    ChunkStream,
    FilePath,
    Literal,
    NoInput,
    OpenFile,
    Receive,
    Source,
    chunk_to_bytes,
)
from .channel import Channel

__all__ = ["FILE_BLOCK_SIZE", "feed_input"]

logger = logging.getLogger(__name__)

# Files are read in blocks to bound memory use
FILE_BLOCK_SIZE = 1024 * 1024


async def feed_input(channel: Channel, source: Source, *, block_size: int = FILE_BLOCK_SIZE) -> None:
    """Write a source to the channel, then signal end of input.

    Args:
        channel: Target channel
        source: What to write
        block_size: Read size for file sources
    """
    if isinstance(source, (NoInput, Receive)):
        return

    try:
        if isinstance(source, Literal):
            await channel.write(source.data)
        elif isinstance(source, OpenFile):
            await _pipe_file(channel, source.handle, block_size)
        elif isinstance(source, FilePath):
            with open(source.path, "rb") as fh:
                await _pipe_file(channel, fh, block_size)
        elif isinstance(source, ChunkStream):
            await _pipe_chunks(channel, source.chunks)
        else:
            raise TypeError(f"Unsupported source: {source!r}")

        await channel.write(b"")
    except ChannelClosedError as e:
        logger.debug(f"Input stopped, process gone: {e}")
        return

    logger.debug(f"Input complete ({type(source).__name__})")


async def _pipe_file(channel: Channel, handle: Any, block_size: int) -> None:
    while True:
        try:
            block = await to_thread.run_sync(handle.read, block_size)
        except OSError as e:
            logger.warning(f"Input file read failed, treating as end of input: {e}")
            return
        if not block:
            return
        await channel.write(chunk_to_bytes(block))


async def _pipe_chunks(channel: Channel, chunks: Any) -> None:
    if isinstance(chunks, AsyncIterable):
        async for chunk in chunks:
            await channel.write(chunk_to_bytes(chunk))
    else:
        for chunk in chunks:
            await channel.write(chunk_to_bytes(chunk))
