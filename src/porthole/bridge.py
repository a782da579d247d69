"""Stream bridge between a process worker and the caller.

A single-producer/single-consumer chunk queue. The worker pushes output as it
arrives, the caller pulls it lazily (or iterates with ``async for``). Once the
bridge is finished, buffered chunks are still delivered in order and every
pull after that returns the end marker (None).

Backed by an anyio memory object stream with an unbounded buffer, so the
producer never blocks.
"""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncIterator

import anyio

__all__ = ["StreamBridge"]

logger = logging.getLogger(__name__)


class StreamBridge:
    """Blocking SPSC queue exposed to the caller as an async iterator.

    Example:
        handle = await porthole.spawn("cat", out="stream", **{"in": b"hi"})
        async for chunk in handle.out:
            print(chunk)
    """

    def __init__(self) -> None:
        self._send, self._receive = anyio.create_memory_object_stream(max_buffer_size=math.inf)
        self._finished = False
        self._pushed = 0

    @property
    def finished(self) -> bool:
        """Whether the producer has signalled that no more chunks will arrive."""
        return self._finished

    def push(self, chunk: bytes) -> None:
        """Append a chunk and wake a waiting consumer (producer side)."""
        if self._finished:
            logger.warning(f"Chunk of {len(chunk)} bytes pushed after finish, dropped")
            return
        try:
            self._send.send_nowait(bytes(chunk))
            self._pushed += 1
        except anyio.BrokenResourceError:
            # Consumer closed its end
            logger.debug(f"Consumer gone, dropping {len(chunk)} bytes")

    def finish(self) -> None:
        """Mark the end of the stream. Idempotent."""
        if self._finished:
            return
        self._finished = True
        self._send.close()
        logger.debug(f"Bridge finished after {self._pushed} chunks")

    async def pull(self) -> bytes | None:
        """Wait for the next chunk (consumer side).

        Returns:
            The next chunk, or None once the bridge is finished and drained
        """
        try:
            return await self._receive.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            return None

    def close(self) -> None:
        """Abandon the stream from the consumer side; later pushes are dropped."""
        self._receive.close()

    async def read_all(self) -> bytes:
        """Drain the bridge until the end marker and join the chunks."""
        chunks: list[bytes] = []
        async for chunk in self:
            chunks.append(chunk)
        return b"".join(chunks)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.pull()
            if chunk is None:
                return
            yield chunk

    def __repr__(self) -> str:
        return f"StreamBridge(finished={self._finished}, pushed={self._pushed})"
