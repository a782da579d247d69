"""Process channels: duplex byte pipes to a spawned OS process.

A channel owns one subprocess. It accepts writes for the process's stdin and
produces events: DataEvent for each chunk of output, then a single ExitEvent.

Two implementations:
- PipeChannel: plain stdout/stderr pipes. End of input cannot be signalled,
  an empty write is a no-op.
- FramedChannel: talks to the goon helper. Output arrives as tagged frames,
  input is framed and an empty write sends the end-of-input frame.

Key design points:
- POSIX: start_new_session=True so the child gets its own process group
- Windows: CREATE_NEW_PROCESS_GROUP
- close() releases the process: SIGTERM to the group -> timeout -> SIGKILL
- close() is shielded from cancellation
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import sys
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import ChannelClosedError, CommandNotFound
from .events import ChannelEvent, DataEvent, ExitEvent
from .protocol import decode_frame, encode_input, read_frame

__all__ = [
    "IS_WINDOWS",
    "ProcessSpec",
    "Channel",
    "PipeChannel",
    "FramedChannel",
]

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"

DEFAULT_TERM_TIMEOUT = 2.0
DEFAULT_KILL_TIMEOUT = 1.0

READ_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class ProcessSpec:
    """What to start.

    Attributes:
        argv: Command line (first element is the executable)
        cwd: Working directory (None = inherit)
        env: Full environment (None = inherit)
        stdin: asyncio.subprocess.PIPE or DEVNULL
        stdout: asyncio.subprocess.PIPE or DEVNULL
        stderr: PIPE, STDOUT (merge) or DEVNULL; None inherits
    """

    argv: list[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    stdin: int = asyncio.subprocess.PIPE
    stdout: int = asyncio.subprocess.PIPE
    stderr: int | None = asyncio.subprocess.PIPE


class Channel(ABC):
    """Duplex channel to one process.

    Writes are serialized with a lock so the input feeder and interactively
    injected input can share the channel.
    """

    def __init__(
        self,
        spec: ProcessSpec,
        *,
        term_timeout: float = DEFAULT_TERM_TIMEOUT,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
    ) -> None:
        self.spec = spec
        self.term_timeout = term_timeout
        self.kill_timeout = kill_timeout
        self._process: asyncio.subprocess.Process | None = None
        self._write_lock = asyncio.Lock()
        self._closed = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        """Start the process.

        Raises:
            CommandNotFound: The executable does not exist
        """
        kwargs = self._build_subprocess_kwargs()
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.spec.argv,
                stdin=self.spec.stdin,
                stdout=self.spec.stdout,
                stderr=self.spec.stderr,
                cwd=self.spec.cwd,
                **kwargs,
            )
        except FileNotFoundError as e:
            raise CommandNotFound(self.spec.argv[0]) from e

        logger.debug(
            f"Started subprocess pid={self._process.pid} "
            f"argv={self.spec.argv} cwd={self.spec.cwd}"
        )

    def _build_subprocess_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}

        if self.spec.env is not None:
            kwargs["env"] = dict(self.spec.env)

        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            # POSIX: start_new_session (equivalent to setsid)
            kwargs["start_new_session"] = True

        return kwargs

    @abstractmethod
    def _encode(self, data: bytes) -> list[bytes]:
        """Turn one logical write into the bytes to put on stdin."""
        ...

    @abstractmethod
    def events(self) -> AsyncIterator[ChannelEvent]:
        """Yield output events, ending with exactly one ExitEvent."""
        ...

    async def write(self, data: bytes) -> None:
        """Write to the process's stdin.

        Raises:
            ChannelClosedError: The channel is closed or the process is gone
        """
        async with self._write_lock:
            process = self._process
            if self._closed or process is None or process.stdin is None:
                raise ChannelClosedError("Channel is closed")
            if process.stdin.is_closing():
                raise ChannelClosedError("Process stdin is closed")
            pieces = self._encode(data)
            if not pieces:
                return
            try:
                for piece in pieces:
                    process.stdin.write(piece)
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                raise ChannelClosedError(f"Process pid={process.pid} is gone") from e

    async def wait(self) -> int:
        return await self._started().wait()

    def _started(self) -> asyncio.subprocess.Process:
        if self._process is None:
            raise ChannelClosedError("Channel is not open")
        return self._process

    async def close(self) -> None:
        """Close stdin and make sure the process is gone. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._process is None:
            return

        cleanup = asyncio.ensure_future(self._do_close(self._process))
        try:
            await asyncio.shield(cleanup)
        except asyncio.CancelledError:
            # Finish cleanup before letting the cancellation through
            await cleanup
            raise

    async def _do_close(self, process: asyncio.subprocess.Process) -> None:
        stdin = process.stdin
        if stdin is not None and not stdin.is_closing():
            if stdin.transport.get_write_buffer_size():
                # A child that stops reading never drains the buffer
                logger.debug(f"Discarding unflushed input pid={process.pid}")
                stdin.transport.abort()
            else:
                stdin.close()
            try:
                await stdin.wait_closed()
            except (BrokenPipeError, ConnectionResetError):
                pass

        if process.returncode is None:
            await self._terminate_process(process)

    async def _terminate_process(self, process: asyncio.subprocess.Process) -> None:
        """Terminate gracefully, then forcefully if needed.

        1. SIGTERM to the process group (CTRL_BREAK_EVENT on Windows)
        2. Wait up to term_timeout
        3. SIGKILL to the group (kill() on Windows)
        4. Wait up to kill_timeout
        """
        pid = process.pid
        logger.debug(f"Terminating subprocess pid={pid}")

        try:
            self._send_terminate(process)
            try:
                await asyncio.wait_for(process.wait(), timeout=self.term_timeout)
                logger.debug(f"Subprocess terminated pid={pid} returncode={process.returncode}")
                return
            except asyncio.TimeoutError:
                pass

            logger.debug(f"Force killing subprocess pid={pid}")
            self._send_kill(process)
            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Subprocess did not exit after kill pid={pid}")

        except ProcessLookupError:
            logger.debug(f"Subprocess already exited pid={pid}")

    def _send_terminate(self, process: asyncio.subprocess.Process) -> None:
        if IS_WINDOWS:
            try:
                os.kill(process.pid, signal.CTRL_BREAK_EVENT)
            except OSError as e:
                logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
                process.terminate()
            return
        try:
            os.killpg(os.getpgid(process.pid), signal.SIGTERM)
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to terminate: {e}")
            process.terminate()

    def _send_kill(self, process: asyncio.subprocess.Process) -> None:
        if IS_WINDOWS:
            process.kill()
            return
        try:
            os.killpg(os.getpgid(process.pid), signal.SIGKILL)
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to kill: {e}")
            process.kill()


class PipeChannel(Channel):
    """Plain pipes: stdout and stderr arrive as independent raw streams.

    There is no way to signal end of input short of closing the channel, so
    a program that reads all of its input before writing anything will not
    finish on this channel.
    """

    def _encode(self, data: bytes) -> list[bytes]:
        return [data] if data else []

    async def events(self) -> AsyncIterator[ChannelEvent]:
        process = self._started()

        queue: asyncio.Queue[DataEvent | None] = asyncio.Queue()

        async def drain(name: str, stream: asyncio.StreamReader) -> None:
            try:
                while True:
                    chunk = await stream.read(READ_CHUNK_SIZE)
                    if not chunk:
                        break
                    queue.put_nowait(DataEvent(name, chunk))
            finally:
                queue.put_nowait(None)

        streams = [("out", process.stdout), ("err", process.stderr)]
        tasks = [
            asyncio.create_task(drain(name, stream))
            for name, stream in streams
            if stream is not None
        ]

        try:
            remaining = len(tasks)
            while remaining:
                item = await queue.get()
                if item is None:
                    remaining -= 1
                    continue
                yield item

            # Surface read errors from the drain tasks
            await asyncio.gather(*tasks)
            status = await process.wait()
            logger.debug(f"Subprocess exited pid={process.pid} returncode={status}")
            yield ExitEvent(status)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()


class FramedChannel(Channel):
    """Channel to the goon helper speaking the framed protocol."""

    def _encode(self, data: bytes) -> list[bytes]:
        return encode_input(data)

    async def events(self) -> AsyncIterator[ChannelEvent]:
        process = self._started()

        frames = 0
        while True:
            frame = await read_frame(process.stdout)
            if frame is None:
                break
            frames += 1
            yield decode_frame(frame)

        status = await process.wait()
        logger.debug(
            f"Helper exited pid={process.pid} returncode={status} frames={frames}"
        )
        yield ExitEvent(status)
