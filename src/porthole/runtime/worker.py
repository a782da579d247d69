"""Communication worker: drives one process session to completion.

Each session is owned by exactly one worker task. The worker reads a single
inbox and handles, one at a time:

- DataEvent      -> routed into the out or err sink
- ExitEvent      -> finalize with the exit status
- ChannelFailure -> fatal to the session, raised out of the worker task
- InputChunk     -> written to the process (spawn mode, interactive input)
- StopRequest    -> close the channel, finalize with status None, acknowledge
- GetResult      -> reply with the result once it exists

A pump task copies channel events into the same inbox, so the worker only
ever waits on one thing.

States:
    ACTIVE --exit--> FINALIZED
    ACTIVE --stop--> STOPPED --> FINALIZED

Result delivery after finalization:
    result=None      return the Result from the worker task
    result="discard" return None
    result="keep"    park until GetResult (reply, terminate) or StopRequest
    mailbox out sink ProcessResult posted to the mailbox, never parks
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from ..errors import ChannelClosedError, ProcessNotRunning, ProtocolError
from ..messages import ProcessResult
from ..result import Result, finalize_result
from ..sinks import MailboxSend, Merge, Sink, flatten, write_chunk
from ..sources import Source
from .channel import Channel
from .events import ChannelFailure, DataEvent, ExitEvent
from .feeder import feed_input

__all__ = [
    "CommunicationWorker",
    "WorkerState",
    "ResultMode",
    "InputChunk",
    "StopRequest",
    "GetResult",
]

logger = logging.getLogger(__name__)

ResultMode = Literal["discard", "keep"] | None


class WorkerState(str, Enum):
    """Worker lifecycle state."""

    ACTIVE = "active"
    STOPPED = "stopped"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class InputChunk:
    data: bytes


@dataclass(frozen=True)
class StopRequest:
    reply: asyncio.Future[None]


@dataclass(frozen=True)
class GetResult:
    reply: asyncio.Future[Result]


class CommunicationWorker:
    """Owns one channel for its entire life and produces exactly one Result.

    Example:
        worker = CommunicationWorker(channel, Literal(b"hi"), Buffer(), Discard())
        result = await worker.run()
    """

    def __init__(
        self,
        channel: Channel,
        source: Source,
        out: Sink,
        err: Sink,
        *,
        async_input: bool = False,
        result_mode: ResultMode = None,
        worker_id: str | None = None,
    ) -> None:
        self.worker_id = worker_id or str(uuid.uuid4())
        self.channel = channel
        self.source = source
        self.out = out
        self.err = err
        self.async_input = async_input
        self.result_mode = result_mode

        self._inbox: asyncio.Queue[object] = asyncio.Queue()
        self._input_queue: asyncio.Queue[bytes] = asyncio.Queue()
        self._task: asyncio.Task[Result | None] | None = None
        self._state = WorkerState.ACTIVE
        self._pending_getters: list[asyncio.Future[Result]] = []
        self._result_taken = False

    def __repr__(self) -> str:
        return (
            f"CommunicationWorker(id={self.worker_id[:8]}..., "
            f"state={self._state.value}, "
            f"pid={self.channel.pid})"
        )

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def alive(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> asyncio.Task[Result | None] | None:
        return self._task

    # =========================================================================
    # Caller side
    # =========================================================================

    def start(self) -> asyncio.Task[Result | None]:
        """Start the worker task (the channel must already be open)."""
        if self._task is None:
            self._task = asyncio.create_task(
                self._run(), name=f"porthole-worker:{self.worker_id[:8]}"
            )
        return self._task

    async def run(self) -> Result | None:
        """Start the worker and wait for its result (blocking call mode)."""
        return await self.start()

    async def send_input(self, data: bytes) -> None:
        """Queue a chunk for the process; an empty chunk signals end of input."""
        if not self.alive:
            logger.debug(f"Worker {self.worker_id[:8]} gone, dropping {len(data)} bytes of input")
            return
        self._inbox.put_nowait(InputChunk(bytes(data)))

    async def stop(self) -> None:
        """Stop the session; returns once the worker has acknowledged and exited."""
        if not self.alive:
            return
        reply: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait(StopRequest(reply))
        await self._wait_reply(reply)
        # Acknowledged; let the worker finish releasing the channel
        await asyncio.wait({self._task})

    async def get_result(self, timeout: float | None = None) -> Result | None:
        """Wait for the session result.

        Under result="keep" this asks the parked worker for its result, which
        can be taken once; otherwise it waits for the worker task.

        Raises:
            ProcessNotRunning: worker never started, or keep result already taken
            asyncio.TimeoutError: timeout elapsed (the worker keeps running)
        """
        if self._task is None:
            raise ProcessNotRunning(f"Worker {self.worker_id[:8]} was never started")
        if self.result_mode == "keep":
            if self._result_taken:
                raise ProcessNotRunning(f"Result of worker {self.worker_id[:8]} was already taken")
            if self.alive:
                reply: asyncio.Future[Result] = asyncio.get_running_loop().create_future()
                self._inbox.put_nowait(GetResult(reply))
                return await asyncio.wait_for(self._wait_reply(reply), timeout)
        return await asyncio.wait_for(asyncio.shield(self._task), timeout)

    async def _wait_reply(self, reply: asyncio.Future):
        task = self._task
        try:
            await asyncio.wait({reply, task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            # Caller gave up; an abandoned reply is never counted as delivered
            reply.cancel()
            raise
        if reply.done():
            return reply.result()
        # Worker ended without answering
        reply.cancel()
        if task.cancelled():
            raise ProcessNotRunning(f"Worker {self.worker_id[:8]} was cancelled")
        return task.result()

    # =========================================================================
    # Worker side
    # =========================================================================

    async def _run(self) -> Result | None:
        logger.debug(
            f"Worker {self.worker_id[:8]} started pid={self.channel.pid} "
            f"source={type(self.source).__name__} async_input={self.async_input} "
            f"result={self.result_mode}"
        )
        tasks: list[asyncio.Task] = [asyncio.create_task(self._pump())]
        try:
            if self.async_input:
                tasks.append(asyncio.create_task(self._feed()))
            else:
                await feed_input(self.channel, self.source)

            tasks.append(asyncio.create_task(self._write_injected()))
            status, stop_reply = await self._collect()

            self._state = WorkerState.FINALIZED
            await self.channel.close()
            result = finalize_result(status, self.out, self.err)
            logger.debug(f"Worker {self.worker_id[:8]} finalized status={status}")
            return await self._deliver(result, stop_reply)

        except asyncio.CancelledError:
            logger.debug(f"Worker {self.worker_id[:8]} cancelled")
            self._release_sinks()
            raise
        except BaseException as e:
            logger.error(f"Worker {self.worker_id[:8]} failed: {type(e).__name__}: {e}")
            self._release_sinks()
            raise
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
            await self.channel.close()

    async def _pump(self) -> None:
        """Copy channel events into the inbox."""
        try:
            async with contextlib.aclosing(self.channel.events()) as events:
                async for event in events:
                    self._inbox.put_nowait(event)
        except ProtocolError as e:
            self._inbox.put_nowait(ChannelFailure(e))
        except OSError as e:
            logger.warning(f"Worker {self.worker_id[:8]} channel read failed: {e}")
            self._inbox.put_nowait(ExitEvent(None))

    async def _feed(self) -> None:
        """Concurrent input feeding (asynchronous input mode)."""
        try:
            await feed_input(self.channel, self.source)
        except Exception as e:
            self._inbox.put_nowait(ChannelFailure(e))

    async def _write_injected(self) -> None:
        """Write interactively injected input in arrival order."""
        while True:
            data = await self._input_queue.get()
            try:
                await self.channel.write(data)
            except ChannelClosedError as e:
                logger.debug(f"Worker {self.worker_id[:8]} dropped input: {e}")

    async def _collect(self) -> tuple[int | None, asyncio.Future[None] | None]:
        """ACTIVE loop: runs until the process exits or a stop arrives."""
        while True:
            message = await self._inbox.get()
            if isinstance(message, DataEvent):
                write_chunk(self._sink_for(message.channel), message.payload)
            elif isinstance(message, ExitEvent):
                return message.status, None
            elif isinstance(message, ChannelFailure):
                raise message.error
            elif isinstance(message, InputChunk):
                self._input_queue.put_nowait(message.data)
            elif isinstance(message, StopRequest):
                self._state = WorkerState.STOPPED
                logger.debug(f"Worker {self.worker_id[:8]} stop requested")
                await self.channel.close()
                return None, message.reply
            elif isinstance(message, GetResult):
                self._pending_getters.append(message.reply)
            else:
                raise TypeError(f"Unexpected worker message: {message!r}")

    def _sink_for(self, channel: str) -> Sink:
        if channel == "err" and not isinstance(self.err, Merge):
            return self.err
        return self.out

    async def _deliver(self, result: Result, stop_reply: asyncio.Future[None] | None) -> Result | None:
        delivered = False
        if isinstance(self.out, MailboxSend):
            payload = None if self.result_mode == "discard" else result
            self.out.destination.put_nowait(ProcessResult(self.worker_id, payload))
            delivered = True

        if stop_reply is not None:
            self._answer_getters(result)
            if not stop_reply.done():
                stop_reply.set_result(None)
            return self._returned(result)

        if self.result_mode == "keep" and not delivered:
            return await self._park(result)

        self._answer_getters(result)
        return self._returned(result)

    async def _park(self, result: Result) -> Result | None:
        """keep mode: hold the result until it is asked for or the worker is stopped."""
        if self._answer_getters(result):
            return result
        logger.debug(f"Worker {self.worker_id[:8]} holding result")
        while True:
            message = await self._inbox.get()
            if isinstance(message, GetResult):
                self._pending_getters.append(message.reply)
                if self._answer_getters(result):
                    return result
                continue
            if isinstance(message, StopRequest):
                if not message.reply.done():
                    message.reply.set_result(None)
                return None
            logger.debug(f"Worker {self.worker_id[:8]} ignoring {type(message).__name__} after finalize")

    def _answer_getters(self, result: Result) -> bool:
        answered = False
        for reply in self._pending_getters:
            if not reply.done():
                reply.set_result(result)
                answered = True
        self._pending_getters.clear()
        if answered:
            self._result_taken = True
        return answered

    def _returned(self, result: Result) -> Result | None:
        return None if self.result_mode == "discard" else result

    def _release_sinks(self) -> None:
        """Close files and finish bridges when a session ends abnormally."""
        for sink in (self.out, self.err):
            try:
                flatten(sink)
            except OSError as e:
                logger.warning(f"Worker {self.worker_id[:8]} could not release {sink!r}: {e}")
