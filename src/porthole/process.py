"""Process handle returned by spawn."""

from __future__ import annotations

import logging
from typing import Any

from .result import Result
from .runtime.worker import CommunicationWorker

__all__ = ["ProcessHandle"]

logger = logging.getLogger(__name__)


class ProcessHandle:
    """Caller's side of a spawned session.

    Attributes:
        worker_id: Session id (also the sender of mailbox messages)
        out: A StreamBridge when out="stream", otherwise the out option as given
        err: Same for err

    Example:
        handle = await driver.spawn("cat", out="stream")
        await handle.send_input(b"Hello")
        await handle.send_input(b"")
        async for chunk in handle.out:
            ...
        result = await handle.await_result()
    """

    def __init__(self, worker: CommunicationWorker, out: Any, err: Any) -> None:
        self._worker = worker
        self.worker_id = worker.worker_id
        self.out = out
        self.err = err

    def __repr__(self) -> str:
        return f"ProcessHandle(id={self.worker_id[:8]}..., alive={self.alive})"

    @property
    def alive(self) -> bool:
        return self._worker.alive

    @property
    def pid(self) -> int | None:
        return self._worker.channel.pid

    async def send_input(self, data: bytes | str) -> None:
        """Send a chunk to the process; b"" signals end of input (goon only)."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        await self._worker.send_input(data)

    async def stop(self) -> None:
        """Stop the session. Returns once the worker has acknowledged."""
        await self._worker.stop()

    async def await_result(self, timeout: float | None = None) -> Result | None:
        """Wait for the session result.

        Raises:
            asyncio.TimeoutError: The timeout elapsed first
            ProcessNotRunning: result="keep" and the result was already taken
            ProtocolError: The session failed
        """
        return await self._worker.get_result(timeout)
