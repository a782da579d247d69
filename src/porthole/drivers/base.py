"""Driver base class.

A driver turns an invocation (program or shell command plus options) into a
running session: it validates options, resolves the source and sinks, builds
the process spec for its backend, opens the channel and hands everything to a
CommunicationWorker.

Subclasses only decide how the process is started (build_spec) and which
channel speaks to it (create_channel).
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from ..errors import CommandNotFound
from ..options import Options, compile_options
from ..process import ProcessHandle
from ..result import Result
from ..runtime.channel import DEFAULT_KILL_TIMEOUT, DEFAULT_TERM_TIMEOUT, IS_WINDOWS, Channel, ProcessSpec
from ..runtime.worker import CommunicationWorker, ResultMode
from ..sinks import Sink, StreamConsumer, resolve_sink
from ..sources import Source, resolve_source

__all__ = ["Driver", "shell_argv"]

logger = logging.getLogger(__name__)


def shell_argv(command: str) -> list[str]:
    """argv that runs a command line through the platform shell."""
    if IS_WINDOWS:
        return [os.environ.get("COMSPEC", "cmd.exe"), "/c", command]
    return ["/bin/sh", "-c", command]


class Driver(ABC):
    """Runs programs and exchanges data with them.

    exec/exec_shell block until the process exits and return its Result.
    spawn/spawn_shell return a ProcessHandle immediately.

    Example:
        driver = SimpleDriver()
        result = await driver.exec("echo", ["hi"])
        assert result.out == "hi\\n"
    """

    def __init__(
        self,
        *,
        term_timeout: float = DEFAULT_TERM_TIMEOUT,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
    ) -> None:
        self.term_timeout = term_timeout
        self.kill_timeout = kill_timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name ("goon" or "simple")."""
        ...

    @abstractmethod
    def build_spec(
        self,
        command: list[str],
        options: Options,
        source: Source,
        out: Sink,
        err: Sink,
    ) -> ProcessSpec:
        """Describe the process to start for one session."""
        ...

    @abstractmethod
    def create_channel(self, spec: ProcessSpec) -> Channel:
        ...

    # =========================================================================
    # Entry points
    # =========================================================================

    async def exec(self, prog: str, args: Sequence[Any] = (), **options: Any) -> Result:
        """Run a program and wait for it to exit.

        Raises:
            CommandNotFound: prog cannot be found on PATH
            InvalidOptions: Unknown or malformed options
        """
        return await self._exec(self._direct_argv(prog, args), options)

    async def exec_shell(self, command: str, **options: Any) -> Result:
        """Run a shell command line and wait for it to exit."""
        return await self._exec(shell_argv(command), options)

    async def spawn(self, prog: str, args: Sequence[Any] = (), **options: Any) -> ProcessHandle:
        """Start a program and return a handle to its session."""
        return await self._spawn(self._direct_argv(prog, args), options)

    async def spawn_shell(self, command: str, **options: Any) -> ProcessHandle:
        """Start a shell command line and return a handle to its session."""
        return await self._spawn(shell_argv(command), options)

    # =========================================================================
    # Session setup
    # =========================================================================

    async def _exec(self, command: list[str], raw_options: dict[str, Any]) -> Result:
        options = compile_options(raw_options)
        # exec always hands the Result back, whatever `result` says
        worker = await self._open_session(
            command, options, async_input=options.async_input, result_mode=None
        )
        return await worker.run()

    async def _spawn(self, command: list[str], raw_options: dict[str, Any]) -> ProcessHandle:
        options = compile_options(raw_options)
        worker = await self._open_session(
            command, options, async_input=True, result_mode=options.result
        )
        worker.start()

        out = worker.out.bridge if isinstance(worker.out, StreamConsumer) else options.out
        err = worker.err.bridge if isinstance(worker.err, StreamConsumer) else options.err
        return ProcessHandle(worker, out, err)

    async def _open_session(
        self,
        command: list[str],
        options: Options,
        *,
        async_input: bool,
        result_mode: ResultMode,
    ) -> CommunicationWorker:
        worker_id = str(uuid.uuid4())
        source = resolve_source(options.in_)
        out = resolve_sink(options.out, channel="out", sender=worker_id)
        err = resolve_sink(options.err, channel="err", sender=worker_id)

        spec = self.build_spec(command, options, source, out, err)
        channel = self.create_channel(spec)
        await channel.open()

        logger.debug(
            f"Session {worker_id[:8]} opened via {self.name}: "
            f"pid={channel.pid} command={command}"
        )
        return CommunicationWorker(
            channel,
            source,
            out,
            err,
            async_input=async_input,
            result_mode=result_mode,
            worker_id=worker_id,
        )

    @staticmethod
    def _direct_argv(prog: str, args: Sequence[Any]) -> list[str]:
        executable = shutil.which(prog)
        if executable is None:
            raise CommandNotFound(prog)
        return [executable, *(os.fspath(a) if isinstance(a, os.PathLike) else str(a) for a in args)]
