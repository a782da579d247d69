"""Simple driver: plain pipes, used when the goon helper is not available.

Limitations compared to the goon backend:
- end of input cannot be signalled; send_input(b"") is ignored
- a program that reads all of stdin before writing will not finish unless it
  was started without input (stdin is then /dev/null)
"""

from __future__ import annotations

import asyncio
import logging
import os

from ..options import Options
from ..runtime.channel import Channel, PipeChannel, ProcessSpec
from ..sinks import Discard, Merge, Sink
from ..sources import NoInput, Source
from .base import Driver

__all__ = ["SimpleDriver"]

logger = logging.getLogger(__name__)


class SimpleDriver(Driver):
    """Driver over plain stdin/stdout/stderr pipes."""

    def __repr__(self) -> str:
        return "SimpleDriver()"

    @property
    def name(self) -> str:
        return "simple"

    def build_spec(
        self,
        command: list[str],
        options: Options,
        source: Source,
        out: Sink,
        err: Sink,
    ) -> ProcessSpec:
        stdin = asyncio.subprocess.DEVNULL if isinstance(source, NoInput) else asyncio.subprocess.PIPE
        stdout = asyncio.subprocess.DEVNULL if isinstance(out, Discard) else asyncio.subprocess.PIPE

        if isinstance(err, Merge):
            stderr = asyncio.subprocess.DEVNULL if isinstance(out, Discard) else asyncio.subprocess.STDOUT
        elif isinstance(err, Discard):
            stderr = asyncio.subprocess.DEVNULL
        else:
            stderr = asyncio.subprocess.PIPE

        return ProcessSpec(
            argv=command,
            cwd=options.dir,
            env=options.child_env(os.environ),
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
        )

    def create_channel(self, spec: ProcessSpec) -> Channel:
        return PipeChannel(spec, term_timeout=self.term_timeout, kill_timeout=self.kill_timeout)
