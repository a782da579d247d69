"""goon driver: sessions run through the goon helper.

Command format:
    goon -proto 0.0 \\
      [-in] \\
      [-out nil] \\
      [-err nil|out] \\
      [-dir {dir}] \\
      -- {prog} {args...}

The helper multiplexes the program's stdout and stderr into tagged frames on
its own stdout and understands an end-of-input frame, so programs that read
all of stdin before answering work on this backend.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence

from ..options import Options
from ..runtime.channel import DEFAULT_KILL_TIMEOUT, DEFAULT_TERM_TIMEOUT, Channel, FramedChannel, ProcessSpec
from ..runtime.protocol import handshake_flags, helper_argv
from ..sinks import Sink
from ..sources import Source
from .base import Driver

__all__ = ["GoonDriver"]

logger = logging.getLogger(__name__)


class GoonDriver(Driver):
    """Driver backed by the goon helper.

    Example:
        driver = GoonDriver(["/usr/local/bin/goon"])
        result = await driver.exec("cat", in_="Hello world!")
    """

    def __init__(
        self,
        goon: Sequence[str],
        *,
        term_timeout: float = DEFAULT_TERM_TIMEOUT,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
    ) -> None:
        super().__init__(term_timeout=term_timeout, kill_timeout=kill_timeout)
        if not goon:
            raise ValueError("goon helper command must not be empty")
        self.goon = list(goon)

    def __repr__(self) -> str:
        return f"GoonDriver(goon={self.goon})"

    @property
    def name(self) -> str:
        return "goon"

    def build_spec(
        self,
        command: list[str],
        options: Options,
        source: Source,
        out: Sink,
        err: Sink,
    ) -> ProcessSpec:
        flags = handshake_flags(source, out, err, options.dir)
        return ProcessSpec(
            argv=helper_argv(self.goon, flags, command),
            env=options.child_env(os.environ),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            # The helper's own diagnostics go to our stderr
            stderr=None,
        )

    def create_channel(self, spec: ProcessSpec) -> Channel:
        return FramedChannel(spec, term_timeout=self.term_timeout, kill_timeout=self.kill_timeout)
