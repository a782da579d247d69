"""porthole - run external programs and talk to them from asyncio.

Environment variables:
    PORTHOLE_DRIVER: auto/goon/simple (default auto)
    PORTHOLE_GOON: goon helper command line
    PORTHOLE_TERM_TIMEOUT: grace period after SIGTERM (default 2.0)
    PORTHOLE_LOG_DEBUG: debug logging to a temp file (default false)

Usage:
    import porthole

    result = await porthole.exec("cat", in_="Hello world!")
    handle = await porthole.spawn("cat", out="stream")
"""

import logging

__version__ = "0.1.0"

from .api import exec, exec_shell, get_driver, reinit, spawn, spawn_shell
from .errors import (
    ChannelClosedError,
    CommandNotFound,
    InvalidOptions,
    PortholeError,
    ProcessNotRunning,
    ProtocolError,
)
from .messages import ProcessData, ProcessResult
from .process import ProcessHandle
from .result import Result
from .bridge import StreamBridge

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "exec",
    "exec_shell",
    "spawn",
    "spawn_shell",
    "get_driver",
    "reinit",
    "Result",
    "ProcessHandle",
    "ProcessData",
    "ProcessResult",
    "StreamBridge",
    "PortholeError",
    "CommandNotFound",
    "InvalidOptions",
    "ProtocolError",
    "ChannelClosedError",
    "ProcessNotRunning",
]
