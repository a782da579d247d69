"""Module-level entry points backed by a process-wide driver."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from .drivers import Driver, create_driver
from .process import ProcessHandle
from .result import Result

__all__ = ["get_driver", "reinit", "exec", "exec_shell", "spawn", "spawn_shell"]

logger = logging.getLogger(__name__)

# Created on first use
_driver: Driver | None = None


def get_driver() -> Driver:
    """Return the process-wide driver, creating it from configuration."""
    global _driver
    if _driver is None:
        _driver = create_driver()
        logger.debug(f"Initialized driver: {_driver!r}")
    return _driver


def reinit(driver: Driver | None = None) -> Driver:
    """Replace the process-wide driver.

    Args:
        driver: New driver (None = create a fresh one from configuration)
    """
    global _driver
    _driver = driver or create_driver()
    logger.debug(f"Reinitialized driver: {_driver!r}")
    return _driver


async def exec(prog: str, args: Sequence[Any] = (), **options: Any) -> Result:
    return await get_driver().exec(prog, args, **options)


async def exec_shell(command: str, **options: Any) -> Result:
    return await get_driver().exec_shell(command, **options)


async def spawn(prog: str, args: Sequence[Any] = (), **options: Any) -> ProcessHandle:
    return await get_driver().spawn(prog, args, **options)


async def spawn_shell(command: str, **options: Any) -> ProcessHandle:
    return await get_driver().spawn_shell(command, **options)
