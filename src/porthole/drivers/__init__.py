"""Process drivers.

Two backends:
    GoonDriver   - through the goon helper (framed output, end-of-input)
    SimpleDriver - plain pipes

Factory:
    from porthole.drivers import create_driver

    driver = create_driver()          # from PORTHOLE_* environment
    driver = create_driver("simple")  # explicit backend
"""

from __future__ import annotations

import logging

from ..config import Config, DriverMode, get_config
from .base import Driver, shell_argv
from .goon import GoonDriver
from .simple import SimpleDriver

__all__ = [
    "Driver",
    "GoonDriver",
    "SimpleDriver",
    "shell_argv",
    "create_driver",
]

logger = logging.getLogger(__name__)


def create_driver(
    mode: DriverMode | str | None = None,
    config: Config | None = None,
) -> Driver:
    """Create a driver for the configured backend.

    Args:
        mode: Backend override (defaults to config.driver)
        config: Configuration (defaults to get_config())

    Returns:
        GoonDriver or SimpleDriver

    Raises:
        RuntimeError: goon was requested but the helper cannot be found
    """
    config = config or get_config()
    if mode is None:
        mode = config.driver
    elif isinstance(mode, str):
        mode = DriverMode(mode.lower())

    if mode is DriverMode.SIMPLE:
        return SimpleDriver(term_timeout=config.term_timeout)

    if config.goon is not None:
        logger.debug(f"Using goon helper: {' '.join(config.goon)}")
        return GoonDriver(config.goon, term_timeout=config.term_timeout)

    if mode is DriverMode.GOON:
        raise RuntimeError("goon helper not found (set PORTHOLE_GOON or put goon on PATH)")

    logger.info("goon helper not found, using the simple backend (no end-of-input support)")
    return SimpleDriver(term_timeout=config.term_timeout)
