"""porthole environment configuration.

Environment variables:
    PORTHOLE_DRIVER: which backend drives processes
        - auto = goon when the helper can be located, simple otherwise (default)
        - goon = always use the goon helper
        - simple = always use the basic backend

    PORTHOLE_GOON: command line of the goon helper
        - split with shlex, e.g. "/opt/bin/goon" or "python3 /srv/goon.py"
        - unset = ./goon in the working directory, else goon on PATH

    PORTHOLE_TERM_TIMEOUT: seconds to wait after SIGTERM when a channel closes
        - default 2.0, clamped to 0.1-30

    PORTHOLE_LOG_DEBUG: debug logging
        - true/1/yes/on = debug log written to a temp file
        - false/0/no = INFO to stderr (default)
"""

from __future__ import annotations

import os
import shlex
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

__all__ = ["Config", "DriverMode", "load_config", "get_config", "reload_config", "find_goon"]

DEFAULT_TERM_TIMEOUT = 2.0


class DriverMode(Enum):
    """Backend selection.

    - AUTO: goon if available, else simple
    - GOON: enhanced backend with framing and end-of-input support
    - SIMPLE: fallback backend over plain pipes
    """

    AUTO = "auto"
    GOON = "goon"
    SIMPLE = "simple"

    @classmethod
    def from_string(cls, value: str) -> "DriverMode":
        """Parse a mode name, falling back to AUTO for unknown values."""
        value = value.lower().strip()
        for mode in cls:
            if mode.value == value:
                return mode
        return cls.AUTO


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_term_timeout(value: str | None) -> float:
    if not value:
        return DEFAULT_TERM_TIMEOUT
    try:
        timeout = float(value)
        return max(0.1, min(timeout, 30.0))
    except ValueError:
        return DEFAULT_TERM_TIMEOUT


def find_goon(value: str | None = None) -> list[str] | None:
    """Locate the goon helper.

    Args:
        value: Explicit helper command line (PORTHOLE_GOON)

    Returns:
        Helper argv prefix, or None when no helper can be found
    """
    if value and value.strip():
        argv = shlex.split(value)
        if shutil.which(argv[0]) or Path(argv[0]).is_file():
            return argv
        return None

    local = Path("goon")
    if local.is_file() and os.access(local, os.X_OK):
        return [str(local.resolve())]

    found = shutil.which("goon")
    return [found] if found else None


@dataclass
class Config:
    """porthole configuration.

    Attributes:
        driver: Backend selection mode
        goon: Helper argv prefix (None when not found)
        term_timeout: Grace period after SIGTERM when closing a channel
        log_debug: Debug logging to a file
        log_file: Log file path (set when log_debug=True)
    """

    driver: DriverMode = DriverMode.AUTO
    goon: list[str] | None = field(default=None)
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    log_debug: bool = False
    log_file: str | None = None

    @property
    def goon_available(self) -> bool:
        return self.goon is not None

    def __repr__(self) -> str:
        goon = " ".join(self.goon) if self.goon else "none"
        return (
            f"Config(driver={self.driver.value}, "
            f"goon={goon}, "
            f"term_timeout={self.term_timeout}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Build a timestamped debug log path under the system temp dir."""
    log_dir = Path(tempfile.gettempdir()) / "porthole"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"porthole_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("PORTHOLE_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    driver_value = os.environ.get("PORTHOLE_DRIVER")
    driver = DriverMode.from_string(driver_value) if driver_value else DriverMode.AUTO

    return Config(
        driver=driver,
        goon=find_goon(os.environ.get("PORTHOLE_GOON")),
        term_timeout=_parse_term_timeout(os.environ.get("PORTHOLE_TERM_TIMEOUT")),
        log_debug=log_debug,
        log_file=log_file,
    )


# Lazily loaded global instance
_config: Config | None = None


def get_config() -> Config:
    """Return the process-wide configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Re-read the environment (used by tests)."""
    global _config
    _config = load_config()
    return _config
