"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from porthole.errors import ChannelClosedError  # noqa: E402
from porthole.runtime.events import ExitEvent  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"
FAKE_GOON = FIXTURES_DIR / "fake_goon.py"


@pytest.fixture
def fake_goon() -> list[str]:
    """argv prefix that runs the fake goon helper."""
    return [sys.executable, str(FAKE_GOON)]


@pytest.fixture
def goon_driver(fake_goon: list[str]):
    """GoonDriver over the fake helper, with short shutdown timeouts."""
    from porthole.drivers import GoonDriver

    return GoonDriver(fake_goon, term_timeout=0.5, kill_timeout=0.3)


@pytest.fixture
def simple_driver():
    """SimpleDriver with short shutdown timeouts."""
    from porthole.drivers import SimpleDriver

    return SimpleDriver(term_timeout=0.5, kill_timeout=0.3)


class FakeChannel:
    """In-memory stand-in for a process channel.

    Tests push events with emit()/exit(); writes are recorded. Emitting an
    exception makes the event stream raise it.
    """

    def __init__(self) -> None:
        self.writes: list[bytes] = []
        self.closed = False
        self.close_calls = 0
        self.pid = 4242
        self._events: asyncio.Queue = asyncio.Queue()

    def emit(self, event) -> None:
        self._events.put_nowait(event)

    def exit(self, status: int | None = 0) -> None:
        self.emit(ExitEvent(status))

    async def write(self, data: bytes) -> None:
        if self.closed:
            raise ChannelClosedError("Channel is closed")
        self.writes.append(data)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True

    async def events(self):
        while True:
            event = await self._events.get()
            if isinstance(event, BaseException):
                raise event
            yield event
            if isinstance(event, ExitEvent):
                return


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()
