"""Messages posted to a caller's mailbox.

When ``out`` or ``err`` is a mailbox (any object with ``put_nowait``, usually
an asyncio.Queue), every chunk is posted as a ProcessData message and the
final result as a single ProcessResult message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .result import Result

__all__ = ["ProcessData", "ProcessResult"]


@dataclass(frozen=True)
class ProcessData:
    """One chunk of process output.

    Attributes:
        sender: Worker id of the session that produced the chunk
        channel: "out" or "err"
        data: Raw bytes
    """

    sender: str
    channel: Literal["out", "err"]
    data: bytes


@dataclass(frozen=True)
class ProcessResult:
    """Final result of a session (None when the result mode is "discard")."""

    sender: str
    result: "Result | None"
