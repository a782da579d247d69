"""Session result and the finalizer that produces it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .sinks import Sink, flatten

__all__ = ["Result", "finalize_result"]


@dataclass(frozen=True)
class Result:
    """Terminal value of one session.

    Attributes:
        status: Exit status, or None when the session was stopped first
        out: Flattened out sink
        err: Flattened err sink
    """

    status: int | None
    out: Any = None
    err: Any = None

    @property
    def success(self) -> bool:
        return self.status == 0


def finalize_result(status: int | None, out: Sink, err: Sink) -> Result:
    """Flatten both sinks independently into a Result."""
    return Result(status=status, out=flatten(out), err=flatten(err))
