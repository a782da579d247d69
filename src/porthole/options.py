"""Invocation options.

Options are validated before any process is started: unknown keys and
malformed values both raise InvalidOptions.

Options:
    in: input source (also accepted as ``in_``)
    out: stdout sink (default "text")
    err: stderr sink (default None = discard)
    async_input: feed input concurrently with reading output
    dir: working directory
    env: environment overrides; None values unset a variable
    result: None (return), "discard" or "keep" (spawn only)
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidOptions

__all__ = ["Options", "compile_options", "KNOWN_OPTIONS"]

KNOWN_OPTIONS = frozenset({"in", "in_", "out", "err", "async_input", "dir", "env", "result"})


class Options(BaseModel):
    """Validated per-invocation options."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        arbitrary_types_allowed=True,
    )

    in_: Any = Field(default=None, alias="in")
    out: Any = "text"
    err: Any = None
    async_input: bool = False
    dir: Path | None = None
    env: dict[str, str | None] | None = None
    result: Literal["discard", "keep"] | None = None

    def child_env(self, base: Mapping[str, str]) -> dict[str, str] | None:
        """Merge env overrides over a base environment.

        Returns:
            The full environment, or None to inherit unchanged
        """
        if self.env is None:
            return None
        merged = dict(base)
        for name, value in self.env.items():
            if value is None:
                merged.pop(name, None)
            else:
                merged[name] = value
        return merged


def compile_options(opts: Mapping[str, Any]) -> Options:
    """Validate raw keyword options.

    Args:
        opts: Options as passed by the caller

    Returns:
        Validated Options

    Raises:
        InvalidOptions: Unknown keys or malformed values
    """
    unknown = sorted(set(opts) - KNOWN_OPTIONS)
    if unknown:
        raise InvalidOptions(f"Invalid options: {unknown}", keys=unknown)

    data = dict(opts)
    if "in_" in data:
        if "in" in data:
            raise InvalidOptions("Pass either 'in' or 'in_', not both", keys=["in", "in_"])
        data["in"] = data.pop("in_")

    try:
        return Options.model_validate(data)
    except ValidationError as e:
        raise InvalidOptions(f"Invalid options: {e}") from e
