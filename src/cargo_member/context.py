"""Per-invocation context threaded through every operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rich.console import Console

from cargo_member.cargo.service import CargoService


class ColorChoice(str, Enum):
    """Terminal coloring policy, mirrored from cargo's `--color`."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


def make_console(color: ColorChoice) -> Console:
    """Build the stderr console every status and error line goes through."""
    if color is ColorChoice.ALWAYS:
        return Console(stderr=True, force_terminal=True, highlight=False)
    if color is ColorChoice.NEVER:
        return Console(stderr=True, no_color=True, highlight=False)
    return Console(stderr=True, highlight=False)


@dataclass
class Context:
    """Process-wide state captured once at startup.

    ``inherit_stderr`` lets `cargo new` write its own diagnostics straight to
    the terminal.
    """

    cwd: Path
    cargo: CargoService
    console: Console
    color: ColorChoice = ColorChoice.AUTO
    inherit_stderr: bool = True

    @classmethod
    def capture(cls, *, color: ColorChoice, cargo: CargoService) -> Context:
        return cls(
            cwd=Path.cwd(),
            cargo=cargo,
            console=make_console(color),
            color=color,
        )
