"""Cargo-style terminal output on stderr."""

from __future__ import annotations

import logging
import os
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from cargo_member.membership import MembershipDelta

FATAL_EXIT_CODE = 101
LOG_LEVEL_ENV = "CARGO_MEMBER_LOG"


def configure_logging(console: Console) -> None:
    level = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(
        level=level if level in logging.getLevelNamesMapping() else "WARNING",
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


def status(console: Console, verb: str, message: str) -> None:
    """Print a right-aligned green verb followed by ``message``."""
    console.print(f"[bold green]{verb:>12}[/bold green] {escape(message)}")


def warn(console: Console, message: str) -> None:
    console.print(f"[bold yellow]warning:[/bold yellow] {escape(message)}")


def report_delta(console: Console, delta: MembershipDelta) -> None:
    for entry in delta.remove_members:
        status(console, "Removing", f"`{entry}` from `workspace.members`")
    for entry in delta.remove_exclude:
        status(console, "Removing", f"`{entry}` from `workspace.exclude`")
    for entry in delta.add_members:
        status(console, "Adding", f"`{entry}` to `workspace.members`")
    for entry in delta.add_exclude:
        status(console, "Adding", f"`{entry}` to `workspace.exclude`")


def causal_chain(error: BaseException) -> list[BaseException]:
    chain = [error]
    current: BaseException | None = error
    while True:
        current = current.__cause__ or (None if current.__suppress_context__ else current.__context__)
        if current is None or current in chain:
            return chain
        chain.append(current)


def exit_with_error(console: Console, error: BaseException) -> NoReturn:
    """Print ``error: ...`` plus every cause, then exit with code 101."""
    chain = causal_chain(error)
    console.print(f"[bold red]error:[/bold red] {escape(str(chain[0]))}")
    for cause in chain[1:]:
        console.print(f"\nCaused by:\n  {escape(str(cause) or type(cause).__name__)}")
    raise typer.Exit(FATAL_EXIT_CODE)
