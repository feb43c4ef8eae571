"""Command runner for cargo invocations."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from cargo_member.errors import CollaboratorError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecResult:
    """Result envelope for subprocess execution."""

    argv: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str
    stderr: str


class ExecError(CollaboratorError):
    """Raised when a command returns non-zero in check mode."""

    def __init__(self, result: ExecResult):
        detail = (result.stderr or result.stdout).strip().removeprefix("error: ")
        rendered = " ".join(result.argv)
        super().__init__(detail or f"command failed ({result.returncode}): {rendered}")
        self.result = result


def run_command(
    argv: list[str],
    *,
    cwd: Path,
    check: bool = True,
    inherit_stderr: bool = False,
) -> ExecResult:
    """Run command and return structured result.

    With ``inherit_stderr`` the child writes straight to our stderr and the
    result carries an empty ``stderr``.
    """
    logger.debug("running `%s` in %s", " ".join(argv), cwd)
    try:
        completed = subprocess.run(
            argv,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=None if inherit_stderr else subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise CollaboratorError(f"failed to execute `{argv[0]}`") from exc
    result = ExecResult(
        argv=tuple(argv),
        cwd=cwd,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if check and result.returncode != 0:
        raise ExecError(result)
    return result
