"""Cargo collaborators behind a typed service boundary.

cargo-member trusts three cargo commands for their documented output:
``locate-project``, ``metadata`` and ``new``. Operations only talk to the
``CargoService`` protocol so tests can hand in a fake.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Protocol

from cargo_member.cargo.exec import run_command
from cargo_member.cargo.metadata import Metadata
from cargo_member.errors import CollaboratorError


class CargoService(Protocol):
    """The cargo commands cargo-member depends on."""

    def locate_project(self, manifest_path: Path | None, *, cwd: Path) -> Path:
        """Return the absolute path of the nearest `Cargo.toml`."""
        ...

    def metadata(
        self,
        manifest_path: Path | None,
        *,
        cwd: Path,
        frozen: bool,
        locked: bool,
        offline: bool,
    ) -> Metadata:
        """Return workspace metadata (without dependencies)."""
        ...

    def new(
        self,
        path: Path,
        *,
        cwd: Path,
        registry: str | None,
        vcs: str | None,
        lib: bool,
        name: str | None,
        offline: bool,
        color: str,
        inherit_stderr: bool,
    ) -> None:
        """Create a new package at ``path``."""
        ...


class SubprocessCargo:
    """``CargoService`` backed by the real cargo binary.

    Cargo exports ``$CARGO`` when it runs an external subcommand; outside of
    that, ``cargo`` on PATH is used.
    """

    def __init__(self, program: str | None = None):
        self.program = program or os.environ.get("CARGO") or "cargo"

    def locate_project(self, manifest_path: Path | None, *, cwd: Path) -> Path:
        args = ["locate-project"]
        if manifest_path is not None:
            args.extend(["--manifest-path", str(manifest_path)])
        result = run_command([self.program, *args], cwd=cwd)
        try:
            root = json.loads(result.stdout)["root"]
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            raise CollaboratorError("unexpected output from `cargo locate-project`") from exc
        return Path(root)

    def metadata(
        self,
        manifest_path: Path | None,
        *,
        cwd: Path,
        frozen: bool,
        locked: bool,
        offline: bool,
    ) -> Metadata:
        args = ["metadata", "--format-version", "1", "--no-deps"]
        if manifest_path is not None:
            args.extend(["--manifest-path", str(manifest_path)])
        if frozen:
            args.append("--frozen")
        if locked:
            args.append("--locked")
        if offline:
            args.append("--offline")
        result = run_command([self.program, *args], cwd=cwd)
        try:
            return Metadata.from_dict(json.loads(result.stdout))
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            raise CollaboratorError("unexpected output from `cargo metadata`") from exc

    def new(
        self,
        path: Path,
        *,
        cwd: Path,
        registry: str | None,
        vcs: str | None,
        lib: bool,
        name: str | None,
        offline: bool,
        color: str,
        inherit_stderr: bool,
    ) -> None:
        args = ["new", str(path), "--color", color]
        if registry is not None:
            args.extend(["--registry", registry])
        if vcs is not None:
            args.extend(["--vcs", vcs])
        if lib:
            args.append("--lib")
        if name is not None:
            args.extend(["--name", name])
        if offline:
            args.append("--offline")
        run_command([self.program, *args], cwd=cwd, inherit_stderr=inherit_stderr)
