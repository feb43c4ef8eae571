"""Shared fixtures: a temporary cargo workspace and an in-process fake cargo."""

from __future__ import annotations

import io
import os
import tomllib
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console

from cargo_member.cargo.metadata import Metadata
from cargo_member.context import ColorChoice, Context


def write_package(directory: Path, name: str, *, version: str = "0.1.0", lib: bool = False) -> Path:
    """Write a minimal package (manifest plus one source file)."""
    (directory / "src").mkdir(parents=True, exist_ok=True)
    (directory / "Cargo.toml").write_text(
        "[package]\n"
        f'name = "{name}"\n'
        f'version = "{version}"\n'
        'edition = "2021"\n'
        "\n"
        "# keep me\n"
        "[dependencies]\n",
        encoding="utf-8",
    )
    source = "lib.rs" if lib else "main.rs"
    (directory / "src" / source).write_text("fn main() {}\n", encoding="utf-8")
    return directory


class FakeCargo:
    """In-process stand-in for `cargo locate-project`, `metadata` and `new`.

    Metadata is derived from the root manifest on every call: the root package
    (if any) plus every literal `members` entry that is not excluded.
    """

    def __init__(self, root: Path):
        self.root = root
        self.calls: list[tuple[Any, ...]] = []

    def locate_project(self, manifest_path: Path | None, *, cwd: Path) -> Path:
        self.calls.append(("locate-project", manifest_path))
        if manifest_path is not None:
            return Path(os.path.normpath(cwd / manifest_path))
        return self.root / "Cargo.toml"

    def metadata(
        self,
        manifest_path: Path | None,
        *,
        cwd: Path,
        frozen: bool,
        locked: bool,
        offline: bool,
    ) -> Metadata:
        self.calls.append(("metadata", frozen, locked, offline))
        data = tomllib.loads((self.root / "Cargo.toml").read_text(encoding="utf-8"))
        workspace = data.get("workspace", {})
        excluded = set(workspace.get("exclude", []))
        directories = [self.root / entry for entry in workspace.get("members", []) if entry not in excluded]
        if "package" in data:
            directories.insert(0, self.root)

        packages = []
        for directory in directories:
            manifest = directory / "Cargo.toml"
            if not manifest.exists():
                continue
            package = tomllib.loads(manifest.read_text(encoding="utf-8"))["package"]
            packages.append(
                {
                    "id": f"path+file://{directory}#{package['name']}@{package['version']}",
                    "name": package["name"],
                    "version": package["version"],
                    "manifest_path": str(manifest),
                }
            )
        return Metadata.from_dict(
            {
                "workspace_root": str(self.root),
                "packages": packages,
                "workspace_members": [package["id"] for package in packages],
            }
        )

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
        self.calls.append(("new", path, registry, vcs, lib, name))
        write_package(path, name or path.name, lib=lib)


class Workspace:
    """A workspace rooted in a temp dir, with helpers to build and inspect it."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.cargo = FakeCargo(root)
        self.stderr = io.StringIO()

    def write_manifest(self, text: str) -> Path:
        path = self.root / "Cargo.toml"
        path.write_text(text, encoding="utf-8")
        return path

    def add_package(self, relative: str, name: str | None = None, *, version: str = "0.1.0") -> Path:
        return write_package(self.root / relative, name or Path(relative).name, version=version)

    def manifest_text(self) -> str:
        return (self.root / "Cargo.toml").read_text(encoding="utf-8")

    def members(self) -> list[str]:
        return tomllib.loads(self.manifest_text()).get("workspace", {}).get("members", [])

    def exclude(self) -> list[str]:
        return tomllib.loads(self.manifest_text()).get("workspace", {}).get("exclude", [])

    def context(self, cwd: Path | None = None) -> Context:
        return Context(
            cwd=cwd or self.root,
            cargo=self.cargo,
            console=Console(file=self.stderr, no_color=True, width=200, highlight=False),
            color=ColorChoice.NEVER,
            inherit_stderr=False,
        )

    @property
    def output(self) -> str:
        return self.stderr.getvalue()


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path / "ws")


@pytest.fixture
def make_workspace(tmp_path: Path):
    def _make(name: str) -> Workspace:
        return Workspace(tmp_path / name)

    return _make
