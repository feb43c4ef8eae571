"""Resolve user-supplied paths and package-ID specifiers to packages."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path, PurePath

from cargo_member.cargo.metadata import Metadata
from cargo_member.errors import AmbiguousSpec, ManifestParseError, ResolutionError, UnknownSpec

MANIFEST_FILENAME = "Cargo.toml"


@dataclass(frozen=True)
class PackageRef:
    """Where a package lives and what it is called."""

    absolute_path: Path
    name: str | None
    exists_on_disk: bool

    @property
    def is_package(self) -> bool:
        return self.name is not None


def trim_leading_dots(path: PurePath) -> PurePath:
    """Drop leading ``.`` components (``./a/b`` -> ``a/b``)."""
    parts = list(path.parts)
    while parts and parts[0] == ".":
        parts.pop(0)
    return type(path)(*parts)


def absolutize(path: Path, cwd: Path) -> Path:
    """Join ``path`` onto ``cwd`` and collapse ``..`` without touching symlinks."""
    return Path(os.path.normpath(cwd / trim_leading_dots(path)))


def read_package_name(directory: Path) -> str | None:
    """Return ``package.name`` of ``directory/Cargo.toml``, or None if absent."""
    manifest = directory / MANIFEST_FILENAME
    if not manifest.is_file():
        return None
    try:
        with manifest.open("rb") as handle:
            data = tomllib.load(handle)
    except OSError as exc:
        raise ManifestParseError(f"failed to read `{manifest}`") from exc
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ManifestParseError(f"failed to parse `{manifest}`") from exc
    package = data.get("package")
    if not isinstance(package, dict):
        return None
    name = package.get("name")
    return name if isinstance(name, str) else None


def resolve_path(path: Path, cwd: Path) -> PackageRef:
    absolute = absolutize(path, cwd)
    return PackageRef(
        absolute_path=absolute,
        name=read_package_name(absolute),
        exists_on_disk=absolute.exists(),
    )


def resolve_spec(spec: str, metadata: Metadata) -> PackageRef:
    """Look up a package-ID specifier among the workspace members."""
    matches = metadata.matching(spec)
    if not matches:
        raise UnknownSpec(f"package ID specification `{spec}` did not match any packages")
    if len(matches) > 1:
        candidates = "\n".join(f"  {package.id}" for package in matches)
        raise AmbiguousSpec(
            f"package ID specification `{spec}` is ambiguous; candidates:\n{candidates}"
        )
    package = matches[0]
    return PackageRef(
        absolute_path=package.manifest_dir,
        name=package.name,
        exists_on_disk=package.manifest_dir.exists(),
    )


def member_entry(workspace_root: Path, package_path: Path) -> str:
    """Express ``package_path`` the way it is written in `workspace.members`.

    The result is relative to ``workspace_root``, uses forward slashes, and has
    no leading ``./``.
    """
    candidates = [(package_path, workspace_root)]
    if package_path.exists() or workspace_root.exists():
        candidates.append((_resolve_existing(package_path), workspace_root.resolve()))
    for path, root in candidates:
        try:
            relative = path.relative_to(root)
        except ValueError:
            continue
        entry = trim_leading_dots(PurePath(relative.as_posix())).as_posix()
        if entry in ("", "."):
            raise ResolutionError(f"`{package_path}` is the workspace root itself")
        return entry
    raise ResolutionError(f"`{package_path}` is outside of the workspace root `{workspace_root}`")


def _resolve_existing(path: Path) -> Path:
    # Resolve the deepest existing ancestor so paths that are about to be
    # created still compare against a canonical root.
    missing: list[str] = []
    probe = path
    while not probe.exists() and probe.parent != probe:
        missing.append(probe.name)
        probe = probe.parent
    return probe.resolve().joinpath(*reversed(missing))
