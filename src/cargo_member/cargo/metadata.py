"""Typed view of `cargo metadata --format-version 1` output."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

from cargo_member.errors import ResolutionError


@dataclass(frozen=True)
class MetadataPackage:
    """One package entry of the metadata payload."""

    id: str
    name: str
    version: str
    manifest_path: Path

    @property
    def manifest_dir(self) -> Path:
        return self.manifest_path.parent

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetadataPackage:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            version=str(data["version"]),
            manifest_path=Path(data["manifest_path"]),
        )


@dataclass(frozen=True)
class Metadata:
    """Workspace root plus the packages cargo reports for it."""

    workspace_root: Path
    packages: tuple[MetadataPackage, ...]
    workspace_members: tuple[str, ...]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Metadata:
        """Parse the JSON payload; raises KeyError/TypeError on bad shape."""
        return cls(
            workspace_root=Path(data["workspace_root"]),
            packages=tuple(MetadataPackage.from_dict(p) for p in data["packages"]),
            workspace_members=tuple(str(m) for m in data["workspace_members"]),
        )

    def members(self) -> list[MetadataPackage]:
        """Return workspace member packages in `workspace_members` order."""
        by_id = {package.id: package for package in self.packages}
        return [by_id[member_id] for member_id in self.workspace_members if member_id in by_id]

    def matching(self, spec: str) -> list[MetadataPackage]:
        """Return every member package selected by a package-ID specifier."""
        parsed = PackageIdSpec.parse(spec)
        return [
            package
            for package in self.members()
            if package.id == spec or parsed.matches(package)
        ]


@dataclass(frozen=True)
class PackageIdSpec:
    """Parsed package-ID specifier.

    Accepted forms: ``name``, ``name@version``, ``name:version``, and URL forms
    such as ``path+file:///ws/foo#foo@0.1.0`` or ``file:///ws/foo#0.1.0``.
    A partial version (``1`` or ``1.2``) matches any version it prefixes.
    """

    name: str | None
    version: str | None
    url: str | None

    @classmethod
    def parse(cls, spec: str) -> PackageIdSpec:
        text = spec.strip()
        if not text:
            raise ResolutionError("empty package ID specification")

        if "://" not in text:
            name, version = _split_name_version(text)
            return cls(name=name, version=version, url=None)

        url, _, fragment = text.partition("#")
        name, version = _split_name_version(fragment) if fragment else (None, None)
        if version is None and fragment[:1].isdigit():
            name, version = None, fragment
        if name is None:
            name = url.rstrip("/").rsplit("/", 1)[-1] or None
        return cls(name=name, version=version, url=url)

    def matches(self, package: MetadataPackage) -> bool:
        if self.name is not None and self.name != package.name:
            return False
        if self.version is not None and not (
            package.version == self.version or package.version.startswith(f"{self.version}.")
        ):
            return False
        if self.url is not None:
            location = _url_to_path(self.url)
            if location is None or location != package.manifest_dir:
                return False
        return True


def _split_name_version(text: str) -> tuple[str | None, str | None]:
    for separator in ("@", ":"):
        if separator in text:
            name, _, version = text.partition(separator)
            return (name or None), (version or None)
    return (text or None), None


def _url_to_path(url: str) -> Path | None:
    parsed = urlparse(url.removeprefix("path+"))
    if parsed.scheme != "file":
        return None
    return Path(unquote(parsed.path))
