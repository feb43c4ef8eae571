"""Workspace manifest store.

Loads the root `Cargo.toml` into a tomlkit document so comments, ordering and
unrelated tables survive edits, exposes `workspace.members` and
`workspace.exclude`, and writes the whole document back once, atomically.
"""

from __future__ import annotations

import difflib
import logging
import tomllib
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import AbstractTable, Array
from tomlkit.toml_document import TOMLDocument

from cargo_member.errors import ManifestParseError, ManifestWriteError
from cargo_member.fs import atomic_write_text
from cargo_member.locator import MANIFEST_FILENAME
from cargo_member.membership import MembershipDelta, apply_to_lists

logger = logging.getLogger(__name__)

MEMBERS_KEY = "members"
EXCLUDE_KEY = "exclude"


class WorkspaceManifest:
    """Editable root manifest of a (possibly empty) workspace."""

    def __init__(
        self,
        root_path: Path,
        document: TOMLDocument,
        *,
        original_text: str,
        persisted: bool,
    ):
        self.root_path = root_path
        self.document = document
        self.original_text = original_text
        self.persisted = persisted

    @classmethod
    def load(cls, root_path: Path) -> WorkspaceManifest:
        """Read ``root_path/Cargo.toml``; a missing file yields an empty manifest."""
        path = root_path / MANIFEST_FILENAME
        if not path.exists():
            logger.debug("%s does not exist yet, starting from an empty manifest", path)
            return cls(root_path, tomlkit.document(), original_text="", persisted=False)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestParseError(f"failed to read `{path}`") from exc
        except UnicodeDecodeError as exc:
            raise ManifestParseError(f"failed to parse `{path}`: not valid UTF-8") from exc
        try:
            document = tomlkit.parse(text)
        except TOMLKitError as exc:
            raise ManifestParseError(f"failed to parse `{path}`") from exc
        manifest = cls(root_path, document, original_text=text, persisted=True)
        # Surface malformed `workspace` shapes at load time.
        manifest.members()
        manifest.exclude()
        return manifest

    @property
    def path(self) -> Path:
        return self.root_path / MANIFEST_FILENAME

    def members(self) -> list[str]:
        return self._entries(MEMBERS_KEY)

    def exclude(self) -> list[str]:
        return self._entries(EXCLUDE_KEY)

    def apply(self, delta: MembershipDelta) -> MembershipDelta:
        """Mutate the in-memory document; return the entries that changed."""
        _, _, effective = apply_to_lists(self.members(), self.exclude(), delta)
        if effective.is_empty():
            return effective

        for entry in effective.remove_members:
            self._remove(MEMBERS_KEY, entry)
        for entry in effective.remove_exclude:
            self._remove(EXCLUDE_KEY, entry)
        for entry in effective.add_members:
            self._array(MEMBERS_KEY, create=True).append(entry)
        for entry in effective.add_exclude:
            self._array(EXCLUDE_KEY, create=True).append(entry)
        logger.debug("applied %s to %s", effective, self.path)
        return effective

    def render(self) -> str:
        return tomlkit.dumps(self.document)

    def diff(self) -> str:
        return "".join(
            difflib.unified_diff(
                self.original_text.splitlines(keepends=True),
                self.render().splitlines(keepends=True),
                fromfile=str(self.path),
                tofile=str(self.path),
            )
        )

    def commit(self, *, dry_run: bool) -> bool:
        """Write the document back. Returns True if the file was replaced.

        Under ``dry_run`` only checks that the rendered text is valid TOML.
        """
        text = self.render()
        try:
            tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ManifestWriteError(f"refusing to write malformed TOML to `{self.path}`") from exc

        if dry_run or text == self.original_text:
            return False

        try:
            atomic_write_text(self.path, text)
        except OSError as exc:
            raise ManifestWriteError(f"failed to write `{self.path}`") from exc
        logger.info("wrote %s", self.path)
        self.original_text = text
        self.persisted = True
        return True

    def _workspace(self, *, create: bool) -> AbstractTable | None:
        workspace = self.document.get("workspace")
        if workspace is None:
            if not create:
                return None
            workspace = tomlkit.table()
            self.document["workspace"] = workspace
            return self.document["workspace"]
        if not isinstance(workspace, AbstractTable):
            raise ManifestParseError(f"`workspace` in `{self.path}` must be a table")
        return workspace

    def _array(self, key: str, *, create: bool = False) -> Array | None:
        workspace = self._workspace(create=create)
        if workspace is None:
            return None
        array = workspace.get(key)
        if array is None:
            if not create:
                return None
            workspace[key] = tomlkit.array()
            return workspace[key]
        if not isinstance(array, Array):
            raise ManifestParseError(f"`workspace.{key}` in `{self.path}` must be an array")
        return array

    def _entries(self, key: str) -> list[str]:
        array = self._array(key)
        if array is None:
            return []
        entries: list[str] = []
        for value in array:
            if not isinstance(value, str):
                raise ManifestParseError(
                    f"`workspace.{key}` in `{self.path}` must contain only strings"
                )
            entries.append(str(value))
        return entries

    def _remove(self, key: str, entry: str) -> None:
        array = self._array(key)
        if array is None:
            return
        for index in reversed(range(len(array))):
            if str(array[index]) == entry:
                del array[index]
