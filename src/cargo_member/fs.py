"""Directory operations on package trees.

Only manifest edits are transactional; a failed tree operation leaves behind
whatever it already copied or removed.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import stat
import tempfile
from collections.abc import Callable
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError

from cargo_member.errors import DestinationExists, FilesystemError, ManifestParseError, PackageValidation
from cargo_member.locator import MANIFEST_FILENAME

logger = logging.getLogger(__name__)

BUILD_DIRNAME = "target"

_PACKAGE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to a sibling temp file and rename it over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            delete=False,
            prefix=f".{path.name}.",
            suffix=".tmp",
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            tmp_file.write(content)
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise


def _target_mode(path: Path) -> int:
    """Mode the replacement should carry: the existing file's, else the umask default."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def copy_tree(src: Path, dst: Path) -> None:
    """Recursively copy a package, skipping its top-level build directory."""
    if dst.exists():
        raise DestinationExists(f"`{dst}` already exists")
    if not src.is_dir():
        raise FilesystemError(f"`{src}` is not a directory")

    def _ignore(directory: str, names: list[str]) -> list[str]:
        if Path(directory) == src and BUILD_DIRNAME in names:
            return [BUILD_DIRNAME]
        return []

    logger.debug("copying %s to %s", src, dst)
    try:
        shutil.copytree(src, dst, symlinks=True, ignore=_ignore)
    except (OSError, shutil.Error) as exc:
        raise FilesystemError(f"failed to copy `{src}` to `{dst}`") from exc


def remove_tree(path: Path) -> None:
    """Delete a directory tree (or a single file)."""
    logger.debug("removing %s", path)
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
    except OSError as exc:
        raise FilesystemError(f"failed to remove `{path}`") from exc


def move_tree(
    src: Path,
    dst: Path,
    *,
    before_remove: Callable[[], None] | None = None,
) -> None:
    """Copy ``src`` to ``dst`` and then delete ``src``.

    Copy-then-delete works across filesystems. ``before_remove`` runs between
    the two steps; if it raises, ``src`` is kept.
    """
    copy_tree(src, dst)
    if before_remove is not None:
        before_remove()
    remove_tree(src)


def validate_package_name(name: str) -> str:
    if not _PACKAGE_NAME.match(name):
        raise PackageValidation(f"`{name}` is not a valid package name")
    return name


def rename_package(package_dir: Path, new_name: str) -> str:
    """Rewrite ``package.name`` in ``package_dir/Cargo.toml``; return the old name."""
    manifest = package_dir / MANIFEST_FILENAME
    try:
        document = tomlkit.parse(manifest.read_text(encoding="utf-8"))
    except OSError as exc:
        raise FilesystemError(f"failed to read `{manifest}`") from exc
    except (TOMLKitError, UnicodeDecodeError) as exc:
        raise ManifestParseError(f"failed to parse `{manifest}`") from exc

    package = document.get("package")
    if package is None or "name" not in package:
        raise PackageValidation(f"`{manifest}` has no `package.name`")
    old_name = str(package["name"])
    package["name"] = validate_package_name(new_name)
    try:
        atomic_write_text(manifest, tomlkit.dumps(document))
    except OSError as exc:
        raise FilesystemError(f"failed to write `{manifest}`") from exc
    return old_name
