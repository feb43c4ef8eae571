"""Tests for the workspace manifest store."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from cargo_member.errors import ManifestParseError, ManifestWriteError
from cargo_member.manifest import WorkspaceManifest
from cargo_member.membership import MembershipDelta

MANIFEST = """\
# workspace root
[workspace]
members = [
    "a", # first
    "b",
]
exclude = ["old"]

[profile.release]
lto = true
"""


def test_load_reads_members_and_exclude(tmp_path: Path) -> None:
    (tmp_path / "Cargo.toml").write_text(MANIFEST, encoding="utf-8")

    manifest = WorkspaceManifest.load(tmp_path)

    assert manifest.persisted
    assert manifest.members() == ["a", "b"]
    assert manifest.exclude() == ["old"]


def test_load_missing_manifest_is_empty_and_unpersisted(tmp_path: Path) -> None:
    manifest = WorkspaceManifest.load(tmp_path)

    assert not manifest.persisted
    assert manifest.members() == []
    assert manifest.exclude() == []
    assert manifest.commit(dry_run=False) is False
    assert not (tmp_path / "Cargo.toml").exists()


def test_first_persist_creates_workspace_table(tmp_path: Path) -> None:
    manifest = WorkspaceManifest.load(tmp_path / "nested")
    manifest.apply(MembershipDelta.include(["crates/a"]))

    assert manifest.commit(dry_run=False) is True
    written = WorkspaceManifest.load(tmp_path / "nested")
    assert written.members() == ["crates/a"]
    assert "exclude" not in (tmp_path / "nested" / "Cargo.toml").read_text(encoding="utf-8")


def test_commit_preserves_comments_and_other_tables(tmp_path: Path) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text(MANIFEST, encoding="utf-8")

    manifest = WorkspaceManifest.load(tmp_path)
    manifest.apply(MembershipDelta.include(["old"]))
    manifest.commit(dry_run=False)

    text = path.read_text(encoding="utf-8")
    assert "# workspace root" in text
    assert "# first" in text
    assert "[profile.release]" in text
    reloaded = WorkspaceManifest.load(tmp_path)
    assert reloaded.members() == ["a", "b", "old"]
    assert reloaded.exclude() == []


def test_package_manifest_gains_workspace_table(tmp_path: Path) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text('[package]\nname = "root"\nversion = "0.1.0"\n', encoding="utf-8")

    manifest = WorkspaceManifest.load(tmp_path)
    manifest.apply(MembershipDelta.include(["sub"]))
    manifest.commit(dry_run=False)

    text = path.read_text(encoding="utf-8")
    assert text.startswith('[package]\nname = "root"')
    assert "[workspace]" in text
    assert WorkspaceManifest.load(tmp_path).members() == ["sub"]


def test_dry_run_commit_leaves_file_untouched(tmp_path: Path) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text(MANIFEST, encoding="utf-8")

    manifest = WorkspaceManifest.load(tmp_path)
    effective = manifest.apply(MembershipDelta.exclude(["a"]))

    assert manifest.commit(dry_run=True) is False
    assert path.read_text(encoding="utf-8") == MANIFEST
    assert effective.remove_members == ["a"]
    assert any(line.startswith("-") and '"a"' in line for line in manifest.diff().splitlines())


def test_unchanged_manifest_is_not_rewritten(tmp_path: Path) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text(MANIFEST, encoding="utf-8")

    manifest = WorkspaceManifest.load(tmp_path)
    effective = manifest.apply(MembershipDelta.include(["a"]))

    assert effective.is_empty()
    assert manifest.commit(dry_run=False) is False
    assert manifest.diff() == ""


def test_commit_leaves_no_temp_files(tmp_path: Path) -> None:
    (tmp_path / "Cargo.toml").write_text(MANIFEST, encoding="utf-8")

    manifest = WorkspaceManifest.load(tmp_path)
    manifest.apply(MembershipDelta.include(["c"]))
    manifest.commit(dry_run=False)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["Cargo.toml"]


def test_malformed_manifest_raises_parse_error(tmp_path: Path) -> None:
    (tmp_path / "Cargo.toml").write_text("[workspace\nmembers = [", encoding="utf-8")

    with pytest.raises(ManifestParseError, match="failed to parse"):
        WorkspaceManifest.load(tmp_path)


def test_non_string_members_raise_parse_error(tmp_path: Path) -> None:
    (tmp_path / "Cargo.toml").write_text("[workspace]\nmembers = [1]\n", encoding="utf-8")

    with pytest.raises(ManifestParseError, match="only strings"):
        WorkspaceManifest.load(tmp_path)


def test_write_failure_raises_manifest_write_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "Cargo.toml").write_text(MANIFEST, encoding="utf-8")

    def _fail(path: Path, content: str) -> None:
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr("cargo_member.manifest.atomic_write_text", _fail)
    manifest = WorkspaceManifest.load(tmp_path)
    manifest.apply(MembershipDelta.include(["c"]))

    with pytest.raises(ManifestWriteError) as excinfo:
        manifest.commit(dry_run=False)
    assert isinstance(excinfo.value.__cause__, PermissionError)
    assert (tmp_path / "Cargo.toml").read_text(encoding="utf-8") == MANIFEST


@pytest.mark.parametrize("mode", [0o644, 0o640])
def test_commit_keeps_existing_file_mode(tmp_path: Path, mode: int) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text(MANIFEST, encoding="utf-8")
    path.chmod(mode)
    manifest = WorkspaceManifest.load(tmp_path)
    manifest.apply(MembershipDelta.include(["c"]))

    assert manifest.commit(dry_run=False)
    assert stat.S_IMODE(path.stat().st_mode) == mode


def test_first_persist_uses_umask_default_mode(tmp_path: Path) -> None:
    umask = os.umask(0o022)
    try:
        manifest = WorkspaceManifest.load(tmp_path)
        manifest.apply(MembershipDelta.include(["a"]))
        manifest.commit(dry_run=False)
    finally:
        os.umask(umask)

    assert stat.S_IMODE((tmp_path / "Cargo.toml").stat().st_mode) == 0o644


def test_non_utf8_manifest_raises_parse_error(tmp_path: Path) -> None:
    (tmp_path / "Cargo.toml").write_bytes(b'[workspace]\nmembers = ["\xff"]\n')

    with pytest.raises(ManifestParseError, match="not valid UTF-8") as excinfo:
        WorkspaceManifest.load(tmp_path)
    assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)
