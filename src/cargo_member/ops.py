"""Workspace membership operations.

Each driver resolves its inputs, stages a ``MembershipDelta`` against the root
manifest, performs any directory work, and commits the manifest once at the
end. Under ``dry_run`` the same delta and actions are computed and reported
but neither the manifest nor any package directory is touched.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from cargo_member import fs, ui
from cargo_member.cargo.metadata import Metadata
from cargo_member.context import Context
from cargo_member.errors import (
    DestinationExists,
    ManifestWriteError,
    PackageValidation,
    ResolutionError,
    UnknownSpec,
)
from cargo_member.locator import (
    PackageRef,
    absolutize,
    member_entry,
    resolve_path,
    resolve_spec,
)
from cargo_member.manifest import WorkspaceManifest
from cargo_member.membership import MembershipDelta

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommonOptions:
    """Flags every subcommand accepts."""

    manifest_path: Path | None = None
    offline: bool = False
    dry_run: bool = False


@dataclass(frozen=True)
class DirectoryTransfer:
    """Planned copy of a package tree for `cp` and `mv`."""

    source_path: Path
    destination_path: Path
    rename: bool
    old_name: str | None

    @property
    def new_name(self) -> str:
        return self.destination_path.name


@dataclass
class OperationReport:
    """What an operation changed, or would change under dry run."""

    command: str
    workspace_root: Path
    delta: MembershipDelta
    actions: list[tuple[str, str]] = field(default_factory=list)
    diff: str = ""
    written: bool = False
    dry_run: bool = False


def include(
    ctx: Context,
    options: CommonOptions,
    *,
    paths: Sequence[Path],
    force: bool = False,
) -> OperationReport:
    """Add packages to `workspace.members` (and drop them from `exclude`)."""
    root = _find_root_manifest(ctx, options)
    entries: list[str] = []
    for path in paths:
        ref = resolve_path(path, ctx.cwd)
        _require_package(ref, force=force)
        entries.append(member_entry(root, ref.absolute_path))

    manifest = WorkspaceManifest.load(root)
    report = _stage(ctx, "include", manifest, MembershipDelta.include(entries), options)
    _commit(ctx, manifest, report)
    return report


def exclude(
    ctx: Context,
    options: CommonOptions,
    *,
    paths: Sequence[Path] = (),
    packages: Sequence[str] = (),
) -> OperationReport:
    """Move packages from `workspace.members` to `workspace.exclude`."""
    metadata = _metadata(ctx, options)
    root = metadata.workspace_root
    entries = [member_entry(root, ref.absolute_path) for ref in _resolve_targets(ctx, metadata, paths, packages)]

    manifest = WorkspaceManifest.load(root)
    report = _stage(ctx, "exclude", manifest, MembershipDelta.exclude(entries), options)
    _commit(ctx, manifest, report)
    return report


def deactivate(
    ctx: Context,
    options: CommonOptions,
    *,
    paths: Sequence[Path] = (),
    packages: Sequence[str] = (),
) -> OperationReport:
    """Remove packages from both `workspace.members` and `workspace.exclude`."""
    metadata = _metadata(ctx, options)
    root = metadata.workspace_root
    entries = [member_entry(root, ref.absolute_path) for ref in _resolve_targets(ctx, metadata, paths, packages)]

    manifest = WorkspaceManifest.load(root)
    report = _stage(ctx, "deactivate", manifest, MembershipDelta.deactivate(entries), options)
    _warn_unlisted(ctx, entries, report.delta)
    _commit(ctx, manifest, report)
    return report


def focus(
    ctx: Context,
    options: CommonOptions,
    *,
    path: Path,
    exclude: bool = False,
) -> OperationReport:
    """Include one package and deactivate (or exclude) every other member."""
    metadata = _metadata(ctx, options)
    root = metadata.workspace_root
    target = resolve_path(path, ctx.cwd)
    _require_package(target, force=False)
    target_entry = member_entry(root, target.absolute_path)

    # The full set of others is fixed before anything is mutated.
    others: list[str] = []
    for package in metadata.members():
        if _same_dir(package.manifest_dir, root):
            continue
        entry = member_entry(root, package.manifest_dir)
        if entry != target_entry:
            others.append(entry)

    others_delta = MembershipDelta.exclude(others) if exclude else MembershipDelta.deactivate(others)
    delta = MembershipDelta.include([target_entry]).merge(others_delta)

    manifest = WorkspaceManifest.load(root)
    report = _stage(ctx, "focus", manifest, delta, options)
    if not exclude:
        _warn_unlisted(ctx, others, report.delta)
    _commit(ctx, manifest, report)
    return report


def new(
    ctx: Context,
    options: CommonOptions,
    *,
    path: Path,
    registry: str | None = None,
    vcs: str | None = None,
    lib: bool = False,
    name: str | None = None,
) -> OperationReport:
    """Create a package with `cargo new` and include it.

    If `cargo new` succeeds but including fails, the new package stays on disk.
    """
    root = _find_root_manifest(ctx, options)
    destination = absolutize(path, ctx.cwd)
    entry = member_entry(root, destination)
    if destination.exists():
        raise DestinationExists(f"`{destination}` already exists")

    actions: list[tuple[str, str]] = []
    if options.dry_run:
        actions.append(("Creating", f"`{entry}` package"))
        ui.status(ctx.console, "Creating", f"`{entry}` package")
    else:
        ctx.cargo.new(
            destination,
            cwd=ctx.cwd,
            registry=registry,
            vcs=vcs,
            lib=lib,
            name=name,
            offline=options.offline,
            color=ctx.color.value,
            inherit_stderr=ctx.inherit_stderr,
        )
        actions.append(("Created", f"`{entry}` package"))
        _require_package(resolve_path(destination, ctx.cwd), force=False)

    manifest = WorkspaceManifest.load(root)
    report = _stage(ctx, "new", manifest, MembershipDelta.include([entry]), options)
    report.actions[:0] = actions
    _commit(ctx, manifest, report)
    return report


def cp(
    ctx: Context,
    options: CommonOptions,
    *,
    src: str,
    dst: Path,
    no_rename: bool = False,
) -> OperationReport:
    """Copy a member package to ``dst`` and include the copy."""
    metadata = _metadata(ctx, options)
    root = metadata.workspace_root
    source = _resolve_source(ctx, metadata, src)
    transfer = _plan_transfer(ctx, source, dst, no_rename=no_rename)
    dst_entry = member_entry(root, transfer.destination_path)

    actions = _transfer_actions(ctx, root, transfer)
    if not options.dry_run:
        fs.copy_tree(transfer.source_path, transfer.destination_path)
        _rename_copy(transfer)

    manifest = WorkspaceManifest.load(root)
    report = _stage(ctx, "cp", manifest, MembershipDelta.include([dst_entry]), options)
    report.actions[:0] = actions
    _commit(ctx, manifest, report)
    return report


def rm(
    ctx: Context,
    options: CommonOptions,
    *,
    paths: Sequence[Path] = (),
    packages: Sequence[str] = (),
    force: bool = False,
) -> OperationReport:
    """Delete packages from disk and drop them from both workspace lists.

    The manifest is committed before any tree is deleted.
    """
    metadata = _metadata(ctx, options)
    root = metadata.workspace_root
    targets: list[PackageRef] = []
    for path in paths:
        ref = resolve_path(path, ctx.cwd)
        _require_package(ref, force=force)
        targets.append(ref)
    targets.extend(resolve_spec(spec, metadata) for spec in packages)
    entries = [member_entry(root, target.absolute_path) for target in targets]

    manifest = WorkspaceManifest.load(root)
    report = _stage(ctx, "rm", manifest, MembershipDelta.deactivate(entries), options)
    doomed = [target for target in targets if target.exists_on_disk]
    for target in doomed:
        message = f"`{_display(root, target.absolute_path)}`"
        report.actions.append(("Deleting", message))
        ui.status(ctx.console, "Deleting", message)
    _commit(ctx, manifest, report)

    if not options.dry_run:
        for target in doomed:
            fs.remove_tree(target.absolute_path)
    return report


def mv(
    ctx: Context,
    options: CommonOptions,
    *,
    src: str,
    dst: Path,
    no_rename: bool = False,
) -> OperationReport:
    """Move a member package to ``dst``.

    Copy, commit the manifest, then delete the source. A failed copy changes
    nothing; a failed commit leaves both directories on disk.
    """
    metadata = _metadata(ctx, options)
    root = metadata.workspace_root
    source = _resolve_source(ctx, metadata, src)
    transfer = _plan_transfer(ctx, source, dst, no_rename=no_rename)
    src_entry = member_entry(root, transfer.source_path)
    dst_entry = member_entry(root, transfer.destination_path)

    actions = _transfer_actions(ctx, root, transfer)
    message = f"`{src_entry}`"
    actions.append(("Deleting", message))
    ui.status(ctx.console, "Deleting", message)

    manifest = WorkspaceManifest.load(root)
    delta = MembershipDelta.deactivate([src_entry]).merge(MembershipDelta.include([dst_entry]))
    report = _stage(ctx, "mv", manifest, delta, options)
    report.actions[:0] = actions

    if options.dry_run:
        _commit(ctx, manifest, report)
        return report

    def _rename_and_commit() -> None:
        _rename_copy(transfer)
        try:
            _commit(ctx, manifest, report)
        except ManifestWriteError as exc:
            raise ManifestWriteError(
                f"failed to update the manifest; both `{src_entry}` and `{dst_entry}` were left on disk"
            ) from exc

    fs.move_tree(transfer.source_path, transfer.destination_path, before_remove=_rename_and_commit)
    return report


def _find_root_manifest(ctx: Context, options: CommonOptions) -> Path:
    """Directory of the nearest manifest; it may not declare a workspace yet."""
    return ctx.cargo.locate_project(options.manifest_path, cwd=ctx.cwd).parent


def _metadata(ctx: Context, options: CommonOptions) -> Metadata:
    # Dry runs must not touch Cargo.lock.
    return ctx.cargo.metadata(
        options.manifest_path,
        cwd=ctx.cwd,
        frozen=options.dry_run,
        locked=options.dry_run,
        offline=options.offline,
    )


def _require_package(ref: PackageRef, *, force: bool) -> None:
    if force or ref.is_package:
        return
    if not ref.exists_on_disk:
        raise PackageValidation(f"`{ref.absolute_path}` does not exist")
    raise PackageValidation(
        f"`{ref.absolute_path}` is not a package (use `--force` to allow non-package paths)"
    )


def _resolve_targets(
    ctx: Context,
    metadata: Metadata,
    paths: Sequence[Path],
    packages: Sequence[str],
) -> list[PackageRef]:
    targets = [resolve_path(path, ctx.cwd) for path in paths]
    targets.extend(resolve_spec(spec, metadata) for spec in packages)
    return targets


def _resolve_source(ctx: Context, metadata: Metadata, src: str) -> PackageRef:
    """Resolve `cp`/`mv` sources as a spec first, then as a package path."""
    try:
        return resolve_spec(src, metadata)
    except UnknownSpec:
        ref = resolve_path(Path(src), ctx.cwd)
        if ref.is_package:
            return ref
        raise


def _plan_transfer(ctx: Context, source: PackageRef, dst: Path, *, no_rename: bool) -> DirectoryTransfer:
    destination = absolutize(dst, ctx.cwd)
    if destination.exists():
        raise DestinationExists(f"`{destination}` already exists")
    if destination == source.absolute_path or source.absolute_path in destination.parents:
        raise ResolutionError(f"cannot copy `{source.absolute_path}` into itself")

    rename = not no_rename and source.name is not None and source.name != destination.name
    if rename:
        fs.validate_package_name(destination.name)
    return DirectoryTransfer(
        source_path=source.absolute_path,
        destination_path=destination,
        rename=rename,
        old_name=source.name,
    )


def _transfer_actions(ctx: Context, root: Path, transfer: DirectoryTransfer) -> list[tuple[str, str]]:
    actions = [
        (
            "Copying",
            f"`{_display(root, transfer.source_path)}` to `{_display(root, transfer.destination_path)}`",
        )
    ]
    if transfer.rename:
        actions.append(("Renaming", f"`{transfer.old_name}` to `{transfer.new_name}`"))
    for verb, message in actions:
        ui.status(ctx.console, verb, message)
    return actions


def _rename_copy(transfer: DirectoryTransfer) -> None:
    if transfer.rename:
        fs.rename_package(transfer.destination_path, transfer.new_name)


def _stage(
    ctx: Context,
    command: str,
    manifest: WorkspaceManifest,
    delta: MembershipDelta,
    options: CommonOptions,
) -> OperationReport:
    effective = manifest.apply(delta)
    ui.report_delta(ctx.console, effective)
    return OperationReport(
        command=command,
        workspace_root=manifest.root_path,
        delta=effective,
        diff=manifest.diff(),
        dry_run=options.dry_run,
    )


def _commit(ctx: Context, manifest: WorkspaceManifest, report: OperationReport) -> None:
    report.written = manifest.commit(dry_run=report.dry_run)
    if report.dry_run:
        ui.warn(ctx.console, "not modifying the manifest due to dry run")


def _warn_unlisted(ctx: Context, entries: Sequence[str], effective: MembershipDelta) -> None:
    touched = set(effective.remove_members) | set(effective.remove_exclude)
    for entry in entries:
        if entry not in touched:
            logger.warning(
                "`%s` is not listed in `workspace.members` or `workspace.exclude` as-is; "
                "a glob may still match it",
                entry,
            )


def _same_dir(left: Path, right: Path) -> bool:
    return left == right or left.resolve() == right.resolve()


def _display(root: Path, path: Path) -> str:
    try:
        return member_entry(root, path)
    except ResolutionError:
        return str(path)
