"""`cargo member` command line.

Cargo runs external subcommands as ``cargo-member member <args>``, so the
subcommands live under a ``member`` sub-app.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path

import typer

from cargo_member import __version__, ops, ui
from cargo_member.cargo.service import SubprocessCargo
from cargo_member.context import ColorChoice, Context
from cargo_member.errors import CargoMemberError
from cargo_member.ops import CommonOptions

app = typer.Typer(
    name="cargo-member",
    help="Cargo subcommand for managing workspace members",
    no_args_is_help=True,
    add_completion=False,
)
member_app = typer.Typer(
    help="Manage the members of a cargo workspace",
    no_args_is_help=True,
)
app.add_typer(member_app, name="member")


class Vcs(str, Enum):
    """Version control systems `cargo new` can initialize."""

    GIT = "git"
    HG = "hg"
    PIJUL = "pijul"
    FOSSIL = "fossil"
    NONE = "none"


_MANIFEST_PATH = typer.Option(None, "--manifest-path", metavar="PATH", help="[cargo] Path to Cargo.toml")
_COLOR = typer.Option(ColorChoice.AUTO, "--color", metavar="WHEN", help="[cargo] Coloring")
_OFFLINE = typer.Option(False, "--offline", help="[cargo] Run without accessing the network")
_DRY_RUN = typer.Option(False, "--dry-run", help="Dry run. Also enables `--frozen` and `--locked`")
_FORCE = typer.Option(False, "--force", help="Allow non package paths")
_PACKAGE = typer.Option(None, "--package", "-p", metavar="SPEC", help="[cargo] Package(s) to select")
_NO_RENAME = typer.Option(False, "--no-rename", help="Do not modify the `package.name`")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _app_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        is_eager=True,
        callback=_version_callback,
    ),
) -> None:
    """Cargo subcommand for managing workspace members."""


def _run(color: ColorChoice, operation: Callable[[Context], object]) -> None:
    ctx = Context.capture(color=color, cargo=SubprocessCargo())
    ui.configure_logging(ctx.console)
    try:
        operation(ctx)
    except CargoMemberError as exc:
        ui.exit_with_error(ctx.console, exc)


@member_app.command("include")
def include(
    paths: list[Path] | None = typer.Argument(None, help="Paths to include"),
    manifest_path: Path | None = _MANIFEST_PATH,
    color: ColorChoice = _COLOR,
    offline: bool = _OFFLINE,
    force: bool = _FORCE,
    dry_run: bool = _DRY_RUN,
) -> None:
    """Add a package to `workspace.members` (alias: i)."""
    options = CommonOptions(manifest_path=manifest_path, offline=offline, dry_run=dry_run)
    _run(color, lambda ctx: ops.include(ctx, options, paths=paths or [], force=force))


@member_app.command("exclude")
def exclude(
    paths: list[Path] | None = typer.Argument(None, help="Paths to exclude"),
    package: list[str] | None = _PACKAGE,
    manifest_path: Path | None = _MANIFEST_PATH,
    color: ColorChoice = _COLOR,
    offline: bool = _OFFLINE,
    dry_run: bool = _DRY_RUN,
) -> None:
    """Move a package from `workspace.members` to `workspace.exclude` (alias: e)."""
    options = CommonOptions(manifest_path=manifest_path, offline=offline, dry_run=dry_run)
    _run(color, lambda ctx: ops.exclude(ctx, options, paths=paths or [], packages=package or []))


@member_app.command("deactivate")
def deactivate(
    paths: list[Path] | None = typer.Argument(None, help="Paths to deactivate"),
    package: list[str] | None = _PACKAGE,
    manifest_path: Path | None = _MANIFEST_PATH,
    color: ColorChoice = _COLOR,
    offline: bool = _OFFLINE,
    dry_run: bool = _DRY_RUN,
) -> None:
    """Remove a package from both of `workspace.{members, exclude}` (alias: d)."""
    options = CommonOptions(manifest_path=manifest_path, offline=offline, dry_run=dry_run)
    _run(color, lambda ctx: ops.deactivate(ctx, options, paths=paths or [], packages=package or []))


@member_app.command("focus")
def focus(
    path: Path = typer.Argument(..., help="Path to focus"),
    exclude: bool = typer.Option(False, "--exclude", help="Add existing packages to `workspace.exclude`"),
    manifest_path: Path | None = _MANIFEST_PATH,
    color: ColorChoice = _COLOR,
    offline: bool = _OFFLINE,
    dry_run: bool = _DRY_RUN,
) -> None:
    """`include` a package and `deactivate`/`exclude` the others (alias: f)."""
    options = CommonOptions(manifest_path=manifest_path, offline=offline, dry_run=dry_run)
    _run(color, lambda ctx: ops.focus(ctx, options, path=path, exclude=exclude))


@member_app.command("new")
def new(
    path: Path = typer.Argument(..., help="[cargo-new] Path"),
    registry: str | None = typer.Option(None, "--registry", metavar="REGISTRY", help="[cargo-new] Registry to use"),
    vcs: Vcs | None = typer.Option(
        None,
        "--vcs",
        metavar="VCS",
        help="[cargo-new] Initialize a new repository for the given version control system",
    ),
    lib: bool = typer.Option(False, "--lib", help="[cargo-new] Use a library template"),
    name: str | None = typer.Option(
        None,
        "--name",
        metavar="NAME",
        help="[cargo-new] Set the resulting package name, defaults to the directory name",
    ),
    manifest_path: Path | None = _MANIFEST_PATH,
    color: ColorChoice = _COLOR,
    offline: bool = _OFFLINE,
    dry_run: bool = _DRY_RUN,
) -> None:
    """Create a new workspace member with `cargo new` (alias: n)."""
    options = CommonOptions(manifest_path=manifest_path, offline=offline, dry_run=dry_run)
    _run(
        color,
        lambda ctx: ops.new(
            ctx,
            options,
            path=path,
            registry=registry,
            vcs=vcs.value if vcs is not None else None,
            lib=lib,
            name=name,
        ),
    )


@member_app.command("cp")
def cp(
    src: str = typer.Argument(..., help="Package ID specification"),
    dst: Path = typer.Argument(..., help="Directory"),
    no_rename: bool = _NO_RENAME,
    manifest_path: Path | None = _MANIFEST_PATH,
    color: ColorChoice = _COLOR,
    offline: bool = _OFFLINE,
    dry_run: bool = _DRY_RUN,
) -> None:
    """Copy a workspace member (alias: c)."""
    options = CommonOptions(manifest_path=manifest_path, offline=offline, dry_run=dry_run)
    _run(color, lambda ctx: ops.cp(ctx, options, src=src, dst=dst, no_rename=no_rename))


@member_app.command("rm")
def rm(
    paths: list[Path] | None = typer.Argument(None, help="Paths to remove"),
    package: list[str] | None = _PACKAGE,
    manifest_path: Path | None = _MANIFEST_PATH,
    color: ColorChoice = _COLOR,
    offline: bool = _OFFLINE,
    force: bool = _FORCE,
    dry_run: bool = _DRY_RUN,
) -> None:
    """Remove a workspace member (alias: r)."""
    options = CommonOptions(manifest_path=manifest_path, offline=offline, dry_run=dry_run)
    _run(color, lambda ctx: ops.rm(ctx, options, paths=paths or [], packages=package or [], force=force))


@member_app.command("mv")
def mv(
    src: str = typer.Argument(..., help="Package ID specification"),
    dst: Path = typer.Argument(..., help="Directory"),
    no_rename: bool = _NO_RENAME,
    manifest_path: Path | None = _MANIFEST_PATH,
    color: ColorChoice = _COLOR,
    offline: bool = _OFFLINE,
    dry_run: bool = _DRY_RUN,
) -> None:
    """Move a workspace member (alias: m)."""
    options = CommonOptions(manifest_path=manifest_path, offline=offline, dry_run=dry_run)
    _run(color, lambda ctx: ops.mv(ctx, options, src=src, dst=dst, no_rename=no_rename))


for _alias, _command in (
    ("i", include),
    ("e", exclude),
    ("d", deactivate),
    ("f", focus),
    ("n", new),
    ("c", cp),
    ("r", rm),
    ("m", mv),
):
    member_app.command(_alias, hidden=True)(_command)


if __name__ == "__main__":
    app()
