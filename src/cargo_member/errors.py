"""Error types raised by cargo-member operations.

Every error is fatal for the current invocation. Lower-level failures are
chained with ``raise ... from exc`` so the CLI can print the causal chain.
"""

from __future__ import annotations


class CargoMemberError(RuntimeError):
    """Base class for all cargo-member failures."""


class ResolutionError(CargoMemberError):
    """A path or package-ID specifier could not be mapped to a package."""


class UnknownSpec(ResolutionError):
    """A package-ID specifier matched no workspace package."""


class AmbiguousSpec(ResolutionError):
    """A package-ID specifier matched more than one workspace package."""


class PackageValidation(ResolutionError):
    """A path was required to be a package but is not one."""


class ManifestParseError(CargoMemberError):
    """An existing manifest is not well-formed TOML."""


class ManifestWriteError(CargoMemberError):
    """The manifest could not be serialized or replaced on disk."""


class FilesystemError(CargoMemberError):
    """A copy, move or remove of a package tree failed."""


class DestinationExists(FilesystemError):
    """The destination of a copy or move is already present."""


class CollaboratorError(CargoMemberError):
    """An external cargo command exited non-zero or printed garbage."""
