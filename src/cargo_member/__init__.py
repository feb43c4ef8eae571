"""Manage the members of a cargo workspace without hand-editing Cargo.toml."""

__version__ = "0.1.0"
