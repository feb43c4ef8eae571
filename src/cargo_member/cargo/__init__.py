"""Typed boundary around the cargo commands cargo-member relies on."""

from cargo_member.cargo.metadata import Metadata, MetadataPackage, PackageIdSpec
from cargo_member.cargo.service import CargoService, SubprocessCargo

__all__ = ["CargoService", "Metadata", "MetadataPackage", "PackageIdSpec", "SubprocessCargo"]
