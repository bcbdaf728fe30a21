"""Trunk registry documents: existing entries and generated manifests."""

from __future__ import annotations

import msgspec

MANIFEST_FILENAME = "Trunk.toml"
CONTRIB_DIRECTORY = "contrib"


class RegistryEntry(msgspec.Struct, frozen=True, kw_only=True):
    """The identifying part of an existing ``[extension]`` table.

    Attributes
    ----------
    name : str
        Primary package name in the registry.
    alias : str | None
        Postgres extension name when it differs (``extension_name``).
    version : str
        Version currently published in the registry.

    """

    name: str
    alias: str | None = msgspec.field(default=None, name="extension_name")
    version: str


class ContribManifest(msgspec.Struct, frozen=True, kw_only=True):
    """A ``contrib/<package>/Trunk.toml`` reduced to its extension identity."""

    extension: RegistryEntry


class ManifestExtension(
    msgspec.Struct, frozen=True, kw_only=True, omit_defaults=True
):
    """``[extension]`` table of a generated manifest."""

    name: str
    alias: str | None = msgspec.field(default=None, name="extension_name")
    version: str
    license: str
    repository: str | None = None
    description: str | None = None
    homepage: str | None = None
    documentation: str | None = None


class ManifestBuild(
    msgspec.Struct, frozen=True, kw_only=True, omit_defaults=True
):
    """``[build]`` table of a generated manifest."""

    target_database_version: str | None = msgspec.field(
        default=None, name="postgres_version"
    )
    platform: str


class Manifest(msgspec.Struct, frozen=True, kw_only=True):
    """A generated ``Trunk.toml``."""

    extension: ManifestExtension
    build: ManifestBuild


__all__ = [
    "CONTRIB_DIRECTORY",
    "MANIFEST_FILENAME",
    "ContribManifest",
    "Manifest",
    "ManifestBuild",
    "ManifestExtension",
    "RegistryEntry",
]
