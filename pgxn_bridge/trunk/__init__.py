"""Trunk registry access: snapshot crawling and manifest generation."""

from __future__ import annotations

from .client import ContribEntrySource, TrunkRegistryClient
from .crawler import is_contrib_manifest, iter_contrib_entries, parse_contrib_manifest
from .manifest import (
    build_description,
    build_manifest,
    format_maintainer,
    license_identifier,
    render_manifest,
)
from .models import (
    CONTRIB_DIRECTORY,
    MANIFEST_FILENAME,
    ContribManifest,
    Manifest,
    ManifestBuild,
    ManifestExtension,
    RegistryEntry,
)

__all__ = [
    "CONTRIB_DIRECTORY",
    "MANIFEST_FILENAME",
    "ContribEntrySource",
    "ContribManifest",
    "Manifest",
    "ManifestBuild",
    "ManifestExtension",
    "RegistryEntry",
    "TrunkRegistryClient",
    "build_description",
    "build_manifest",
    "format_maintainer",
    "is_contrib_manifest",
    "iter_contrib_entries",
    "license_identifier",
    "parse_contrib_manifest",
    "render_manifest",
]
