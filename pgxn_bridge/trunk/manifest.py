"""Derive Trunk manifests and pull request bodies from PGXN metadata."""

from __future__ import annotations

import typing as typ

import msgspec

from pgxn_bridge.config import BuildSettings
from pgxn_bridge.errors import DeserializationError

from .models import Manifest, ManifestBuild, ManifestExtension

if typ.TYPE_CHECKING:
    from pgxn_bridge.pgxn.models import ExtensionMetadata, License, Maintainer

PROJECT_URL = "https://github.com/tembo-io/pgxn-bridge"
PGXN_DIST_URL = "https://pgxn.org/dist"


def license_identifier(license_: License) -> str:
    """Return a single license identifier.

    A label map yields its first label in iteration order; which label that is
    depends on how the source document listed them.
    """
    if isinstance(license_, str):
        return license_
    for label in license_:
        return label
    raise DeserializationError("license map has no entries")


def build_manifest(
    metadata: ExtensionMetadata, *, build: BuildSettings | None = None
) -> Manifest:
    """Build the ``Trunk.toml`` manifest for one distribution version."""
    settings = build or BuildSettings()
    repository = metadata.resources.repository.web
    homepage = metadata.resources.homepage
    return Manifest(
        extension=ManifestExtension(
            name=metadata.name,
            version=metadata.version,
            license=license_identifier(metadata.license),
            repository=repository,
            description=metadata.summary,
            homepage=homepage if homepage is not None else repository,
            documentation=repository,
        ),
        build=ManifestBuild(
            target_database_version=settings.postgres_version,
            platform=settings.platform,
        ),
    )


def render_manifest(manifest: Manifest) -> str:
    """Render ``manifest`` as TOML text."""
    return msgspec.toml.encode(manifest).decode("utf-8")


def format_maintainer(maintainer: Maintainer) -> str:
    """Render maintainers for display; several names are each followed by a space."""
    if isinstance(maintainer, str):
        return maintainer
    return "".join(f"{name} " for name in maintainer)


def build_description(metadata: ExtensionMetadata) -> str:
    """Render the pull request body for ``metadata``."""
    name = metadata.name
    lines = [
        f"Note: this PR was auto-generated by [pgxn-bridge]({PROJECT_URL}), "
        f"see [{name} in PGXN]({PGXN_DIST_URL}/{name}/)",
        "",
        f"Version {metadata.version}, published {metadata.date}",
        "",
        f"Description: {metadata.summary}",
        "",
        f"Maintainer: {format_maintainer(metadata.maintainer)}",
    ]
    return "\n".join(lines) + "\n"


__all__ = [
    "build_description",
    "build_manifest",
    "format_maintainer",
    "license_identifier",
    "render_manifest",
]
