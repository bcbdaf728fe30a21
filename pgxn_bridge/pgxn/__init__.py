"""PGXN feed, metadata, and archive access."""

from __future__ import annotations

from .archive import enclosed_path, extract_release_archive
from .client import MetadataResolver, PgxnClient, ReleaseFeedSource
from .models import (
    ExtensionMetadata,
    License,
    Maintainer,
    ReleaseFeed,
    ReleaseRecord,
    Resources,
    SourceRepository,
)

__all__ = [
    "ExtensionMetadata",
    "License",
    "Maintainer",
    "MetadataResolver",
    "PgxnClient",
    "ReleaseFeed",
    "ReleaseFeedSource",
    "ReleaseRecord",
    "Resources",
    "SourceRepository",
    "enclosed_path",
    "extract_release_archive",
]
