"""Stream a registry snapshot tarball and yield its existing contrib entries.

GitHub serves a branch snapshot as ``<repo>-<branch>/...`` inside a gzip
compressed tar. Only regular files shaped like
``<root>/contrib/<package>/Trunk.toml`` are decoded; everything else is
skipped without being read.
"""

from __future__ import annotations

import io
import tarfile
import typing as typ
import zlib
from pathlib import PurePosixPath

import msgspec

from pgxn_bridge.errors import ArchiveError, DeserializationError

from .models import CONTRIB_DIRECTORY, MANIFEST_FILENAME, ContribManifest

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import RegistryEntry


def is_contrib_manifest(path: str) -> bool:
    """Return True for ``<root>/contrib/<package>/Trunk.toml`` shaped paths."""
    candidate = PurePosixPath(path)
    if candidate.name != MANIFEST_FILENAME:
        return False
    return candidate.parent.parent.name == CONTRIB_DIRECTORY


def parse_contrib_manifest(raw: bytes, *, source: str) -> RegistryEntry:
    """Decode one ``Trunk.toml`` and return its registry entry."""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DeserializationError.for_source(f"{source} (not UTF-8)", exc) from exc
    try:
        return msgspec.toml.decode(text, type=ContribManifest).extension
    except msgspec.DecodeError as exc:
        raise DeserializationError.for_source(source, exc) from exc


def iter_contrib_entries(snapshot: bytes) -> cabc.Iterator[RegistryEntry]:
    """Yield registry entries from a gzip-compressed tar snapshot.

    The archive is read in streaming mode, so the iterator is single-pass.

    Raises
    ------
    ArchiveError
        If the stream is not a readable gzip-compressed tar.
    DeserializationError
        If a manifest is not UTF-8 or not a valid registry document.

    """
    try:
        with tarfile.open(fileobj=io.BytesIO(snapshot), mode="r|gz") as archive:
            for member in archive:
                if not member.isreg() or not is_contrib_manifest(member.name):
                    continue
                handle = archive.extractfile(member)
                if handle is None:
                    continue
                yield parse_contrib_manifest(handle.read(), source=member.name)
    except (tarfile.TarError, zlib.error, EOFError, OSError) as exc:
        raise ArchiveError.malformed("tar.gz", exc) from exc


__all__ = ["is_contrib_manifest", "iter_contrib_entries", "parse_contrib_manifest"]
