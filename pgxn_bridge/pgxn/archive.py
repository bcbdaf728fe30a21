"""Safe extraction of PGXN distribution zip archives."""

from __future__ import annotations

import io
import shutil
import typing as typ
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from pgxn_bridge.errors import ArchiveError

if typ.TYPE_CHECKING:
    import collections.abc as cabc


def enclosed_path(name: str) -> PurePosixPath | None:
    """Return ``name`` as a relative path that stays inside the archive root.

    Returns ``None`` for absolute paths, drive-qualified paths, names with NUL
    bytes, and names whose ``..`` components climb above the root.
    """
    if "\0" in name:
        return None
    normalised = name.replace("\\", "/")
    path = PurePosixPath(normalised)
    if path.is_absolute() or (path.parts and path.parts[0].endswith(":")):
        return None

    parts: list[str] = []
    for part in path.parts:
        if part in {"", "."}:
            continue
        if part == "..":
            if not parts:
                return None
            parts.pop()
            continue
        parts.append(part)
    if not parts:
        return None
    return PurePosixPath(*parts)


def _members(archive: zipfile.ZipFile) -> cabc.Iterator[tuple[zipfile.ZipInfo, Path]]:
    for info in archive.infolist():
        relative = enclosed_path(info.filename)
        if relative is None:
            continue
        yield info, Path(*relative.parts)


def extract_release_archive(data: bytes, target: Path) -> Path:
    """Extract a distribution zip under ``target`` and return its root directory.

    Entries are written in stored order. The first safe entry establishes the
    returned root; unsafe entries are skipped without writing anything.

    Raises
    ------
    ArchiveError
        If the bytes are not a readable zip archive, an entry collides with an
        earlier one on disk, or no entry is safe to extract.

    """
    root: Path | None = None
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for info, relative in _members(archive):
                destination = target / relative
                if root is None:
                    root = destination

                if info.is_dir():
                    destination.mkdir(parents=True, exist_ok=True)
                    continue

                destination.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(info) as source, destination.open("wb") as sink:
                    shutil.copyfileobj(source, sink)
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        zlib.error,
        EOFError,
        NotImplementedError,
        OSError,
    ) as exc:
        raise ArchiveError.malformed("zip", exc) from exc

    if root is None:
        raise ArchiveError.no_root()
    return root


__all__ = ["enclosed_path", "extract_release_archive"]
