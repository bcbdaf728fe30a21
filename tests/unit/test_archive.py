"""Unit tests for safe distribution archive extraction."""

from __future__ import annotations

import typing as typ
from pathlib import PurePosixPath

import pytest

from pgxn_bridge.errors import ArchiveError
from pgxn_bridge.pgxn.archive import enclosed_path, extract_release_archive
from tests.helpers.builders import zip_archive

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("pkg-1.0/META.json", "pkg-1.0/META.json"),
        ("pkg-1.0/./sql/pkg.sql", "pkg-1.0/sql/pkg.sql"),
        ("pkg-1.0/sql/../META.json", "pkg-1.0/META.json"),
        ("pkg-1.0\\doc\\pkg.md", "pkg-1.0/doc/pkg.md"),
    ],
)
def test_enclosed_path_normalises(name: str, expected: str) -> None:
    """Safe names normalise to a relative path under the root."""
    assert enclosed_path(name) == PurePosixPath(expected)


@pytest.mark.parametrize(
    "name",
    ["/etc/passwd", "../escape.txt", "pkg/../../escape.txt", "C:/x", "a\0b", "."],
)
def test_enclosed_path_rejects_unsafe_names(name: str) -> None:
    """Absolute, escaping, drive-qualified, and NUL names are rejected."""
    assert enclosed_path(name) is None


def test_extracts_files_under_first_entry(tmp_path: Path) -> None:
    """The first safe entry is the root; files land beneath it."""
    data = zip_archive(
        [
            ("pkg-1.0/", None),
            ("pkg-1.0/META.json", b'{"name": "pkg"}'),
            ("pkg-1.0/sql/pkg.sql", b"SELECT 1;\n"),
        ]
    )

    root = extract_release_archive(data, tmp_path)

    assert root == tmp_path / "pkg-1.0"
    assert (root / "META.json").read_bytes() == b'{"name": "pkg"}'
    assert (root / "sql" / "pkg.sql").read_text() == "SELECT 1;\n"


def test_skips_entries_escaping_the_target(tmp_path: Path) -> None:
    """Unsafe entries are skipped without writing outside the target."""
    target = tmp_path / "target"
    target.mkdir()
    data = zip_archive(
        [
            ("../escape.txt", b"nope"),
            ("pkg-1.0/", None),
            ("pkg-1.0/README", b"hello"),
        ]
    )

    root = extract_release_archive(data, target)

    assert root == target / "pkg-1.0"
    assert not (tmp_path / "escape.txt").exists()
    assert (root / "README").read_bytes() == b"hello"


def test_archive_without_safe_entries_has_no_root(tmp_path: Path) -> None:
    """An archive whose entries are all unsafe has no root."""
    data = zip_archive([("/abs/file", b"x"), ("../up", b"y")])

    with pytest.raises(ArchiveError, match="root directory"):
        extract_release_archive(data, tmp_path)


def test_empty_archive_has_no_root(tmp_path: Path) -> None:
    """An empty archive has no root."""
    with pytest.raises(ArchiveError, match="root directory"):
        extract_release_archive(zip_archive([]), tmp_path)


def test_malformed_archive(tmp_path: Path) -> None:
    """Bytes that are not a zip archive are rejected."""
    with pytest.raises(ArchiveError, match="malformed zip"):
        extract_release_archive(b"definitely not a zip", tmp_path)


def test_file_entry_shadowing_a_directory_is_archive_error(tmp_path: Path) -> None:
    """A file stored where a later entry needs a directory fails cleanly."""
    data = zip_archive([("pkg/", None), ("pkg/a", b"file"), ("pkg/a/b", b"nested")])

    with pytest.raises(ArchiveError, match="malformed zip"):
        extract_release_archive(data, tmp_path)
