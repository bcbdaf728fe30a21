"""Unit tests for the registry snapshot crawler."""

from __future__ import annotations

import pytest

from pgxn_bridge.errors import ArchiveError, DeserializationError
from pgxn_bridge.trunk.crawler import (
    is_contrib_manifest,
    iter_contrib_entries,
    parse_contrib_manifest,
)
from pgxn_bridge.trunk.models import RegistryEntry
from tests.helpers.builders import contrib_toml, snapshot_tarball


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("trunk-main/contrib/semver/Trunk.toml", True),
        ("contrib/semver/Trunk.toml", True),
        ("trunk-main/contrib/Trunk.toml", False),
        ("trunk-main/contrib/semver/nested/Trunk.toml", False),
        ("trunk-main/extensions/semver/Trunk.toml", False),
        ("trunk-main/contrib/semver/trunk.toml", False),
        ("trunk-main/contrib/semver/Cargo.toml", False),
        ("repo-main/contrib/postgis/Trunk.toml", True),
        ("repo-main/contrib/postgis/sql/x.sql", False),
        ("repo-main/docs/Trunk.toml", False),
    ],
)
def test_is_contrib_manifest(path: str, *, expected: bool) -> None:
    """Only ``contrib/<package>/Trunk.toml`` paths are selected."""
    assert is_contrib_manifest(path) is expected


def test_iter_contrib_entries_reads_only_matching_files() -> None:
    """Matching manifests are decoded; everything else is left unread."""
    snapshot = snapshot_tarball(
        {
            "trunk-main/README.md": b"\xff not utf-8 and not toml",
            "trunk-main/contrib/semver/Trunk.toml": contrib_toml(
                "pg_semver", "0.31.0", alias="semver"
            ),
            "trunk-main/contrib/semver/nested/Trunk.toml": b"\xff\xfe",
            "trunk-main/contrib/pair/Trunk.toml": contrib_toml("pair", "0.1.0"),
        }
    )

    entries = list(iter_contrib_entries(snapshot))

    assert entries == [
        RegistryEntry(name="pg_semver", alias="semver", version="0.31.0"),
        RegistryEntry(name="pair", version="0.1.0"),
    ]


def test_iter_contrib_entries_skips_links_and_directories() -> None:
    """Symlinks and directories at manifest paths are not read."""
    snapshot = snapshot_tarball(
        {"trunk-main/contrib/pair/Trunk.toml": contrib_toml("pair", "0.1.0")},
        symlinks={"trunk-main/contrib/linked/Trunk.toml": "../pair/Trunk.toml"},
        directories=["trunk-main/contrib/odd/Trunk.toml"],
    )

    entries = list(iter_contrib_entries(snapshot))

    assert entries == [RegistryEntry(name="pair", version="0.1.0")]


def test_non_utf8_manifest_is_deserialization_error() -> None:
    """A matching manifest that is not UTF-8 fails the crawl."""
    snapshot = snapshot_tarball({"trunk-main/contrib/bad/Trunk.toml": b"\xff\xfe"})

    with pytest.raises(DeserializationError, match="not UTF-8"):
        list(iter_contrib_entries(snapshot))


def test_manifest_without_extension_table_is_rejected() -> None:
    """A manifest missing ``[extension]`` is schema drift."""
    with pytest.raises(DeserializationError, match="contrib/x/Trunk.toml"):
        parse_contrib_manifest(
            b'[build]\nplatform = "linux/amd64"\n', source="contrib/x/Trunk.toml"
        )


def test_manifest_missing_version_is_rejected() -> None:
    """``version`` is required in the extension table."""
    with pytest.raises(DeserializationError):
        parse_contrib_manifest(b'[extension]\nname = "x"\n', source="x")


def test_corrupt_snapshot_is_archive_error() -> None:
    """A stream that is not gzip-compressed tar is an archive error."""
    with pytest.raises(ArchiveError, match="tar.gz"):
        list(iter_contrib_entries(b"not a tarball"))
