"""Unit tests for the registry snapshot client."""

from __future__ import annotations

import httpx
import pytest

from pgxn_bridge.config import RepositorySlug
from pgxn_bridge.errors import DeserializationError, NetworkError
from pgxn_bridge.trunk.client import TrunkRegistryClient
from pgxn_bridge.trunk.models import RegistryEntry
from tests.helpers.builders import contrib_toml, snapshot_tarball

REGISTRY = RepositorySlug(owner="tembo-io", name="trunk")


def _client(snapshot: bytes, seen: list[str]) -> TrunkRegistryClient:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, content=snapshot)

    return TrunkRegistryClient(
        "https://github.test",
        REGISTRY,
        branch="main",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_fetch_contrib_entries_downloads_branch_snapshot() -> None:
    """The default-branch tarball is fetched and fully crawled."""
    seen: list[str] = []
    snapshot = snapshot_tarball(
        {"trunk-main/contrib/semver/Trunk.toml": contrib_toml("semver", "0.32.0")}
    )
    client = _client(snapshot, seen)

    entries = await client.fetch_contrib_entries()

    assert seen == ["https://github.test/tembo-io/trunk/archive/refs/heads/main.tar.gz"]
    assert entries == [RegistryEntry(name="semver", version="0.32.0")]


@pytest.mark.asyncio
async def test_bad_manifest_fails_the_whole_crawl() -> None:
    """One undecodable manifest fails the crawl rather than being skipped."""
    snapshot = snapshot_tarball(
        {
            "trunk-main/contrib/semver/Trunk.toml": contrib_toml("semver", "0.32.0"),
            "trunk-main/contrib/broken/Trunk.toml": b"[extension\n",
        }
    )
    client = _client(snapshot, [])

    with pytest.raises(DeserializationError):
        await client.fetch_contrib_entries()


@pytest.mark.asyncio
async def test_missing_branch_is_network_error() -> None:
    """A missing snapshot is a NetworkError."""
    client = TrunkRegistryClient(
        "https://github.test",
        REGISTRY,
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(404))
        ),
    )

    with pytest.raises(NetworkError):
        await client.fetch_contrib_entries()
