"""PGXN API client: release feed, distribution metadata, and archives."""

from __future__ import annotations

import typing as typ

from pgxn_bridge.http import build_http_client, get_bytes, get_json
from pgxn_bridge.logging import get_logger, log_info

from .archive import extract_release_archive
from .models import ExtensionMetadata, ReleaseFeed, ReleaseRecord

if typ.TYPE_CHECKING:
    from pathlib import Path

    import httpx

    from pgxn_bridge.config import BridgeConfig

logger = get_logger(__name__)


class MetadataResolver(typ.Protocol):
    """Interface for fetching the full metadata of one release."""

    async def fetch_metadata(self, release: ReleaseRecord) -> ExtensionMetadata:
        """Return ``META.json`` for ``release``."""
        ...


class ReleaseFeedSource(typ.Protocol):
    """Interface for fetching the recent release feed."""

    async def fetch_feed(self) -> ReleaseFeed:
        """Return the recent releases, most recent first."""
        ...


class PgxnClient:
    """PGXN client backing both the release feed and the metadata resolver."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise against a PGXN mirror such as ``https://master.pgxn.org``."""
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or build_http_client(timeout_s)

    @classmethod
    def from_config(cls, config: BridgeConfig) -> PgxnClient:
        """Build a client for the configured mirror."""
        return cls(config.pgxn_url, timeout_s=config.http_timeout_s)

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def feed_url(self) -> str:
        """Return the URL of the recent releases feed."""
        return f"{self._base_url}/stats/dist.json"

    def meta_url(self, release: ReleaseRecord) -> str:
        """Return the ``META.json`` URL for ``release``."""
        return f"{self._base_url}/dist/{release.dist_lower}/{release.version}/META.json"

    def archive_url(self, release: ReleaseRecord) -> str:
        """Return the zip archive URL for ``release``."""
        dist = release.dist_lower
        version = release.version
        return f"{self._base_url}/dist/{dist}/{version}/{dist}-{version}.zip"

    async def fetch_feed(self) -> ReleaseFeed:
        """Fetch ``/stats/dist.json``."""
        log_info(logger, "Fetching recent PGXN releases from %s", self.feed_url())
        return await get_json(self._client, self.feed_url(), into=ReleaseFeed)

    async def fetch_metadata(self, release: ReleaseRecord) -> ExtensionMetadata:
        """Fetch and decode ``META.json`` for ``release``."""
        return await get_json(
            self._client, self.meta_url(release), into=ExtensionMetadata
        )

    async def fetch_archive(self, release: ReleaseRecord) -> bytes:
        """Fetch the distribution zip for ``release`` as bytes."""
        return await get_bytes(self._client, self.archive_url(release))

    async def download_to(self, release: ReleaseRecord, target: Path) -> Path:
        """Download and extract ``release`` under ``target``; return its root."""
        data = await self.fetch_archive(release)
        root = extract_release_archive(data, target)
        log_info(logger, "Extracted %s to %s", release.label, root)
        return root


__all__ = ["MetadataResolver", "PgxnClient", "ReleaseFeedSource"]
