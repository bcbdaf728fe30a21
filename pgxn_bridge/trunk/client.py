"""Download the registry's default-branch snapshot and crawl it."""

from __future__ import annotations

import typing as typ

from pgxn_bridge.http import build_http_client, get_bytes
from pgxn_bridge.logging import get_logger, log_info

from .crawler import iter_contrib_entries

if typ.TYPE_CHECKING:
    import httpx

    from pgxn_bridge.config import BridgeConfig, RepositorySlug

    from .models import RegistryEntry

logger = get_logger(__name__)


class ContribEntrySource(typ.Protocol):
    """Interface for listing entries already present in the registry."""

    async def fetch_contrib_entries(self) -> list[RegistryEntry]:
        """Return every ``contrib/*/Trunk.toml`` entry on the default branch."""
        ...


class TrunkRegistryClient:
    """Fetch ``{github}/{owner}/{repo}/archive/refs/heads/{branch}.tar.gz``."""

    def __init__(
        self,
        github_url: str,
        repository: RepositorySlug,
        *,
        branch: str = "main",
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise for one repository branch."""
        self._github_url = github_url.rstrip("/")
        self._repository = repository
        self._branch = branch
        self._owns_client = http_client is None
        self._client = http_client or build_http_client(timeout_s)

    @classmethod
    def from_config(cls, config: BridgeConfig) -> TrunkRegistryClient:
        """Build a client for the configured registry and base branch."""
        return cls(
            config.github_url,
            config.registry,
            branch=config.base_branch,
            timeout_s=config.http_timeout_s,
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def snapshot_url(self) -> str:
        """Return the tarball URL for the configured branch."""
        return (
            f"{self._github_url}/{self._repository.slug}"
            f"/archive/refs/heads/{self._branch}.tar.gz"
        )

    async def fetch_snapshot(self) -> bytes:
        """Download the gzip-compressed tar snapshot."""
        return await get_bytes(self._client, self.snapshot_url())

    async def fetch_contrib_entries(self) -> list[RegistryEntry]:
        """Download the snapshot and fully crawl it.

        The crawl is drained here so that any decode failure surfaces before
        the caller starts mutating the registry.
        """
        log_info(logger, "Crawling registry snapshot %s", self.snapshot_url())
        snapshot = await self.fetch_snapshot()
        entries = list(iter_contrib_entries(snapshot))
        log_info(logger, "Found %d existing contrib entries", len(entries))
        return entries


__all__ = ["ContribEntrySource", "TrunkRegistryClient"]
