"""Open pull requests through the GitHub REST API."""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx
import msgspec

from pgxn_bridge.errors import ConfigurationError, NetworkError, RemoteRejection
from pgxn_bridge.http import build_http_client
from pgxn_bridge.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from pgxn_bridge.config import BridgeConfig, RepositorySlug

logger = get_logger(__name__)

_HTTP_SUCCESS_MIN = 200
_HTTP_SUCCESS_MAX = 299


@dataclasses.dataclass(frozen=True, slots=True)
class PullRequestRequest:
    """Body of ``POST /repos/{owner}/{repo}/pulls``."""

    title: str
    head: str
    base: str
    body: str


class _CreatedPullRequest(msgspec.Struct, kw_only=True):
    html_url: str | None = None
    number: int | None = None


class Publisher(typ.Protocol):
    """Interface for opening a pull request from a pushed branch."""

    async def open_pull_request(self, request: PullRequestRequest) -> str | None:
        """Open the pull request and return its URL when the API reports one."""
        ...


class GitHubPublisher:
    """httpx implementation of :class:`Publisher`."""

    def __init__(
        self,
        api_url: str,
        repository: RepositorySlug,
        token: str,
        *,
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise for the repository that receives pull requests."""
        if not token.strip():
            raise ConfigurationError.missing("GH_PAT")
        self._api_url = api_url.rstrip("/")
        self._repository = repository
        self._headers = {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
        }
        self._owns_client = http_client is None
        self._client = http_client or build_http_client(timeout_s)

    @classmethod
    def from_config(cls, config: BridgeConfig) -> GitHubPublisher:
        """Build a publisher targeting the configured pull request repository."""
        return cls(
            config.github_api_url,
            config.pull_request_target,
            config.credentials.token,
            timeout_s=config.http_timeout_s,
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def pulls_url(self) -> str:
        """Return the pull request collection URL."""
        return f"{self._api_url}/repos/{self._repository.slug}/pulls"

    async def open_pull_request(self, request: PullRequestRequest) -> str | None:
        """Open a pull request; any 2xx response counts as success.

        Raises
        ------
        NetworkError
            If the request cannot be sent.
        RemoteRejection
            If GitHub answers with a non-2xx status; the body text becomes the
            error message.

        """
        url = self.pulls_url()
        try:
            response = await self._client.post(
                url,
                json=dataclasses.asdict(request),
                headers=self._headers,
            )
        except httpx.HTTPError as exc:
            raise NetworkError.transport(url, exc) from exc

        if not _HTTP_SUCCESS_MIN <= response.status_code <= _HTTP_SUCCESS_MAX:
            raise RemoteRejection.from_response(response.status_code, response.text)

        created = _decode_created(response.content)
        log_info(
            logger,
            "Opened pull request %s for %s",
            created.html_url or "(no url)",
            request.head,
        )
        return created.html_url


def _decode_created(content: bytes) -> _CreatedPullRequest:
    # The response body is informational; a 2xx is success whatever it holds.
    if not content:
        return _CreatedPullRequest()
    try:
        return msgspec.json.decode(content, type=_CreatedPullRequest)
    except msgspec.DecodeError:
        return _CreatedPullRequest()


__all__ = ["GitHubPublisher", "PullRequestRequest", "Publisher"]
