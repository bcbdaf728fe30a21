"""Startup configuration for a bridge run.

All settings are read once from the environment and carried as a single
immutable :class:`BridgeConfig` value into every collaborator.

Usage
-----
>>> config = BridgeConfig.from_env(
...     {
...         "GH_PAT": "ghp_x",
...         "GH_EMAIL": "bot@example.com",
...         "GH_USERNAME": "bot",
...         "GH_AUTHOR": "Bot",
...     }
... )
>>> config.registry.slug
'tembo-io/trunk'

"""

from __future__ import annotations

import dataclasses as dc
import math
import os
import typing as typ

from .errors import ConfigurationError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

DEFAULT_PGXN_URL = "https://master.pgxn.org"
DEFAULT_GITHUB_URL = "https://github.com"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_REGISTRY_REPO = "tembo-io/trunk"
DEFAULT_BASE_BRANCH = "main"
DEFAULT_POSTGRES_VERSION = "15"
DEFAULT_PLATFORM = "linux/amd64"
DEFAULT_HTTP_TIMEOUT_S = 30.0
USER_AGENT = "pgxn-bridge/0.1"


@dc.dataclass(frozen=True, slots=True)
class Credentials:
    """Identity used for commits, pushes, and pull requests.

    Attributes
    ----------
    token
        GitHub personal access token. Used as the push password and as the
        pull request API token.
    username
        Username presented alongside the token when pushing.
    author
        Commit author display name.
    email
        Commit author email.

    """

    token: str
    username: str
    author: str
    email: str

    def __repr__(self) -> str:
        """Hide the token from reprs that may end up in logs."""
        return (
            f"Credentials(token='***', username={self.username!r}, "
            f"author={self.author!r}, email={self.email!r})"
        )


@dc.dataclass(frozen=True, slots=True)
class RepositorySlug:
    """A GitHub ``owner/name`` pair."""

    owner: str
    name: str

    @property
    def slug(self) -> str:
        """Return the ``owner/name`` identifier."""
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str, *, variable: str) -> RepositorySlug:
        """Parse ``owner/name``, raising :class:`ConfigurationError` otherwise."""
        owner, sep, name = value.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ConfigurationError.invalid(variable, value, "expected owner/name")
        return cls(owner=owner, name=name)


@dc.dataclass(frozen=True, slots=True)
class BuildSettings:
    """Fixed values copied into every manifest's ``[build]`` table."""

    postgres_version: str | None = DEFAULT_POSTGRES_VERSION
    platform: str = DEFAULT_PLATFORM


@dc.dataclass(frozen=True, slots=True)
class BridgeConfig:
    """Configuration for one synchronization run.

    Attributes
    ----------
    credentials
        Token and commit identity. Required.
    pgxn_url
        Base URL of the PGXN mirror serving ``/stats`` and ``/dist``.
    github_url
        Base URL used for clones and registry snapshot downloads.
    github_api_url
        Base URL of the GitHub REST API.
    registry
        Repository mirrored into, cloned and crawled.
    pull_request_repo
        Repository receiving pull requests; defaults to ``registry``.
    base_branch
        Default branch of the registry and base of every pull request.
    build
        Fixed manifest build settings.
    http_timeout_s
        Timeout applied to every HTTP request.
    log_level
        Raw log level string; normalised when logging is configured.

    """

    credentials: Credentials
    pgxn_url: str = DEFAULT_PGXN_URL
    github_url: str = DEFAULT_GITHUB_URL
    github_api_url: str = DEFAULT_GITHUB_API_URL
    registry: RepositorySlug = dc.field(
        default_factory=lambda: RepositorySlug.parse(
            DEFAULT_REGISTRY_REPO, variable="BRIDGE_REGISTRY_REPO"
        )
    )
    pull_request_repo: RepositorySlug | None = None
    base_branch: str = DEFAULT_BASE_BRANCH
    build: BuildSettings = dc.field(default_factory=BuildSettings)
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    log_level: str = "INFO"

    @property
    def registry_clone_url(self) -> str:
        """Return the HTTPS clone URL of the registry repository."""
        return f"{self.github_url.rstrip('/')}/{self.registry.slug}.git"

    @property
    def pull_request_target(self) -> RepositorySlug:
        """Return the repository that pull requests are opened against."""
        return self.pull_request_repo or self.registry

    @classmethod
    def from_env(cls, environ: cabc.Mapping[str, str] | None = None) -> BridgeConfig:
        """Build configuration from environment variables.

        Required: ``GH_PAT``, ``GH_EMAIL``, ``GH_USERNAME``, ``GH_AUTHOR``.
        Optional variables are prefixed ``BRIDGE_``; see the module
        documentation for defaults.

        Raises
        ------
        ConfigurationError
            If a required variable is missing or an optional one is malformed.

        """
        env = os.environ if environ is None else environ

        credentials = Credentials(
            token=_required(env, "GH_PAT"),
            email=_required(env, "GH_EMAIL"),
            username=_required(env, "GH_USERNAME"),
            author=_required(env, "GH_AUTHOR"),
        )

        registry = RepositorySlug.parse(
            _optional(env, "BRIDGE_REGISTRY_REPO", DEFAULT_REGISTRY_REPO),
            variable="BRIDGE_REGISTRY_REPO",
        )
        raw_pr_repo = env.get("BRIDGE_PULL_REQUEST_REPO", "").strip()
        pull_request_repo = (
            RepositorySlug.parse(raw_pr_repo, variable="BRIDGE_PULL_REQUEST_REPO")
            if raw_pr_repo
            else None
        )

        return cls(
            credentials=credentials,
            pgxn_url=_optional(env, "BRIDGE_PGXN_URL", DEFAULT_PGXN_URL),
            github_url=_optional(env, "BRIDGE_GITHUB_URL", DEFAULT_GITHUB_URL),
            github_api_url=_optional(
                env, "BRIDGE_GITHUB_API_URL", DEFAULT_GITHUB_API_URL
            ),
            registry=registry,
            pull_request_repo=pull_request_repo,
            base_branch=_optional(env, "BRIDGE_BASE_BRANCH", DEFAULT_BASE_BRANCH),
            build=BuildSettings(
                postgres_version=_optional(
                    env, "BRIDGE_POSTGRES_VERSION", DEFAULT_POSTGRES_VERSION
                ),
                platform=_optional(env, "BRIDGE_PLATFORM", DEFAULT_PLATFORM),
            ),
            http_timeout_s=_positive_float(
                env, "BRIDGE_HTTP_TIMEOUT_S", DEFAULT_HTTP_TIMEOUT_S
            ),
            log_level=_optional(env, "BRIDGE_LOG_LEVEL", "INFO"),
        )


def _required(env: cabc.Mapping[str, str], variable: str) -> str:
    value = env.get(variable, "").strip()
    if not value:
        raise ConfigurationError.missing(variable)
    return value


def _optional(env: cabc.Mapping[str, str], variable: str, default: str) -> str:
    value = env.get(variable, "").strip()
    return value or default


def _positive_float(
    env: cabc.Mapping[str, str], variable: str, default: float
) -> float:
    raw = env.get(variable, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError.invalid(variable, raw, "must be a number") from exc
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError.invalid(variable, raw, "must be a positive number")
    return value


__all__ = [
    "BridgeConfig",
    "BuildSettings",
    "Credentials",
    "RepositorySlug",
]
