"""Drive one synchronization run from the PGXN feed into the Trunk registry.

The run fetches the release feed and crawls the registry snapshot
concurrently, then walks releases oldest first. Each release is decided,
rendered, committed, pushed, and turned into a pull request in isolation:
failures are recorded in the :class:`SyncReport` and the loop moves on. The
registry working copy is reset to its baseline after every release that
touched it.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import datetime as dt
import enum
import typing as typ

import httpx

from .config import BuildSettings
from .errors import BridgeError, RepositoryError
from .github.publisher import PullRequestRequest
from .logging import get_logger, log_info
from .observability import ErrorCategory, SyncEventLogger, categorize_error
from .trunk.manifest import build_description, build_manifest, render_manifest
from .versioning import Decision, find_entry, reconcile

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from .config import BridgeConfig
    from .github.publisher import Publisher
    from .pgxn.client import MetadataResolver, ReleaseFeedSource
    from .pgxn.models import ReleaseRecord
    from .trunk.client import ContribEntrySource
    from .trunk.models import RegistryEntry

logger = get_logger(__name__)

BRANCH_PREFIX = "pgxn-bridge"

# Errors isolated to a single release; anything else is a bug and propagates.
_RELEASE_ERRORS: tuple[type[BaseException], ...] = (
    BridgeError,
    httpx.HTTPError,
    OSError,
)


def branch_name_for(distribution: str, version: str) -> str:
    """Return the branch pushed for one distribution version."""
    return f"{BRANCH_PREFIX}/{distribution}-{version}"


def commit_message_for(distribution: str, version: str) -> str:
    """Return the commit message (and pull request title) for one version."""
    return f"{BRANCH_PREFIX}: publish {distribution} v{version}"


class RepositoryMutator(typ.Protocol):
    """The working-copy operations the orchestrator needs."""

    def write_manifest(self, distribution: str, content: str) -> Path:
        """Write ``contrib/<distribution>/Trunk.toml``."""
        ...

    def commit_to_branch(
        self, message: str, *, author: str, email: str, branch_name: str
    ) -> str:
        """Commit the working tree onto a new branch off the baseline."""
        ...

    def push(self, branch_name: str) -> None:
        """Push ``branch_name`` to the remote."""
        ...

    def reset_to_baseline(self) -> None:
        """Restore the working copy to the remote baseline."""
        ...


class OutcomeStatus(enum.StrEnum):
    """Final state of one release within a run."""

    SKIPPED = "skipped"
    PUBLISHED = "published"
    FAILED = "failed"


class Stage(enum.StrEnum):
    """Step of the per-release pipeline, recorded when a release fails."""

    CLEANUP = "cleanup"
    METADATA = "metadata"
    MANIFEST = "manifest"
    COMMIT = "commit"
    PUSH = "push"
    PULL_REQUEST = "pull_request"


@dataclasses.dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    """What happened to one release."""

    distribution: str
    version: str
    decision: Decision
    status: OutcomeStatus
    branch: str | None = None
    pull_request_url: str | None = None
    stage: Stage | None = None
    error: str | None = None
    error_category: ErrorCategory | None = None
    cleanup_error: str | None = None


@dataclasses.dataclass(slots=True)
class SyncReport:
    """Outcomes of a run in processing order."""

    outcomes: list[ReleaseOutcome] = dataclasses.field(default_factory=list)
    stopped: bool = False

    def _with_status(self, status: OutcomeStatus) -> list[ReleaseOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is status]

    @property
    def published(self) -> list[ReleaseOutcome]:
        """Releases whose branch was pushed and pull request opened."""
        return self._with_status(OutcomeStatus.PUBLISHED)

    @property
    def skipped(self) -> list[ReleaseOutcome]:
        """Releases already covered by the registry."""
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> list[ReleaseOutcome]:
        """Releases that failed at some stage."""
        return self._with_status(OutcomeStatus.FAILED)


@dataclasses.dataclass(frozen=True, slots=True)
class SyncSettings:
    """Values the orchestrator stamps onto commits and pull requests."""

    author: str
    email: str
    base_branch: str = "main"
    build: BuildSettings = dataclasses.field(default_factory=BuildSettings)

    @classmethod
    def from_config(cls, config: BridgeConfig) -> SyncSettings:
        """Take commit identity, base branch, and build settings from config."""
        return cls(
            author=config.credentials.author,
            email=config.credentials.email,
            base_branch=config.base_branch,
            build=config.build,
        )


@dataclasses.dataclass(slots=True)
class _Cleanup:
    error: BaseException | None = None


class _ReleaseFailure(Exception):
    """Carries the stage a release failed at up to the per-release boundary."""

    def __init__(self, stage: Stage, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(str(cause))


class SyncOrchestrator:
    """Run one batch from the feed into the registry."""

    def __init__(  # noqa: PLR0913 - collaborators are injected explicitly
        self,
        *,
        feed: ReleaseFeedSource,
        registry: ContribEntrySource,
        resolver: MetadataResolver,
        repository: RepositoryMutator,
        publisher: Publisher,
        settings: SyncSettings,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Bind the orchestrator to its collaborators."""
        self._feed = feed
        self._registry = registry
        self._resolver = resolver
        self._repository = repository
        self._publisher = publisher
        self._settings = settings
        self._events = event_logger or SyncEventLogger()
        self._stop_requested = False
        self._needs_reset = False

    def request_stop(self) -> None:
        """Stop after the current release has been reset to baseline."""
        self._stop_requested = True

    async def load_sources(self) -> tuple[list[ReleaseRecord], list[RegistryEntry]]:
        """Fetch the feed and crawl the registry concurrently.

        Either failure propagates; nothing has been mutated at that point.
        """
        feed, entries = await asyncio.gather(
            self._feed.fetch_feed(),
            self._registry.fetch_contrib_entries(),
        )
        return list(feed.recent), entries

    async def run(self) -> SyncReport:
        """Process every release in the feed, oldest first."""
        releases, entries = await self.load_sources()
        return await self.process(releases, entries)

    async def process(
        self,
        releases: cabc.Sequence[ReleaseRecord],
        entries: cabc.Sequence[RegistryEntry],
    ) -> SyncReport:
        """Process ``releases`` (most recent first, as the feed delivers them)."""
        started_at = dt.datetime.now(dt.UTC)
        report = SyncReport()
        self._events.log_run_started(releases=len(releases), entries=len(entries))

        ordered = list(reversed(releases))
        for index, release in enumerate(ordered):
            if self._stop_requested:
                report.stopped = True
                self._events.log_run_stopped(remaining=len(ordered) - index)
                break
            report.outcomes.append(await self.process_release(release, entries))

        self._events.log_run_completed(
            published=len(report.published),
            skipped=len(report.skipped),
            failed=len(report.failed),
            duration=dt.datetime.now(dt.UTC) - started_at,
        )
        return report

    async def process_release(
        self, release: ReleaseRecord, entries: cabc.Sequence[RegistryEntry]
    ) -> ReleaseOutcome:
        """Decide, publish, and report on a single release."""
        entry = find_entry(entries, release.dist)
        decision = reconcile(release.version, entry)
        if decision is Decision.SKIP and entry is not None:
            self._events.log_release_skipped(release, entry.version)
            return ReleaseOutcome(
                distribution=release.dist,
                version=release.version,
                decision=decision,
                status=OutcomeStatus.SKIPPED,
            )

        branch = branch_name_for(release.dist, release.version)
        log_info(logger, "Will open a PR for %s (%s)", release.label, decision)
        cleanup = _Cleanup()
        try:
            await self._ensure_clean()
            async with self._baseline_scope(release, cleanup):
                description = await self._publish_branch(release, branch)
            url = await self._open_pull_request(release, branch, description)
        except _ReleaseFailure as failure:
            self._events.log_release_failed(
                release, stage=failure.stage, error=failure.cause
            )
            return ReleaseOutcome(
                distribution=release.dist,
                version=release.version,
                decision=decision,
                status=OutcomeStatus.FAILED,
                branch=branch,
                stage=failure.stage,
                error=str(failure.cause),
                error_category=categorize_error(failure.cause),
                cleanup_error=_describe(cleanup.error),
            )

        self._events.log_release_published(
            release, decision=decision, branch=branch, pull_request_url=url
        )
        return ReleaseOutcome(
            distribution=release.dist,
            version=release.version,
            decision=decision,
            status=OutcomeStatus.PUBLISHED,
            branch=branch,
            pull_request_url=url,
            cleanup_error=_describe(cleanup.error),
        )

    async def _publish_branch(self, release: ReleaseRecord, branch: str) -> str:
        """Write, commit, and push the manifest; return the PR description."""
        stage = Stage.METADATA
        try:
            metadata = await self._resolver.fetch_metadata(release)

            stage = Stage.MANIFEST
            manifest = build_manifest(metadata, build=self._settings.build)
            description = build_description(metadata)
            await asyncio.to_thread(
                self._repository.write_manifest,
                release.dist,
                render_manifest(manifest),
            )

            stage = Stage.COMMIT
            await asyncio.to_thread(
                self._repository.commit_to_branch,
                commit_message_for(release.dist, release.version),
                author=self._settings.author,
                email=self._settings.email,
                branch_name=branch,
            )

            stage = Stage.PUSH
            await asyncio.to_thread(self._repository.push, branch)
        except _RELEASE_ERRORS as exc:
            raise _ReleaseFailure(stage, exc) from exc
        return description

    async def _open_pull_request(
        self, release: ReleaseRecord, branch: str, description: str
    ) -> str | None:
        request = PullRequestRequest(
            title=commit_message_for(release.dist, release.version),
            head=branch,
            base=self._settings.base_branch,
            body=description,
        )
        try:
            return await self._publisher.open_pull_request(request)
        except _RELEASE_ERRORS as exc:
            raise _ReleaseFailure(Stage.PULL_REQUEST, exc) from exc

    async def _ensure_clean(self) -> None:
        """Retry a reset that failed after the previous release."""
        if not self._needs_reset:
            return
        try:
            await asyncio.shield(asyncio.to_thread(self._repository.reset_to_baseline))
        except RepositoryError as exc:
            raise _ReleaseFailure(Stage.CLEANUP, exc) from exc
        self._needs_reset = False

    @contextlib.asynccontextmanager
    async def _baseline_scope(
        self, release: ReleaseRecord, cleanup: _Cleanup
    ) -> cabc.AsyncIterator[None]:
        """Always reset the working copy once the body exits, however it exits."""
        try:
            yield
        finally:
            try:
                await asyncio.shield(
                    asyncio.to_thread(self._repository.reset_to_baseline)
                )
            except _RELEASE_ERRORS as exc:
                cleanup.error = exc
                self._needs_reset = True
                self._events.log_cleanup_failed(release, exc)
            else:
                self._needs_reset = False


def _describe(error: BaseException | None) -> str | None:
    return None if error is None else str(error)


__all__ = [
    "BRANCH_PREFIX",
    "OutcomeStatus",
    "ReleaseOutcome",
    "RepositoryMutator",
    "Stage",
    "SyncOrchestrator",
    "SyncReport",
    "SyncSettings",
    "branch_name_for",
    "commit_message_for",
]
