"""Structured sync events and error categorisation.

Every line starts with a bracketed event type followed by ``key=value``
pairs so runs can be followed in a log aggregator::

    [sync.release.published] dist=semver version=0.32.1 branch=pgxn-bridge/...
"""

from __future__ import annotations

import enum
import typing as typ

import httpx

from .errors import (
    ArchiveError,
    ConfigurationError,
    DeserializationError,
    NetworkError,
    RemoteRejection,
    RepositoryError,
)
from .logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from .pgxn.models import ReleaseRecord
    from .versioning import Decision

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class SyncEventType(enum.StrEnum):
    """Structured log event types for a sync run."""

    RUN_STARTED = "sync.run.started"
    RUN_COMPLETED = "sync.run.completed"
    RUN_STOPPED = "sync.run.stopped"
    RELEASE_SKIPPED = "sync.release.skipped"
    RELEASE_PUBLISHED = "sync.release.published"
    RELEASE_FAILED = "sync.release.failed"
    CLEANUP_FAILED = "sync.cleanup.failed"


class ErrorCategory(enum.StrEnum):
    """Categories used to route failures."""

    CONFIGURATION = "configuration"
    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    ARCHIVE = "archive"
    REPOSITORY = "repository"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (ConfigurationError, ErrorCategory.CONFIGURATION),
    (DeserializationError, ErrorCategory.SCHEMA_DRIFT),
    (ArchiveError, ErrorCategory.ARCHIVE),
    (RepositoryError, ErrorCategory.REPOSITORY),
    (RemoteRejection, ErrorCategory.REJECTED),
    (httpx.TransportError, ErrorCategory.TRANSIENT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for logging and the batch report."""
    if isinstance(exc, NetworkError):
        if exc.status_code is None or exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class SyncEventLogger:
    """Emit structured sync events via femtologging."""

    def log_run_started(self, *, releases: int, entries: int) -> None:
        """Log the start of the release loop after both sources were joined."""
        log_info(
            logger,
            "[%s] releases=%d registry_entries=%d",
            SyncEventType.RUN_STARTED,
            releases,
            entries,
        )

    def log_run_completed(
        self, *, published: int, skipped: int, failed: int, duration: dt.timedelta
    ) -> None:
        """Log the end of the release loop with outcome counts."""
        log_info(
            logger,
            "[%s] published=%d skipped=%d failed=%d duration_seconds=%.3f",
            SyncEventType.RUN_COMPLETED,
            published,
            skipped,
            failed,
            duration.total_seconds(),
        )

    def log_run_stopped(self, *, remaining: int) -> None:
        """Log that a stop request ended the loop early."""
        log_warning(
            logger,
            "[%s] remaining_releases=%d",
            SyncEventType.RUN_STOPPED,
            remaining,
        )

    def log_release_skipped(
        self, release: ReleaseRecord, registry_version: str
    ) -> None:
        """Log a release the registry already covers."""
        log_info(
            logger,
            "[%s] dist=%s version=%s registry_version=%s",
            SyncEventType.RELEASE_SKIPPED,
            release.dist,
            release.version,
            registry_version,
        )

    def log_release_published(
        self,
        release: ReleaseRecord,
        *,
        decision: Decision,
        branch: str,
        pull_request_url: str | None,
    ) -> None:
        """Log a release that was pushed and had its pull request opened."""
        log_info(
            logger,
            "[%s] dist=%s version=%s decision=%s branch=%s pull_request=%s",
            SyncEventType.RELEASE_PUBLISHED,
            release.dist,
            release.version,
            decision,
            branch,
            pull_request_url,
        )

    def log_release_failed(
        self, release: ReleaseRecord, *, stage: str, error: BaseException
    ) -> None:
        """Log a release that failed; the loop carries on with the next one."""
        log_error(
            logger,
            "[%s] dist=%s version=%s stage=%s error_category=%s error_type=%s "
            "error_message=%s",
            SyncEventType.RELEASE_FAILED,
            release.dist,
            release.version,
            stage,
            categorize_error(error),
            type(error).__name__,
            error,
        )

    def log_cleanup_failed(self, release: ReleaseRecord, error: BaseException) -> None:
        """Log a reset-to-baseline failure after processing ``release``."""
        log_error(
            logger,
            "[%s] dist=%s version=%s error_type=%s error_message=%s",
            SyncEventType.CLEANUP_FAILED,
            release.dist,
            release.version,
            type(error).__name__,
            error,
        )


__all__ = [
    "ErrorCategory",
    "SyncEventLogger",
    "SyncEventType",
    "categorize_error",
]
