"""Errors raised by the PGXN to Trunk bridge."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from collections.abc import Sequence


class BridgeError(Exception):
    """Base class for bridge errors."""


class ConfigurationError(BridgeError):
    """Raised when required startup configuration is missing or invalid."""

    @classmethod
    def missing(cls, variable: str) -> ConfigurationError:
        """Return an error for a required environment variable that is unset."""
        return cls(f"{variable} is required")

    @classmethod
    def invalid(cls, variable: str, value: str, reason: str) -> ConfigurationError:
        """Return an error for an environment variable with an unusable value."""
        return cls(f"{variable}={value!r} is invalid: {reason}")


class NetworkError(BridgeError):
    """Raised when an HTTP call fails or returns an error status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, url: str, status_code: int) -> NetworkError:
        """Return an error for a non-2xx HTTP response."""
        return cls(f"GET {url} returned HTTP {status_code}", status_code=status_code)

    @classmethod
    def transport(cls, url: str, exc: BaseException) -> NetworkError:
        """Return an error for a failed request."""
        return cls(f"request to {url} failed: {exc}")


class DeserializationError(BridgeError):
    """Raised when a document does not match its expected shape."""

    @classmethod
    def for_source(cls, source: str, exc: BaseException) -> DeserializationError:
        """Return an error describing which document failed to decode."""
        return cls(f"failed to deserialize {source}: {exc}")


class ArchiveError(BridgeError):
    """Raised for malformed archives or archives with no usable entries."""

    @classmethod
    def malformed(cls, kind: str, exc: BaseException) -> ArchiveError:
        """Return an error for an archive that cannot be read."""
        return cls(f"malformed {kind} archive: {exc}")

    @classmethod
    def no_root(cls) -> ArchiveError:
        """Return an error when no entry establishes a root directory."""
        return cls("expected a root directory to be found in the archive")


class RepositoryError(BridgeError):
    """Raised when a git operation against the registry checkout fails."""

    def __init__(self, message: str, *, command: Sequence[str] = ()) -> None:
        """Initialise with a message and the failing git arguments."""
        self.command = tuple(command)
        super().__init__(message)

    @classmethod
    def command_failed(
        cls, command: Sequence[str], returncode: int, stderr: str
    ) -> RepositoryError:
        """Return an error for a git command that exited non-zero."""
        detail = stderr.strip() or "no output"
        return cls(
            f"git {' '.join(command)} exited with {returncode}: {detail}",
            command=command,
        )

    @classmethod
    def git_missing(cls) -> RepositoryError:
        """Return an error when the git executable cannot be found."""
        return cls("git executable not found on PATH")


class RemoteRejection(BridgeError):
    """Raised when the pull request endpoint rejects a request."""

    def __init__(self, message: str, *, status_code: int) -> None:
        """Initialise with the response body and HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def from_response(cls, status_code: int, body: str) -> RemoteRejection:
        """Return an error carrying the rejected response body."""
        return cls(
            f"Failed to open pull request (HTTP {status_code}): {body}",
            status_code=status_code,
        )


__all__ = [
    "ArchiveError",
    "BridgeError",
    "ConfigurationError",
    "DeserializationError",
    "NetworkError",
    "RemoteRejection",
    "RepositoryError",
]
