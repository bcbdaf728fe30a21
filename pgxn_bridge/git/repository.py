"""Local working copy of the registry and its branch/commit/push/reset cycle.

Each synchronized release goes through the same states::

    Cloned -> BranchCreated -> Committed -> Pushed -> ResetToBaseline

New commits are always parented on the recorded baseline commit rather than
on HEAD, and :meth:`TrunkRepository.reset_to_baseline` restores the working
tree afterwards, so no release sees another release's files or commits.

All methods block on the ``git`` executable; async callers offload them with
``asyncio.to_thread``.
"""

from __future__ import annotations

import base64
import dataclasses
import os
import shutil
import subprocess
import typing as typ
from pathlib import Path

from pgxn_bridge.errors import RepositoryError
from pgxn_bridge.logging import get_logger, log_debug, log_info
from pgxn_bridge.trunk.models import CONTRIB_DIRECTORY, MANIFEST_FILENAME

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

_GIT_TIMEOUT_S = 300
_REMOTE = "origin"


@dataclasses.dataclass(frozen=True, slots=True)
class PushCredentials:
    """Basic-auth identity presented to the remote when pushing."""

    username: str
    token: str

    def __repr__(self) -> str:
        """Hide the token from reprs."""
        return f"PushCredentials(username={self.username!r}, token='***')"

    def extra_header(self) -> str:
        """Return the ``http.extraHeader`` value carrying basic auth."""
        raw = f"{self.username}:{self.token}".encode()
        return f"Authorization: Basic {base64.b64encode(raw).decode('ascii')}"

    def git_config_env(self) -> dict[str, str]:
        """Return environment variables that set the auth header for one command.

        Keeps the token out of git's argv.
        """
        return {
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": self.extra_header(),
        }


@dataclasses.dataclass(slots=True)
class Baseline:
    """Default branch name and the commit new branches are parented on."""

    branch: str
    commit: str


def _git_executable() -> str:
    git_executable = shutil.which("git")
    if git_executable is None:
        raise RepositoryError.git_missing()
    return git_executable


def _run_git(
    args: cabc.Sequence[str],
    *,
    cwd: Path | None = None,
    env: cabc.Mapping[str, str] | None = None,
) -> str:
    """Run ``git`` and return stripped stdout, raising RepositoryError on failure."""
    argv = [_git_executable()]
    if cwd is not None:
        argv.extend(["-C", str(cwd)])
    argv.extend(args)

    merged_env = None
    if env is not None:
        merged_env = {**os.environ, **env}

    try:
        result = subprocess.run(  # noqa: S603  # argv built from fixed git subcommands
            argv,
            check=False,
            capture_output=True,
            text=True,
            timeout=_GIT_TIMEOUT_S,
            env=merged_env,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        msg = f"git {' '.join(args)} failed: {exc}"
        raise RepositoryError(msg, command=args) from exc
    if result.returncode != 0:
        raise RepositoryError.command_failed(args, result.returncode, result.stderr)
    return result.stdout.strip()


class TrunkRepository:
    """A cloned registry working copy with a restorable baseline."""

    def __init__(
        self,
        path: Path,
        baseline: Baseline,
        *,
        credentials: PushCredentials | None = None,
    ) -> None:
        """Wrap an existing checkout; prefer :meth:`clone` or :meth:`open`."""
        self.path = Path(path)
        self.baseline = baseline
        self._credentials = credentials

    @classmethod
    def clone(
        cls,
        remote_url: str,
        path: Path,
        *,
        credentials: PushCredentials | None = None,
    ) -> TrunkRepository:
        """Clone ``remote_url`` into ``path`` and record its default branch."""
        _run_git(["clone", "--quiet", remote_url, str(path)])
        repository = cls.open(path, credentials=credentials)
        log_info(
            logger,
            "Cloned %s to %s (baseline %s@%s)",
            remote_url,
            path,
            repository.baseline.branch,
            repository.baseline.commit,
        )
        return repository

    @classmethod
    def open(
        cls, path: Path, *, credentials: PushCredentials | None = None
    ) -> TrunkRepository:
        """Open an existing checkout, taking its current branch as the baseline."""
        branch = _run_git(["symbolic-ref", "--short", "HEAD"], cwd=path)
        commit = _run_git(["rev-parse", "HEAD"], cwd=path)
        baseline = Baseline(branch=branch, commit=commit)
        return cls(path, baseline, credentials=credentials)

    def git(self, *args: str, env: cabc.Mapping[str, str] | None = None) -> str:
        """Run a git command inside the working copy."""
        return _run_git(args, cwd=self.path, env=env)

    def manifest_path(self, distribution: str) -> Path:
        """Return ``<root>/contrib/<distribution>/Trunk.toml``."""
        return self.path / CONTRIB_DIRECTORY / distribution / MANIFEST_FILENAME

    def write_manifest(self, distribution: str, content: str) -> Path:
        """Write a manifest for ``distribution`` into the working tree."""
        target = self.manifest_path(distribution)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            msg = f"failed to write {target}: {exc}"
            raise RepositoryError(msg) from exc
        return target

    def commit_to_branch(
        self,
        message: str,
        *,
        author: str,
        email: str,
        branch_name: str,
    ) -> str:
        """Commit the whole working tree onto a new branch off the baseline.

        HEAD does not move. Returns the new commit id.
        """
        self.git("add", "--all")
        tree = self.git("write-tree")
        identity = {
            "GIT_AUTHOR_NAME": author,
            "GIT_AUTHOR_EMAIL": email,
            "GIT_COMMITTER_NAME": author,
            "GIT_COMMITTER_EMAIL": email,
        }
        parent = self.baseline.commit
        commit = self.git(
            "commit-tree", tree, "-p", parent, "-m", message, env=identity
        )
        self.git("branch", branch_name, commit)
        log_info(logger, "Created branch %s at %s", branch_name, commit)
        return commit

    def push(self, branch_name: str) -> None:
        """Push ``branch_name`` to the same name on ``origin``."""
        refspec = f"refs/heads/{branch_name}:refs/heads/{branch_name}"
        env = None
        if self._credentials is not None:
            env = self._credentials.git_config_env()
        self.git("push", _REMOTE, refspec, env=env)
        log_info(logger, "Pushed %s", branch_name)

    def reset_to_baseline(self) -> None:
        """Fetch the baseline branch and hard-reset the working copy onto it.

        Untracked files are removed too. The fetched tip becomes the baseline
        commit for the next release.
        """
        branch = self.baseline.branch
        self.git("fetch", "--quiet", _REMOTE, branch)
        commit = self.git("rev-parse", "FETCH_HEAD")
        self.git("reset", "--hard", "--quiet", commit)
        self.git("clean", "-d", "--force", "--quiet")
        self.baseline.commit = commit
        log_debug(logger, "Reset working copy to %s@%s", branch, commit)


__all__ = ["Baseline", "PushCredentials", "TrunkRepository"]
