"""Tests for the registry working copy against a local bare remote."""

from __future__ import annotations

import base64
import subprocess
import typing as typ

import pytest

from pgxn_bridge.errors import RepositoryError
from pgxn_bridge.git.repository import PushCredentials, TrunkRepository
from tests.helpers.git_repos import advance_remote, requires_git, run_git

if typ.TYPE_CHECKING:
    from pathlib import Path

pytestmark = requires_git

AUTHOR = {"author": "Bridge Bot", "email": "bot@example.com"}


@pytest.fixture
def repository(remote_repo: Path, tmp_path: Path) -> TrunkRepository:
    """Return a fresh clone of the seeded remote."""
    return TrunkRepository.clone(
        str(remote_repo),
        tmp_path / "work",
        credentials=PushCredentials(username="bridge-bot", token="tok"),
    )


def test_clone_records_default_branch_baseline(
    repository: TrunkRepository, remote_repo: Path
) -> None:
    """The clone's default branch and tip become the baseline."""
    assert repository.baseline.branch == "main"
    assert repository.baseline.commit == run_git(
        "rev-parse", "refs/heads/main", cwd=remote_repo
    )


def test_write_manifest_uses_contrib_layout(repository: TrunkRepository) -> None:
    """Manifests land at ``contrib/<dist>/Trunk.toml``."""
    path = repository.write_manifest("pair", "[extension]\n")

    assert path == repository.path / "contrib" / "pair" / "Trunk.toml"
    assert path.read_text() == "[extension]\n"


def test_commit_to_branch_parents_on_baseline(repository: TrunkRepository) -> None:
    """The new commit's parent is the baseline and HEAD does not move."""
    baseline = repository.baseline.commit
    repository.write_manifest("pair", "[extension]\n")

    commit = repository.commit_to_branch(
        "pgxn-bridge: publish pair v0.1.0",
        branch_name="pgxn-bridge/pair-0.1.0",
        **AUTHOR,
    )

    assert repository.git("rev-parse", f"{commit}^") == baseline
    assert repository.git("rev-parse", "HEAD") == baseline
    assert repository.git("rev-parse", "refs/heads/pgxn-bridge/pair-0.1.0") == commit
    assert repository.git("show", f"{commit}:contrib/pair/Trunk.toml") == "[extension]"
    assert repository.git("log", "-1", "--format=%an <%ae>", commit) == (
        "Bridge Bot <bot@example.com>"
    )


def test_push_and_reset_isolate_releases(
    repository: TrunkRepository, remote_repo: Path
) -> None:
    """After a reset, the next branch sees none of the previous release's files."""
    repository.write_manifest("pair", "first\n")
    first = repository.commit_to_branch(
        "first", branch_name="pgxn-bridge/pair-0.1.0", **AUTHOR
    )
    repository.push("pgxn-bridge/pair-0.1.0")
    repository.reset_to_baseline()

    assert not (repository.path / "contrib" / "pair").exists()
    pushed = run_git(
        "rev-parse", "refs/heads/pgxn-bridge/pair-0.1.0", cwd=remote_repo
    )
    assert pushed == first

    repository.write_manifest("other", "second\n")
    second = repository.commit_to_branch(
        "second", branch_name="pgxn-bridge/other-1.0.0", **AUTHOR
    )

    assert repository.git("rev-parse", f"{second}^") == repository.baseline.commit
    files = repository.git("ls-tree", "-r", "--name-only", second).splitlines()
    assert "contrib/other/Trunk.toml" in files
    assert "contrib/pair/Trunk.toml" not in files


def test_reset_removes_untracked_files_and_follows_remote(
    repository: TrunkRepository, remote_repo: Path, tmp_path: Path
) -> None:
    """Reset discards stray files and adopts the remote's new tip."""
    (repository.path / "stray.txt").write_text("leftover\n")
    upstream = advance_remote(remote_repo, tmp_path, "NEWS.md")

    repository.reset_to_baseline()

    assert not (repository.path / "stray.txt").exists()
    assert (repository.path / "NEWS.md").exists()
    assert repository.baseline.commit == upstream


def test_push_failure_keeps_credentials_out_of_error(
    repository: TrunkRepository,
) -> None:
    """A failed push raises RepositoryError without the auth header."""
    with pytest.raises(RepositoryError) as excinfo:
        repository.push("pgxn-bridge/missing-1.0.0")

    assert excinfo.value.command[0] == "push"
    assert "Authorization" not in str(excinfo.value)
    assert all("Authorization" not in part for part in excinfo.value.command)


def test_open_outside_a_repository_fails(tmp_path: Path) -> None:
    """Opening a directory that is not a checkout raises RepositoryError."""
    with pytest.raises(RepositoryError):
        TrunkRepository.open(tmp_path)


def test_push_credentials_header_and_repr() -> None:
    """Credentials render basic auth and hide the token."""
    credentials = PushCredentials(username="bridge-bot", token="s3cret")
    encoded = base64.b64encode(b"bridge-bot:s3cret").decode()

    assert credentials.extra_header() == f"Authorization: Basic {encoded}"
    assert "s3cret" not in repr(credentials)


def test_push_passes_auth_header_through_environment(
    repository: TrunkRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    """The token-bearing header reaches git via its env, never its argv."""
    calls: list[tuple[list[str], dict[str, str]]] = []

    def fake_run(
        argv: list[str], **kwargs: typ.Any
    ) -> subprocess.CompletedProcess[str]:
        calls.append((argv, kwargs["env"]))
        return subprocess.CompletedProcess(argv, 0, stdout="", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    header = PushCredentials(username="bridge-bot", token="tok").extra_header()

    repository.push("pgxn-bridge/pair-0.1.0")

    [(argv, env)] = calls
    assert "push" in argv
    assert all("Authorization" not in part for part in argv)
    assert not any(header.split()[-1] in part for part in argv)
    assert env["GIT_CONFIG_COUNT"] == "1"
    assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
    assert env["GIT_CONFIG_VALUE_0"] == header
