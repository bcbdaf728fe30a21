"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest

from pgxn_bridge.config import BuildSettings
from pgxn_bridge.sync import SyncOrchestrator, SyncSettings
from tests.helpers.git_repos import seed_remote
from tests.helpers.sync_fakes import (
    FakeFeed,
    FakePublisher,
    FakeRegistry,
    FakeRepository,
    FakeResolver,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from pgxn_bridge.pgxn.models import ReleaseRecord
    from pgxn_bridge.trunk.models import RegistryEntry


@pytest.fixture
def remote_repo(tmp_path: Path) -> Path:
    """Return a bare ``main``-branch remote seeded with one contrib manifest."""
    return seed_remote(tmp_path)


class OrchestratorFactory(typ.Protocol):
    """Callable fixture building an orchestrator over fakes."""

    def __call__(
        self,
        releases: list[ReleaseRecord],
        entries: list[RegistryEntry] | None = None,
    ) -> SyncOrchestrator: ...


@pytest.fixture
def fake_resolver() -> FakeResolver:
    """Return a resolver that succeeds unless told otherwise."""
    return FakeResolver()


@pytest.fixture
def fake_repository() -> FakeRepository:
    """Return an in-memory working copy."""
    return FakeRepository()


@pytest.fixture
def fake_publisher() -> FakePublisher:
    """Return a publisher that succeeds unless told otherwise."""
    return FakePublisher()


@pytest.fixture
def sync_settings() -> SyncSettings:
    """Return commit identity and build settings for tests."""
    return SyncSettings(
        author="Bridge Bot",
        email="bot@example.com",
        base_branch="main",
        build=BuildSettings(postgres_version="15", platform="linux/amd64"),
    )


@pytest.fixture
def build_orchestrator(
    fake_resolver: FakeResolver,
    fake_repository: FakeRepository,
    fake_publisher: FakePublisher,
    sync_settings: SyncSettings,
) -> OrchestratorFactory:
    """Return a factory wiring an orchestrator to the shared fakes."""

    def _build(
        releases: list[ReleaseRecord],
        entries: list[RegistryEntry] | None = None,
    ) -> SyncOrchestrator:
        return SyncOrchestrator(
            feed=FakeFeed(*releases),
            registry=FakeRegistry(entries),
            resolver=fake_resolver,
            repository=fake_repository,
            publisher=fake_publisher,
            settings=sync_settings,
        )

    return _build
