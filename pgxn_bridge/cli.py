"""Command-line entry point: run one PGXN to Trunk synchronization."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import tempfile
from pathlib import Path

from .config import BridgeConfig
from .errors import BridgeError, ConfigurationError
from .git.repository import PushCredentials, TrunkRepository
from .github.publisher import GitHubPublisher
from .logging import (
    configure_logging,
    get_logger,
    log_exception,
    log_info,
    log_warning,
)
from .pgxn.client import PgxnClient
from .sync import SyncOrchestrator, SyncReport, SyncSettings
from .trunk.client import TrunkRegistryClient

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIGURATION = 1
EXIT_STARTUP = 2


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgxn-bridge",
        description="Open Trunk pull requests for new or updated PGXN releases.",
    )
    parser.add_argument(
        "--workdir",
        type=Path,
        default=None,
        help="Directory to clone the registry into (default: a temporary directory)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level; overrides BRIDGE_LOG_LEVEL",
    )
    return parser


def _install_stop_handlers(orchestrator: SyncOrchestrator) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform; Ctrl-C then falls back to KeyboardInterrupt.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signum, orchestrator.request_stop)


async def run_bridge(config: BridgeConfig, workdir: Path) -> SyncReport:
    """Clone the registry under ``workdir`` and run one synchronization."""
    credentials = PushCredentials(
        username=config.credentials.username, token=config.credentials.token
    )
    repository = await asyncio.to_thread(
        TrunkRepository.clone,
        config.registry_clone_url,
        workdir / "trunk",
        credentials=credentials,
    )

    pgxn = PgxnClient.from_config(config)
    registry = TrunkRegistryClient.from_config(config)
    publisher = GitHubPublisher.from_config(config)
    try:
        orchestrator = SyncOrchestrator(
            feed=pgxn,
            registry=registry,
            resolver=pgxn,
            repository=repository,
            publisher=publisher,
            settings=SyncSettings.from_config(config),
        )
        _install_stop_handlers(orchestrator)
        return await orchestrator.run()
    finally:
        await pgxn.aclose()
        await registry.aclose()
        await publisher.aclose()


def main(argv: list[str] | None = None) -> int:
    """Run the bridge once.

    Returns
    -------
    int
        ``0`` when the run completed (individual releases may still have
        failed), ``1`` for configuration errors, ``2`` when the run could not
        start (clone, feed fetch, or registry crawl failed).

    """
    args = _parser().parse_args(argv)

    try:
        config = BridgeConfig.from_env()
    except ConfigurationError as exc:
        configure_logging(args.log_level)
        log_exception(logger, f"Invalid configuration: {exc}", exc)
        return EXIT_CONFIGURATION

    raw_level = args.log_level or config.log_level
    level, invalid = configure_logging(raw_level)
    if invalid:
        log_warning(
            logger, "Invalid log level %r, falling back to %s", raw_level, level
        )

    with contextlib.ExitStack() as stack:
        workdir = args.workdir
        if workdir is None:
            workdir = Path(stack.enter_context(tempfile.TemporaryDirectory()))
        try:
            report = asyncio.run(run_bridge(config, workdir))
        except BridgeError as exc:
            log_exception(logger, f"Synchronization aborted: {exc}", exc)
            return EXIT_STARTUP

    log_info(
        logger,
        "Run finished: %d published, %d skipped, %d failed%s",
        len(report.published),
        len(report.skipped),
        len(report.failed),
        " (stopped early)" if report.stopped else "",
    )
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
