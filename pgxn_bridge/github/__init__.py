"""GitHub pull request publishing."""

from __future__ import annotations

from .publisher import GitHubPublisher, Publisher, PullRequestRequest

__all__ = ["GitHubPublisher", "Publisher", "PullRequestRequest"]
