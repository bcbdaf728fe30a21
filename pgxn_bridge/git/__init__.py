"""Git working copy management for the registry checkout."""

from __future__ import annotations

from .repository import Baseline, PushCredentials, TrunkRepository

__all__ = ["Baseline", "PushCredentials", "TrunkRepository"]
