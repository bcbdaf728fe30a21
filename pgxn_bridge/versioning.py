"""Version comparison and skip/new/update decisions.

The comparator is deliberately not semantic versioning: components are
compared as integers (non-numeric components count as ``0``) and, when the
shared prefix is equal, the version with fewer components sorts first, so
``"1.2" < "1.2.0"``. Skip/update decisions depend on this ordering.
"""

from __future__ import annotations

import enum
import re
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from pgxn_bridge.trunk.models import RegistryEntry


class Ordering(enum.IntEnum):
    """Result of comparing two version strings."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


class Decision(enum.StrEnum):
    """What to do with a release given the registry's current state."""

    NEW = "new"
    UPDATE = "update"
    SKIP = "skip"


_NUMERIC_COMPONENT = re.compile(r"[+-]?[0-9]+")
_COMPONENT_MIN = -(2**31)
_COMPONENT_MAX = 2**31 - 1


def _component(part: str) -> int:
    # Anything other than a plain 32-bit integer counts as 0.
    if not _NUMERIC_COMPONENT.fullmatch(part):
        return 0
    value = int(part)
    if not _COMPONENT_MIN <= value <= _COMPONENT_MAX:
        return 0
    return value


def version_components(version: str) -> list[int]:
    """Split ``version`` on ``.`` into integer components."""
    return [_component(part) for part in version.split(".")]


def _cmp(left: int, right: int) -> Ordering:
    if left < right:
        return Ordering.LESS
    if left > right:
        return Ordering.GREATER
    return Ordering.EQUAL


def compare_versions(left: str, right: str) -> Ordering:
    """Compare two version strings component by component.

    Examples
    --------
    >>> compare_versions("1.3.0", "1.2.9")
    <Ordering.GREATER: 1>
    >>> compare_versions("1.2", "1.2.0")
    <Ordering.LESS: -1>

    """
    left_parts = version_components(left)
    right_parts = version_components(right)
    for left_part, right_part in zip(left_parts, right_parts, strict=False):
        ordering = _cmp(left_part, right_part)
        if ordering is not Ordering.EQUAL:
            return ordering
    return _cmp(len(left_parts), len(right_parts))


def matches(entry: RegistryEntry, distribution: str) -> bool:
    """Return True when ``entry`` describes ``distribution`` by name or alias."""
    return entry.name == distribution or entry.alias == distribution


def find_entry(
    entries: cabc.Iterable[RegistryEntry], distribution: str
) -> RegistryEntry | None:
    """Return the first registry entry matching ``distribution``."""
    return next((entry for entry in entries if matches(entry, distribution)), None)


def reconcile(version: str, entry: RegistryEntry | None) -> Decision:
    """Decide whether a release is new, an update, or already covered."""
    if entry is None:
        return Decision.NEW
    if compare_versions(version, entry.version) is Ordering.GREATER:
        return Decision.UPDATE
    return Decision.SKIP


__all__ = [
    "Decision",
    "Ordering",
    "compare_versions",
    "find_entry",
    "matches",
    "reconcile",
    "version_components",
]
