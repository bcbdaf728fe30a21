"""Typed PGXN documents decoded with msgspec."""

from __future__ import annotations

import msgspec

#: ``maintainer`` is either one name or a non-empty list of names.
Maintainer = str | list[str]

#: ``license`` is either an identifier or a mapping of label to license URL.
License = str | dict[str, str]


class ReleaseRecord(msgspec.Struct, frozen=True, kw_only=True):
    """One entry of the ``recent`` list in ``/stats/dist.json``.

    Attributes
    ----------
    dist : str
        Distribution name as published on PGXN.
    version : str
        Released version string.
    description : str
        Short abstract (wire key ``abstract``).
    date : str
        Publish timestamp as reported by PGXN.
    user : str
        Publishing PGXN user id.
    user_name : str
        Publishing user's display name.

    """

    dist: str
    version: str
    description: str = msgspec.field(name="abstract")
    date: str
    user: str
    user_name: str

    @property
    def dist_lower(self) -> str:
        """Return the lowercase distribution name used in PGXN URLs."""
        return self.dist.lower()

    @property
    def label(self) -> str:
        """Return a ``dist v<version>`` label for log lines."""
        return f"{self.dist} v{self.version}"


class ReleaseFeed(msgspec.Struct, frozen=True, kw_only=True):
    """Response of ``/stats/dist.json``; ``recent`` is most recent first."""

    count: int
    releases: int
    recent: list[ReleaseRecord] = msgspec.field(default_factory=list)


class Bugtracker(msgspec.Struct, frozen=True, kw_only=True):
    """Bug tracker resource link."""

    web: str


class SourceRepository(msgspec.Struct, frozen=True, kw_only=True):
    """Source repository resource with fetch and browse URLs."""

    url: str
    web: str


class Resources(msgspec.Struct, frozen=True, kw_only=True):
    """Resource links declared in ``META.json``."""

    repository: SourceRepository
    bugtracker: Bugtracker | None = None
    homepage: str | None = None


class ExtensionMetadata(
    msgspec.Struct, frozen=True, kw_only=True, rename="camel"
):
    """``META.json`` for one distribution version.

    Only the fields the bridge consumes are declared; anything else in the
    document is ignored during decoding.
    """

    name: str
    abstract: str
    description: str | None = None
    version: str
    date: str
    maintainer: Maintainer
    release_status: str = msgspec.field(name="release_status")
    user: str
    license: License
    tags: list[str] = msgspec.field(default_factory=list)
    resources: Resources

    def __post_init__(self) -> None:
        """Reject an empty maintainer list."""
        if isinstance(self.maintainer, list) and not self.maintainer:
            msg = "maintainer list must not be empty"
            raise ValueError(msg)

    @property
    def summary(self) -> str:
        """Return the long description, falling back to the abstract."""
        return self.description if self.description is not None else self.abstract

    @property
    def maintainers(self) -> tuple[str, ...]:
        """Return maintainer names as a tuple regardless of wire shape."""
        if isinstance(self.maintainer, str):
            return (self.maintainer,)
        return tuple(self.maintainer)


__all__ = [
    "Bugtracker",
    "ExtensionMetadata",
    "License",
    "Maintainer",
    "ReleaseFeed",
    "ReleaseRecord",
    "Resources",
    "SourceRepository",
]
