"""Canonical release timeline and package track order."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from vertrace.core.parser import Release, VersionChangeRecord, release_sort_key


@dataclass(frozen=True)
class Timeline:
    """Releases in chronological order with an identifier -> rank lookup."""

    releases: tuple[Release, ...] = ()
    ranks: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def order(self) -> tuple[str, ...]:
        return tuple(r.identifier for r in self.releases)

    def rank(self, identifier: str) -> int | None:
        """Zero-based chronological position of a release, or None if unknown."""
        return self.ranks.get(identifier)

    def __len__(self) -> int:
        return len(self.releases)


def build_timeline(releases: Iterable[Release]) -> Timeline:
    """
    Order releases by date, ties broken by identifier.

    Duplicate identifiers collapse to the last one given, so the rank of a
    release is stable however often the backend repeats it.
    """
    unique = {r.identifier: r for r in releases}
    ordered = tuple(sorted(unique.values(), key=release_sort_key))
    ranks = MappingProxyType({r.identifier: i for i, r in enumerate(ordered)})
    return Timeline(releases=ordered, ranks=ranks)


def _first_appearance(records: Sequence[VersionChangeRecord]) -> datetime | None:
    if not records:
        return None
    return min(r.release_date for r in records)


def order_packages(evolution: Mapping[str, Sequence[VersionChangeRecord]]) -> tuple[str, ...]:
    """
    Assign package tracks: earliest record date first, ties by name.

    Packages without records go last, sorted by name. A package's index in the
    result is its Y-track index.
    """
    dated: list[tuple[datetime, str]] = []
    undated: list[str] = []
    for name, records in evolution.items():
        first = _first_appearance(records)
        if first is None:
            undated.append(name)
        else:
            dated.append((first, name))
    return tuple(name for _, name in sorted(dated)) + tuple(sorted(undated))
