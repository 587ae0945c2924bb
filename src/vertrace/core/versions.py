"""Classify release identifiers into major and minor versions."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from vertrace.core.parser import Release
from vertrace.core.timeline import build_timeline

logger = logging.getLogger(__name__)

VERSION_SEPARATOR = "."


class VersionKind(str, Enum):
    """Major (``1.23``) or minor (``1.23.1``) release identifier."""

    MAJOR = "major"
    MINOR = "minor"


def split_version(identifier: str) -> tuple[str, ...] | None:
    """Split an identifier into components; None if any component is empty."""
    if not identifier:
        return None
    parts = tuple(identifier.strip().split(VERSION_SEPARATOR))
    if any(not p for p in parts):
        return None
    return parts


def classify_version(identifier: str) -> VersionKind | None:
    """Two components -> MAJOR, three -> MINOR, anything else -> None (malformed)."""
    parts = split_version(identifier)
    if parts is None:
        return None
    if len(parts) == 2:
        return VersionKind.MAJOR
    if len(parts) == 3:
        return VersionKind.MINOR
    return None


def major_prefix(identifier: str) -> str | None:
    """Return the ``a.b`` prefix of a minor identifier ``a.b.c``, else None."""
    parts = split_version(identifier)
    if parts is None or len(parts) != 3:
        return None
    return VERSION_SEPARATOR.join(parts[:2])


@dataclass(frozen=True)
class VersionIndex:
    """Majors in timeline order and, per major prefix, its minors in timeline order."""

    majors: tuple[str, ...] = ()
    minors_by_major: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def major_rank(self, prefix: str) -> int | None:
        """Zero-based rank of a major among all known majors, or None."""
        try:
            return self.majors.index(prefix)
        except ValueError:
            return None


def classify_releases(releases: Iterable[Release]) -> VersionIndex:
    """
    Build the major -> ordered-minors index from a list of releases.

    Releases are taken in timeline order (date, then identifier), with
    duplicates collapsed the same way build_timeline does. Identifiers with
    neither two nor three components are reported and left out.
    """
    majors: list[str] = []
    minors: dict[str, list[str]] = {}
    for identifier in build_timeline(releases).order:
        kind = classify_version(identifier)
        if kind is None:
            logger.warning("Ignoring malformed release identifier %r", identifier)
        elif kind is VersionKind.MAJOR:
            majors.append(identifier)
        else:
            minors.setdefault(major_prefix(identifier), []).append(identifier)
    return VersionIndex(
        majors=tuple(majors),
        minors_by_major=MappingProxyType({k: tuple(v) for k, v in minors.items()}),
    )
