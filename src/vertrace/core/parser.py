"""Parse the backend's visualization payload into typed records."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from vertrace.core.categories import ChangeCategory, infer_category
from vertrace.errors import PayloadError

logger = logging.getLogger(__name__)

# Go trims trailing zeros and may emit nanoseconds; fromisoformat on 3.10
# only takes 3 or 6 fraction digits.
_FRACTION_RE = re.compile(r"\.(\d+)")


@dataclass(frozen=True)
class Release:
    """One release on the shared timeline."""

    identifier: str
    release_date: datetime
    url: str = ""

    def to_dict(self) -> dict:
        return {
            "version": self.identifier,
            "release_date": self.release_date.isoformat(),
            "url": self.url,
        }


@dataclass(frozen=True)
class VersionChangeRecord:
    """What happened to one package in one release."""

    version: str
    release_date: datetime
    change_category: str
    description: str = ""
    localized_summary: str = ""
    source_link: str | None = None

    @property
    def category(self) -> ChangeCategory | None:
        return ChangeCategory.from_label(self.change_category)


@dataclass(frozen=True)
class VisualizationData:
    """Everything the layout needs: releases, package names and their change records."""

    releases: tuple[Release, ...] = ()
    packages: tuple[str, ...] = ()
    package_evolution: Mapping[str, tuple[VersionChangeRecord, ...]] = field(default_factory=dict)

    def evolution_index(self) -> dict[str, tuple[VersionChangeRecord, ...]]:
        """Records per package, including listed packages that have no records."""
        index = {name: () for name in self.packages}
        index.update(self.package_evolution)
        return index


def release_sort_key(release: Release) -> tuple[datetime, str]:
    """Timeline order: release date, ties broken by identifier."""
    return (release.release_date, release.identifier)


def _six_digit_fraction(match: re.Match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse an RFC 3339 / ISO 8601 timestamp into an aware datetime.

    Naive values are taken as UTC. Returns None if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _FRACTION_RE.sub(_six_digit_fraction, text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_release(raw: Any) -> Release | None:
    """Parse one release entry; None if version or date is missing or invalid."""
    if not isinstance(raw, Mapping):
        return None
    identifier = str(raw.get("version") or "").strip()
    released = parse_datetime(raw.get("release_date"))
    if not identifier or released is None:
        return None
    return Release(identifier=identifier, release_date=released, url=str(raw.get("url") or ""))


def parse_change_record(raw: Any) -> VersionChangeRecord | None:
    """Parse one package_evolution entry; None if version or date is missing or invalid."""
    if not isinstance(raw, Mapping):
        return None
    version = str(raw.get("version") or "").strip()
    released = parse_datetime(raw.get("release_date"))
    if not version or released is None:
        return None
    description = str(raw.get("description") or "")
    category = str(raw.get("change_type") or "").strip()
    if not category:
        category = infer_category(description).value
    return VersionChangeRecord(
        version=version,
        release_date=released,
        change_category=category,
        description=description,
        localized_summary=str(raw.get("summary_ja") or ""),
        source_link=raw.get("source_url") or None,
    )


def _require_list(payload: Mapping, key: str) -> Sequence:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PayloadError(f"'{key}' must be a list, got {type(value).__name__}")
    return value


def parse_visualization_data(payload: Any) -> VisualizationData:
    """
    Build VisualizationData from the backend's JSON body.

    Malformed individual releases and change records are skipped with a
    warning. A payload that is not an object, or that has none of the
    expected keys, raises PayloadError.
    """
    if not isinstance(payload, Mapping):
        raise PayloadError("Visualization payload must be a JSON object")
    if not {"releases", "packages", "package_evolution"} & payload.keys():
        raise PayloadError("Visualization payload has no releases, packages or package_evolution")

    releases: list[Release] = []
    for raw in _require_list(payload, "releases"):
        release = parse_release(raw)
        if release is None:
            logger.warning("Skipping malformed release entry: %r", raw)
            continue
        releases.append(release)

    packages = tuple(str(p) for p in _require_list(payload, "packages") if p)

    raw_evolution = payload.get("package_evolution") or {}
    if not isinstance(raw_evolution, Mapping):
        raise PayloadError("'package_evolution' must be an object")
    evolution: dict[str, tuple[VersionChangeRecord, ...]] = {}
    for package, raw_records in raw_evolution.items():
        records: list[VersionChangeRecord] = []
        if raw_records is None:
            raw_records = []
        elif not isinstance(raw_records, list):
            logger.warning(
                "Skipping change records for %s: expected a list, got %s",
                package,
                type(raw_records).__name__,
            )
            raw_records = []
        for raw in raw_records:
            record = parse_change_record(raw)
            if record is None:
                logger.warning("Skipping malformed change record for %s: %r", package, raw)
                continue
            records.append(record)
        evolution[str(package)] = tuple(records)

    return VisualizationData(
        releases=tuple(releases),
        packages=packages,
        package_evolution=evolution,
    )


def load_visualization_file(path: Path) -> VisualizationData:
    """Read a JSON dump of the /visualization response from disk."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise PayloadError(f"Cannot read visualization data from {path}: {e}") from e
    return parse_visualization_data(payload)
