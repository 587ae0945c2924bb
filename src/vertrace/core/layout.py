"""Position version-change records on the release timeline as graph nodes."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from vertrace.core.categories import ChangeCategory
from vertrace.core.parser import VersionChangeRecord
from vertrace.core.style import NEUTRAL_STYLE, CategoryStyle, style_for
from vertrace.core.timeline import Timeline
from vertrace.core.versions import VersionIndex, VersionKind, classify_version, major_prefix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutConfig:
    """Spacing constants shared by the graph and the timeline axis."""

    offset_x: float = 150
    offset_y: float = 100
    # Node width 120 plus a 60 margin.
    version_spacing: float = 180
    # Minimum; grows with the deepest minor-branch fan-out.
    package_spacing: float = 230
    branch_spacing: float = 70
    # Major prefixes whose minor branch is drawn above the track instead of below.
    dense_majors: frozenset[str] = frozenset()


DEFAULT_LAYOUT = LayoutConfig()


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class Node:
    """One (package, version) pair placed on the canvas."""

    id: str
    package: str
    version: str
    kind: VersionKind
    position: Position
    change_category: str
    release_date: datetime
    description: str = ""
    localized_summary: str = ""
    source_link: str | None = None
    style: CategoryStyle = NEUTRAL_STYLE

    @property
    def category(self) -> ChangeCategory | None:
        return ChangeCategory.from_label(self.change_category)

    @property
    def label(self) -> str:
        return f"{self.package}\nv{self.version}"

    def to_dict(self) -> dict:
        """Serialize to the node shape the web frontend renders."""
        return {
            "id": self.id,
            "type": "custom",
            "position": {"x": self.position.x, "y": self.position.y},
            "data": {
                "label": self.label,
                "package": self.package,
                "version": self.version,
                "kind": self.kind.value,
                "changeType": self.change_category,
                "description": self.description,
                "summaryJa": self.localized_summary,
                "releaseDate": self.release_date.isoformat(),
                "sourceUrl": self.source_link,
            },
            "style": self.style.to_dict(),
        }


@dataclass(frozen=True)
class TrackGeometry:
    """Vertical spacing computed once per layout pass from all packages."""

    package_spacing: float
    branch_spacing: float
    max_fan_out: int = 0

    @property
    def headroom(self) -> float:
        """Gap between a track's major row and the lowest branch row of the track above."""
        return self.package_spacing - self.max_fan_out * self.branch_spacing


@dataclass(frozen=True)
class PackageNodes:
    """Nodes synthesized for one package, chronological."""

    package: str
    track: int
    nodes: tuple[Node, ...] = ()

    @property
    def majors(self) -> tuple[Node, ...]:
        return tuple(n for n in self.nodes if n.kind is VersionKind.MAJOR)

    @property
    def minors_by_major(self) -> dict[str, tuple[Node, ...]]:
        groups: dict[str, list[Node]] = {}
        for n in self.nodes:
            if n.kind is VersionKind.MINOR:
                groups.setdefault(major_prefix(n.version), []).append(n)
        return {prefix: tuple(members) for prefix, members in groups.items()}


@dataclass(frozen=True)
class AxisTick:
    """One release label on the timeline axis, aligned with node X."""

    identifier: str
    release_date: datetime
    x: float

    def to_dict(self) -> dict:
        return {
            "version": self.identifier,
            "release_date": self.release_date.isoformat(),
            "x": self.x,
        }


def node_id(package: str, version: str) -> str:
    return f"{package}-{version}"


def record_sort_key(record: VersionChangeRecord) -> tuple[datetime, str]:
    return (record.release_date, record.version)


def _branch_row(prefix: str, versions: VersionIndex) -> int:
    """Row below the track (1 = first row); majors unknown to the index use row 1."""
    rank = versions.major_rank(prefix)
    return 1 if rank is None else rank + 1


def branch_fan_out(
    records: Sequence[VersionChangeRecord],
    timeline: Timeline,
    versions: VersionIndex,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> int:
    """Number of branch rows a package needs below its track."""
    rows = 0
    for record in records:
        if timeline.rank(record.version) is None:
            continue
        prefix = major_prefix(record.version)
        if prefix is None or prefix in config.dense_majors:
            continue
        rows = max(rows, _branch_row(prefix, versions))
    return rows


def plan_tracks(
    evolution: Mapping[str, Sequence[VersionChangeRecord]],
    timeline: Timeline,
    versions: VersionIndex,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> TrackGeometry:
    """
    Compute the package spacing for a layout pass.

    The spacing is at least config.package_spacing, and large enough that the
    deepest branch row of one track still sits a full branch row above the
    next track.
    """
    fan_out = max(
        (branch_fan_out(records, timeline, versions, config) for records in evolution.values()),
        default=0,
    )
    spacing = max(config.package_spacing, (fan_out + 1) * config.branch_spacing)
    return TrackGeometry(
        package_spacing=spacing,
        branch_spacing=config.branch_spacing,
        max_fan_out=fan_out,
    )


def minor_offset(
    prefix: str,
    versions: VersionIndex,
    geometry: TrackGeometry,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> float:
    """
    Vertical offset of a minor branch relative to its package's major row.

    Each later major's branch sits one row further down. Prefixes listed in
    config.dense_majors go upward instead, floored at half the headroom so
    they never reach the rows of the package above.
    """
    offset = _branch_row(prefix, versions) * config.branch_spacing
    if prefix in config.dense_majors:
        return max(-offset, -geometry.headroom / 2)
    return offset


def synthesize_node(
    package: str,
    record: VersionChangeRecord,
    track: int,
    *,
    timeline: Timeline,
    versions: VersionIndex,
    geometry: TrackGeometry,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> Node | None:
    """Place one record; None if its version is not on the timeline or is malformed."""
    rank = timeline.rank(record.version)
    if rank is None:
        logger.warning(
            "Skipping %s %s: version is not on the release timeline", package, record.version
        )
        return None
    kind = classify_version(record.version)
    if kind is None:
        logger.warning("Skipping %s %s: malformed version identifier", package, record.version)
        return None

    x = config.offset_x + rank * config.version_spacing
    y = config.offset_y + track * geometry.package_spacing
    if kind is VersionKind.MINOR:
        y += minor_offset(major_prefix(record.version), versions, geometry, config)

    return Node(
        id=node_id(package, record.version),
        package=package,
        version=record.version,
        kind=kind,
        position=Position(x=x, y=y),
        change_category=record.change_category,
        release_date=record.release_date,
        description=record.description,
        localized_summary=record.localized_summary,
        source_link=record.source_link,
        style=style_for(record.change_category),
    )


def synthesize_package_nodes(
    package: str,
    records: Sequence[VersionChangeRecord],
    track: int,
    *,
    timeline: Timeline,
    versions: VersionIndex,
    geometry: TrackGeometry,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> PackageNodes:
    """
    Build all nodes of one package.

    Records are taken by release date, ties by version. When the same version
    appears twice, the later record replaces the earlier node.
    """
    by_id: dict[str, Node] = {}
    for record in sorted(records, key=record_sort_key):
        node = synthesize_node(
            package,
            record,
            track,
            timeline=timeline,
            versions=versions,
            geometry=geometry,
            config=config,
        )
        if node is not None:
            by_id[node.id] = node
    ordered = sorted(by_id.values(), key=lambda n: (n.release_date, n.version))
    return PackageNodes(package=package, track=track, nodes=tuple(ordered))


def timeline_axis(timeline: Timeline, config: LayoutConfig = DEFAULT_LAYOUT) -> list[AxisTick]:
    """Axis labels for every release, at the same X as the nodes of that release."""
    return [
        AxisTick(
            identifier=release.identifier,
            release_date=release.release_date,
            x=config.offset_x + rank * config.version_spacing,
        )
        for rank, release in enumerate(timeline.releases)
    ]
