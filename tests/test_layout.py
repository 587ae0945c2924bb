"""Tests for vertrace.core.layout."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from vertrace.core.categories import ChangeCategory
from vertrace.core.layout import (
    DEFAULT_LAYOUT,
    LayoutConfig,
    TrackGeometry,
    minor_offset,
    node_id,
    plan_tracks,
    synthesize_package_nodes,
    timeline_axis,
)
from vertrace.core.parser import Release, VersionChangeRecord
from vertrace.core.style import style_for
from vertrace.core.timeline import build_timeline
from vertrace.core.versions import VersionKind, classify_releases


def _dt(month: int) -> datetime:
    return datetime(2024, month, 1, tzinfo=timezone.utc)


def _record(version: str, month: int, category: str = "Added") -> VersionChangeRecord:
    return VersionChangeRecord(version=version, release_date=_dt(month), change_category=category)


RELEASES = [
    Release("1.21", _dt(1)),
    Release("1.21.1", _dt(2)),
    Release("1.22", _dt(3)),
    Release("1.22.1", _dt(4)),
]


def _synthesize(records, track: int = 0, config: LayoutConfig = DEFAULT_LAYOUT):
    timeline = build_timeline(RELEASES)
    versions = classify_releases(RELEASES)
    geometry = plan_tracks({"pkg": records}, timeline, versions, config)
    return synthesize_package_nodes(
        "pkg",
        records,
        track,
        timeline=timeline,
        versions=versions,
        geometry=geometry,
        config=config,
    )


class TestNodeId:
    """Tests for node_id."""

    def test_format(self) -> None:
        assert node_id("net/http", "1.21.1") == "net/http-1.21.1"


class TestPlanTracks:
    """Tests for plan_tracks."""

    def test_minimum_spacing(self) -> None:
        timeline = build_timeline(RELEASES)
        versions = classify_releases(RELEASES)
        geometry = plan_tracks({"pkg": [_record("1.21.1", 2)]}, timeline, versions)
        assert geometry.package_spacing == DEFAULT_LAYOUT.package_spacing
        assert geometry.max_fan_out == 1

    def test_spacing_grows_with_fan_out(self) -> None:
        releases = [Release(f"1.{m}", _dt(m)) for m in range(1, 5)]
        releases += [Release(f"1.{m}.1", _dt(m + 4)) for m in range(1, 5)]
        timeline = build_timeline(releases)
        versions = classify_releases(releases)
        geometry = plan_tracks({"pkg": [_record("1.4.1", 8)]}, timeline, versions)
        # 1.4 is the fourth major: four branch rows plus one row of separation.
        assert geometry.max_fan_out == 4
        assert geometry.package_spacing == 5 * DEFAULT_LAYOUT.branch_spacing

    def test_no_minors(self) -> None:
        timeline = build_timeline(RELEASES)
        versions = classify_releases(RELEASES)
        geometry = plan_tracks({}, timeline, versions)
        assert geometry.max_fan_out == 0
        assert geometry.headroom == DEFAULT_LAYOUT.package_spacing


class TestMinorOffset:
    """Tests for minor_offset."""

    def test_later_major_sits_lower(self) -> None:
        versions = classify_releases(RELEASES)
        geometry = TrackGeometry(package_spacing=230, branch_spacing=70, max_fan_out=2)
        assert minor_offset("1.21", versions, geometry) == 70
        assert minor_offset("1.22", versions, geometry) == 140

    def test_unknown_major_uses_first_row(self) -> None:
        versions = classify_releases(RELEASES)
        geometry = TrackGeometry(package_spacing=230, branch_spacing=70)
        assert minor_offset("2.0", versions, geometry) == 70

    def test_dense_major_inverts_with_floor(self) -> None:
        versions = classify_releases(RELEASES)
        config = LayoutConfig(dense_majors=frozenset({"1.22"}))
        geometry = TrackGeometry(package_spacing=230, branch_spacing=70, max_fan_out=1)
        # Would be -140, floored at half of 230 - 70.
        assert minor_offset("1.22", versions, geometry, config) == -80
        assert minor_offset("1.21", versions, geometry, config) == 70


class TestSynthesizePackageNodes:
    """Tests for synthesize_package_nodes."""

    def test_positions(self) -> None:
        result = _synthesize([_record("1.22", 3), _record("1.21", 1), _record("1.21.1", 2)], track=1)
        by_version = {n.version: n for n in result.nodes}
        base_y = DEFAULT_LAYOUT.offset_y + DEFAULT_LAYOUT.package_spacing
        assert by_version["1.21"].position.x == 150
        assert by_version["1.21.1"].position.x == 330
        assert by_version["1.22"].position.x == 510
        assert by_version["1.21"].position.y == base_y
        assert by_version["1.22"].position.y == base_y
        assert by_version["1.21.1"].position.y == base_y + 70

    def test_chronological_and_split(self) -> None:
        result = _synthesize([_record("1.22", 3), _record("1.21.1", 2), _record("1.21", 1)])
        assert [n.version for n in result.nodes] == ["1.21", "1.21.1", "1.22"]
        assert [n.version for n in result.majors] == ["1.21", "1.22"]
        assert {k: [n.version for n in v] for k, v in result.minors_by_major.items()} == {
            "1.21": ["1.21.1"]
        }
        assert result.nodes[1].kind is VersionKind.MINOR

    def test_record_not_on_timeline_is_skipped(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="vertrace.core.layout"):
            result = _synthesize([_record("1.21", 1), _record("1.99", 5)])
        assert [n.version for n in result.nodes] == ["1.21"]
        assert "1.99" in caplog.text

    def test_duplicate_version_last_wins(self) -> None:
        result = _synthesize([_record("1.21", 1, "Added"), _record("1.21", 1, "Modified")])
        assert len(result.nodes) == 1
        assert result.nodes[0].change_category == "Modified"

    def test_style_follows_category(self) -> None:
        result = _synthesize([_record("1.21", 1, "Security Fix")])
        assert result.nodes[0].style == style_for(ChangeCategory.SECURITY_FIX)

    def test_no_records(self) -> None:
        assert _synthesize([]).nodes == ()


class TestNodeToDict:
    """Tests for Node.to_dict."""

    def test_shape(self) -> None:
        node = _synthesize([_record("1.21", 1)]).nodes[0]
        d = node.to_dict()
        assert d["id"] == "pkg-1.21"
        assert d["position"] == {"x": 150, "y": 100}
        assert d["data"]["label"] == "pkg\nv1.21"
        assert d["data"]["changeType"] == "Added"
        assert d["data"]["kind"] == "major"
        assert d["data"]["releaseDate"].startswith("2024-01-01")


class TestTimelineAxis:
    """Tests for timeline_axis."""

    def test_ticks_align_with_nodes(self) -> None:
        ticks = timeline_axis(build_timeline(RELEASES))
        assert [t.identifier for t in ticks] == ["1.21", "1.21.1", "1.22", "1.22.1"]
        assert [t.x for t in ticks] == [150, 330, 510, 690]
        assert ticks[0].to_dict()["version"] == "1.21"
