"""Tests for the full layout pipeline (vertrace.core.graph)."""

from __future__ import annotations

from collections import defaultdict

from conftest import MIXED_PAYLOAD, NET_HTTP_PAYLOAD
from vertrace.core.edges import EdgeKind
from vertrace.core.graph import build_graph, layout_packages
from vertrace.core.layout import LayoutConfig
from vertrace.core.parser import VisualizationData, parse_visualization_data
from vertrace.core.timeline import build_timeline


class TestNetHttpScenario:
    """One package, two majors and one patch release."""

    def test_nodes(self, net_http_data: VisualizationData) -> None:
        graph = build_graph(net_http_data)
        assert [n.id for n in graph.nodes] == ["net/http-1.21", "net/http-1.21.1", "net/http-1.22"]

    def test_edges(self, net_http_data: VisualizationData) -> None:
        graph = build_graph(net_http_data)
        chain = [(e.source, e.target) for e in graph.edges if e.kind is EdgeKind.CHAIN]
        branch = [(e.source, e.target) for e in graph.edges if e.kind is EdgeKind.BRANCH]
        assert chain == [("net/http-1.21", "net/http-1.22")]
        assert branch == [("net/http-1.21", "net/http-1.21.1")]
        assert len(graph.edges) == 2

    def test_coordinates(self, net_http_data: VisualizationData) -> None:
        graph = build_graph(net_http_data)
        positions = {n.version: (n.position.x, n.position.y) for n in graph.nodes}
        assert positions == {"1.21": (150, 100), "1.21.1": (330, 170), "1.22": (510, 100)}


class TestMixedScenario:
    """Several packages, one of them without an anchor major."""

    def test_track_order(self, mixed_data: VisualizationData) -> None:
        packages = [p.package for p in layout_packages(mixed_data)]
        assert packages == ["net/http", "crypto/tls", "log/slog"]

    def test_unanchored_minor_group(self, mixed_data: VisualizationData) -> None:
        graph = build_graph(mixed_data)
        tls_edges = [e for e in graph.edges if e.source.startswith("crypto/tls")]
        assert [e.kind for e in tls_edges] == [EdgeKind.CHAIN]
        assert (tls_edges[0].source, tls_edges[0].target) == ("crypto/tls-2.0.1", "crypto/tls-2.0.2")
        assert tls_edges[0].animated is True

    def test_package_spacing_grows_for_deep_branches(self, mixed_data: VisualizationData) -> None:
        graph = build_graph(mixed_data)
        tls = graph.nodes_for_package("crypto/tls")
        # 2.0 is the third major, so spacing is (3 + 1) * 70 and the branch sits 3 rows down.
        assert [n.position.y for n in tls] == [100 + 280 + 210, 100 + 280 + 210]

    def test_to_dict(self, mixed_data: VisualizationData) -> None:
        d = build_graph(mixed_data).to_dict()
        assert len(d["nodes"]) == 6
        assert len(d["edges"]) == 4


class TestGraphProperties:
    """Properties that hold for every layout."""

    def test_deterministic(self) -> None:
        first = build_graph(parse_visualization_data(MIXED_PAYLOAD))
        second = build_graph(parse_visualization_data(MIXED_PAYLOAD))
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_unique_ids_and_referential_integrity(self, mixed_data: VisualizationData) -> None:
        graph = build_graph(mixed_data)
        ids = [n.id for n in graph.nodes]
        assert len(ids) == len(set(ids))
        assert len({e.id for e in graph.edges}) == len(graph.edges)
        for edge in graph.edges:
            assert edge.source in graph.node_ids
            assert edge.target in graph.node_ids

    def test_x_monotonic_in_timeline_rank(self, mixed_data: VisualizationData) -> None:
        graph = build_graph(mixed_data)
        timeline = build_timeline(mixed_data.releases)
        by_package = defaultdict(list)
        for node in graph.nodes:
            by_package[node.package].append(node)
        for nodes in by_package.values():
            for a in nodes:
                for b in nodes:
                    if timeline.rank(a.version) < timeline.rank(b.version):
                        assert a.position.x < b.position.x

    def test_same_release_same_x(self) -> None:
        payload = dict(NET_HTTP_PAYLOAD)
        payload["package_evolution"] = {
            "net/http": NET_HTTP_PAYLOAD["package_evolution"]["net/http"],
            "net/url": NET_HTTP_PAYLOAD["package_evolution"]["net/http"],
        }
        graph = build_graph(parse_visualization_data(payload))
        xs = {(n.package, n.version): n.position.x for n in graph.nodes}
        assert xs[("net/http", "1.22")] == xs[("net/url", "1.22")]

    def test_custom_config(self, net_http_data: VisualizationData) -> None:
        config = LayoutConfig(offset_x=0, offset_y=0, version_spacing=100)
        graph = build_graph(net_http_data, config)
        assert [n.position.x for n in graph.nodes] == [0, 100, 200]

    def test_empty_data(self) -> None:
        graph = build_graph(VisualizationData())
        assert graph.nodes == ()
        assert graph.edges == ()
