"""Build the positioned node/edge graph from visualization data."""

from __future__ import annotations

from dataclasses import dataclass

from vertrace.core.edges import Edge, synthesize_package_edges
from vertrace.core.layout import (
    DEFAULT_LAYOUT,
    LayoutConfig,
    Node,
    PackageNodes,
    plan_tracks,
    synthesize_package_nodes,
)
from vertrace.core.parser import VisualizationData
from vertrace.core.timeline import build_timeline, order_packages
from vertrace.core.versions import classify_releases


@dataclass(frozen=True)
class EvolutionGraph:
    """Nodes and edges of one layout pass (or a filtered view of it)."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    @property
    def node_ids(self) -> frozenset[str]:
        return frozenset(n.id for n in self.nodes)

    def node(self, node_id: str) -> Node | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def nodes_for_package(self, package: str) -> tuple[Node, ...]:
        return tuple(n for n in self.nodes if n.package == package)

    def to_dict(self) -> dict:
        """Serialize to a JSON-friendly dict (for API/frontend)."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


def layout_packages(
    data: VisualizationData,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> list[PackageNodes]:
    """Nodes of every package, in track order."""
    evolution = data.evolution_index()
    timeline = build_timeline(data.releases)
    versions = classify_releases(data.releases)
    geometry = plan_tracks(evolution, timeline, versions, config)
    return [
        synthesize_package_nodes(
            package,
            evolution[package],
            track,
            timeline=timeline,
            versions=versions,
            geometry=geometry,
            config=config,
        )
        for track, package in enumerate(order_packages(evolution))
    ]


def build_graph(
    data: VisualizationData,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> EvolutionGraph:
    """
    Run the full layout pipeline.

    Recomputes everything from scratch; the same data and config always give
    field-for-field identical nodes and edges, in the same order.

    Args:
        data: Parsed visualization payload.
        config: Spacing constants; defaults to DEFAULT_LAYOUT.

    Returns:
        EvolutionGraph with nodes grouped by package track (chronological
        within a package) and edges grouped the same way.
    """
    per_package = layout_packages(data, config)
    nodes = tuple(n for p in per_package for n in p.nodes)
    edges = tuple(e for p in per_package for e in synthesize_package_edges(p))
    return EvolutionGraph(nodes=nodes, edges=edges)
