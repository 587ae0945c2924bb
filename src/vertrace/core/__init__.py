"""Core library: payload parsing, timeline ordering, graph layout and view projection."""

from vertrace.core.categories import ChangeCategory, infer_category
from vertrace.core.edges import Edge, EdgeKind, synthesize_package_edges
from vertrace.core.graph import EvolutionGraph, build_graph
from vertrace.core.layout import (
    DEFAULT_LAYOUT,
    LayoutConfig,
    Node,
    Position,
    synthesize_package_nodes,
    timeline_axis,
)
from vertrace.core.parser import (
    Release,
    VersionChangeRecord,
    VisualizationData,
    load_visualization_file,
    parse_visualization_data,
)
from vertrace.core.style import CategoryStyle, style_for
from vertrace.core.timeline import Timeline, build_timeline, order_packages
from vertrace.core.versions import VersionIndex, VersionKind, classify_releases
from vertrace.core.view import FilterState, project, unique_categories, unique_packages

__all__ = [
    "ChangeCategory",
    "infer_category",
    "Edge",
    "EdgeKind",
    "synthesize_package_edges",
    "EvolutionGraph",
    "build_graph",
    "DEFAULT_LAYOUT",
    "LayoutConfig",
    "Node",
    "Position",
    "synthesize_package_nodes",
    "timeline_axis",
    "Release",
    "VersionChangeRecord",
    "VisualizationData",
    "load_visualization_file",
    "parse_visualization_data",
    "CategoryStyle",
    "style_for",
    "Timeline",
    "build_timeline",
    "order_packages",
    "VersionIndex",
    "VersionKind",
    "classify_releases",
    "FilterState",
    "project",
    "unique_categories",
    "unique_packages",
]
