"""Public API: use vertrace from Python or from other tools."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from vertrace.client import VersionTraceClient
from vertrace.core.graph import EvolutionGraph, build_graph
from vertrace.core.layout import DEFAULT_LAYOUT, AxisTick, LayoutConfig, timeline_axis
from vertrace.core.parser import VisualizationData, load_visualization_file
from vertrace.core.timeline import build_timeline
from vertrace.core.view import FilterState, project, unique_categories, unique_packages

DATA_FILE_ENV = "VERTRACE_DATA_FILE"


def load_data(
    *,
    input_file: Path | None = None,
    base_url: str | None = None,
) -> VisualizationData:
    """
    Load visualization data from a JSON dump or from the backend.

    Uses input_file if given, else the VERTRACE_DATA_FILE environment
    variable, else fetches from the backend at base_url (or VERTRACE_API_URL).
    Raises ApiError or PayloadError if the data cannot be obtained.
    """
    if input_file is None and os.environ.get(DATA_FILE_ENV):
        input_file = Path(os.environ[DATA_FILE_ENV])
    if input_file is not None:
        return load_visualization_file(input_file)
    with VersionTraceClient(base_url) as client:
        return client.fetch_visualization()


def evolution_graph(
    data: VisualizationData,
    *,
    packages: Iterable[str] | None = None,
    categories: Iterable[str] | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> EvolutionGraph:
    """
    Lay out the package evolution graph and apply optional filters.

    Args:
        data: Parsed visualization payload.
        packages: Packages to show; empty or None shows all.
        categories: Change categories to show; empty or None shows all.
        config: Layout spacing constants.

    Returns:
        The visible EvolutionGraph.
    """
    graph = build_graph(data, config)
    return project(graph, FilterState.of(packages, categories))


def filter_options(graph: EvolutionGraph) -> dict[str, list[str]]:
    """Distinct package names and change categories, for filter menus."""
    return {
        "packages": unique_packages(graph.nodes),
        "categories": unique_categories(graph.nodes),
    }


def axis_ticks(data: VisualizationData, config: LayoutConfig = DEFAULT_LAYOUT) -> list[AxisTick]:
    """Timeline axis labels aligned with node X coordinates."""
    return timeline_axis(build_timeline(data.releases), config)
