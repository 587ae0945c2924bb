"""vertrace: lay out a library's package evolution across releases as a graph (library, TUI, CLI)."""

from importlib.metadata import version, PackageNotFoundError

from vertrace.api import (
    axis_ticks,
    evolution_graph,
    filter_options,
    load_data,
)
from vertrace.core.graph import EvolutionGraph, build_graph
from vertrace.core.view import FilterState, project

__all__ = [
    "axis_ticks",
    "evolution_graph",
    "filter_options",
    "load_data",
    "EvolutionGraph",
    "build_graph",
    "FilterState",
    "project",
    "__version__",
]

try:
    __version__ = version("vertrace")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed as package
