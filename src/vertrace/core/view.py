"""Project the full graph onto the packages and categories the user selected."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from vertrace.core.graph import EvolutionGraph
from vertrace.core.layout import Node


@dataclass(frozen=True)
class FilterState:
    """
    Selected packages and change categories.

    An empty selection on either axis means "no filter on that axis", not
    "hide everything".
    """

    packages: frozenset[str] = frozenset()
    categories: frozenset[str] = frozenset()

    @classmethod
    def of(
        cls,
        packages: Iterable[str] | None = None,
        categories: Iterable[str] | None = None,
    ) -> FilterState:
        return cls(frozenset(packages or ()), frozenset(categories or ()))

    @property
    def is_empty(self) -> bool:
        return not self.packages and not self.categories

    def toggle_package(self, package: str) -> FilterState:
        return FilterState(self.packages ^ {package}, self.categories)

    def toggle_category(self, category: str) -> FilterState:
        return FilterState(self.packages, self.categories ^ {category})

    def cleared(self) -> FilterState:
        return FilterState()

    def matches(self, node: Node) -> bool:
        if self.packages and node.package not in self.packages:
            return False
        if self.categories and node.change_category not in self.categories:
            return False
        return True


def project(graph: EvolutionGraph, state: FilterState) -> EvolutionGraph:
    """
    Visible subgraph: nodes passing both filters, edges whose endpoints are both visible.

    Edges are never filtered on their own attributes. Projecting an already
    projected graph with the same state returns an equal graph.
    """
    if state.is_empty:
        return graph
    nodes = tuple(n for n in graph.nodes if state.matches(n))
    visible = {n.id for n in nodes}
    edges = tuple(e for e in graph.edges if e.source in visible and e.target in visible)
    return EvolutionGraph(nodes=nodes, edges=edges)


def unique_packages(nodes: Iterable[Node]) -> list[str]:
    """Distinct package names, sorted (for the package filter list)."""
    return sorted({n.package for n in nodes})


def unique_categories(nodes: Iterable[Node]) -> list[str]:
    """Distinct change categories, sorted (for the category filter list)."""
    return sorted({n.change_category for n in nodes})
