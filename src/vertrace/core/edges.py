"""Connect a package's nodes: major chain, branch fan-out, minor chains."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from vertrace.core.categories import ChangeCategory
from vertrace.core.layout import Node, PackageNodes
from vertrace.core.style import NEUTRAL_STYLE, CategoryStyle, dash_array

logger = logging.getLogger(__name__)


class EdgeKind(str, Enum):
    CHAIN = "chain"
    BRANCH = "branch"


@dataclass(frozen=True)
class Edge:
    """Directed connection between two nodes of the same package."""

    id: str
    source: str
    target: str
    kind: EdgeKind
    animated: bool = False
    # Style of the target node; drives stroke color and dash pattern.
    style: CategoryStyle = NEUTRAL_STYLE

    def to_dict(self) -> dict:
        """Serialize to the edge shape the web frontend renders."""
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
            "type": "smoothstep",
            "animated": self.animated,
            "style": {
                "stroke": self.style.border_color,
                "strokeDasharray": dash_array(self.style.stroke_style),
            },
        }


def edge_id(source: str, target: str, kind: EdgeKind) -> str:
    """Stable id so a recomputed graph reuses the same edge ids."""
    return f"{kind.value}:{source}->{target}"


def _chronological(nodes: Sequence[Node]) -> list[Node]:
    return sorted(nodes, key=lambda n: (n.release_date, n.version))


def _connect(source: Node, target: Node, kind: EdgeKind, animated: bool) -> Edge:
    return Edge(
        id=edge_id(source.id, target.id, kind),
        source=source.id,
        target=target.id,
        kind=kind,
        animated=animated,
        style=target.style,
    )


def chain_edges(nodes: Sequence[Node], animate_on: ChangeCategory) -> list[Edge]:
    """Link each node to its chronological successor."""
    ordered = _chronological(nodes)
    return [
        _connect(prev, nxt, EdgeKind.CHAIN, nxt.category is animate_on)
        for prev, nxt in zip(ordered, ordered[1:])
    ]


def find_anchor(majors: Sequence[Node], prefix: str) -> Node | None:
    """The major node a minor group branches from, or None if the package lacks it."""
    for node in majors:
        if node.version == prefix:
            return node
    return None


def synthesize_package_edges(package_nodes: PackageNodes) -> tuple[Edge, ...]:
    """
    Derive all edges of one package.

    1. Major chain; animated when the target was added in that release.
    2. One branch edge per minor group, from the major whose version equals
       the group prefix to the group's earliest minor. Groups whose major is
       not a record of this package get no branch edge.
    3. Minor chain per group; animated when the target is a security fix.
    """
    majors = package_nodes.majors
    edges = chain_edges(majors, ChangeCategory.ADDED)

    for prefix, minors in package_nodes.minors_by_major.items():
        ordered = _chronological(minors)
        anchor = find_anchor(majors, prefix)
        if anchor is None:
            logger.debug(
                "%s: no %s release to branch %s from",
                package_nodes.package,
                prefix,
                ", ".join(n.version for n in ordered),
            )
        else:
            first = ordered[0]
            edges.append(
                _connect(
                    anchor,
                    first,
                    EdgeKind.BRANCH,
                    first.category is ChangeCategory.SECURITY_FIX,
                )
            )
        edges.extend(chain_edges(ordered, ChangeCategory.SECURITY_FIX))

    return tuple(edges)
