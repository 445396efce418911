"""Force-directed placement of graph nodes using NetworkX."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import networkx as nx

if TYPE_CHECKING:
    from .graph import Graph
    from .models import Node, NodeRef

logger = logging.getLogger(__name__)


@dataclass
class LayoutConfig:
    """Configuration for node placement."""

    width: float = 600
    height: float = 500
    # Preferred link length; defaults to a quarter of the width
    link_distance: float | None = None
    iterations: int = 50
    margin: float = 40  # keep node centres this far inside the canvas
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid canvas size {self.width}x{self.height}")
        if self.link_distance is None:
            self.link_distance = self.width / 4

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2

    @property
    def radius(self) -> float:
        return max(min(self.width, self.height) / 2 - self.margin, 1.0)


def initial_positions(graph: Graph, config: LayoutConfig | None = None) -> None:
    """Seed nodes without a position on a circle around the canvas centre."""
    if config is None:
        config = LayoutConfig()

    count = len(graph.nodes)
    cx, cy = config.center
    for i, node in enumerate(graph.nodes):
        if node.x is None or node.y is None:
            angle = 2 * math.pi * i / count
            node.x = cx + config.radius * math.sin(angle)
            node.y = cy + config.radius * math.cos(angle)


def build_nx_graph(graph: Graph) -> nx.Graph:
    """Collapse the graph into a simple NetworkX graph keyed by node name."""
    nx_graph = nx.Graph()
    nx_graph.add_nodes_from(node.name for node in graph.nodes)
    for link in graph.links:
        if link.source is link.target:
            continue
        nx_graph.add_edge(link.source.name, link.target.name, weight=link.weight)
    return nx_graph


def layout_graph(
    graph: Graph, config: LayoutConfig | None = None
) -> dict[str, tuple[float, float]]:
    """Place all unpinned nodes with a spring layout.

    Pinned (``fixed``) nodes keep their position and the rest settle
    around them. Without pinned nodes the result is scaled to fit the
    canvas. Positions are written to ``node.x``/``node.y``.

    Returns:
        Mapping of node name to (x, y)
    """
    if config is None:
        config = LayoutConfig()
    if not graph.nodes:
        return {}

    initial_positions(graph, config)
    nx_graph = build_nx_graph(graph)
    pos = {node.name: (node.x, node.y) for node in graph.nodes}
    fixed = [node.name for node in graph.nodes if node.fixed]

    if fixed:
        result = nx.spring_layout(
            nx_graph,
            k=config.link_distance,
            pos=pos,
            fixed=fixed,
            iterations=config.iterations,
            seed=config.seed,
        )
    else:
        result = nx.spring_layout(
            nx_graph,
            k=config.link_distance,
            pos=pos,
            iterations=config.iterations,
            seed=config.seed,
            scale=config.radius,
            center=config.center,
        )

    positions = {}
    for node in graph.nodes:
        if not node.fixed:
            x, y = result[node.name]
            node.x = min(max(float(x), config.margin), config.width - config.margin)
            node.y = min(max(float(y), config.margin), config.height - config.margin)
        positions[node.name] = (node.x, node.y)

    logger.debug("Placed %d node(s), %d pinned", len(positions), len(fixed))
    return positions


def pin_node(
    graph: Graph,
    node: NodeRef,
    x: float | None = None,
    y: float | None = None,
    config: LayoutConfig | None = None,
) -> Node:
    """Pin a single node, releasing all others.

    The node moves to ``(x, y)``, by default the canvas centre.
    """
    if config is None:
        config = LayoutConfig()

    found = graph.find_node(node)
    if found is None:
        raise ValueError(f"Unknown node {node!r}")

    for other in graph.nodes:
        other.fixed = False

    cx, cy = config.center
    found.x = cx if x is None else x
    found.y = cy if y is None else y
    found.fixed = True
    return found
