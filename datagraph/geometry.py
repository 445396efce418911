"""Link geometry: trimmed endpoints and arcs between elliptical nodes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .models import Flow

if TYPE_CHECKING:
    from .models import Link, Node


@dataclass
class GeometryConfig:
    """Configuration for link geometry."""

    # Angle between the two ends of fanned-out parallel links (radians)
    angular_spread: float = math.pi / 8
    # Arc radius as a multiple of the chord length
    curvature: float = 1.4
    # Node ellipse size when the node carries none
    min_rx: float = 30
    ry: float = 30
    char_width: float = 4  # label width per character


@dataclass
class LinkGeometry:
    """Trimmed endpoints of a link plus its arc radius."""

    x0: float
    y0: float
    x1: float
    y1: float
    dx: float
    dy: float
    dr: float


def node_radii(node: Node, config: GeometryConfig | None = None) -> tuple[float, float]:
    """Ellipse half-axes of a node, derived from its label when unset."""
    if config is None:
        config = GeometryConfig()

    rx = node.rx
    if rx is None:
        rx = max(config.min_rx, len(node.name or "") * config.char_width)
    ry = node.ry if node.ry is not None else config.ry
    return rx, ry


def correct_radius(node: Node, has_arrow: bool) -> float:
    """Extra margin around a node's ellipse for one link end.

    Arrowheads need room to land outside the outline, and free nodes are
    drawn with a slightly larger halo than pinned ones.
    """
    radius = 1.0
    if has_arrow:
        radius += 2
    if not node.fixed:
        radius += 1
    return radius


def ellipse_radius(a: float, b: float, theta: float) -> float:
    """Distance from an ellipse's centre to its boundary at angle ``theta``."""
    return a * b / math.hypot(b * math.cos(theta), a * math.sin(theta))


def arrowheads(link: Link) -> tuple[bool, bool]:
    """(at source, at target) arrowheads for a link."""
    if link.flow == Flow.CONNECT:
        return True, True
    return False, True


def use_arc(link: Link) -> bool:
    """Parallel directed links are drawn as arcs, everything else straight."""
    return link.weight > 1 and link.flow != Flow.CONNECT


def _boundary_offset(
    node: Node, theta: float, has_arrow: bool, config: GeometryConfig
) -> tuple[float, float]:
    rx, ry = node_radii(node, config)
    margin = correct_radius(node, has_arrow)
    r = ellipse_radius(rx + margin, ry + margin, theta)
    return r * math.cos(theta), r * math.sin(theta)


def correct_link(
    link: Link,
    angular_spread: float | None = None,
    config: GeometryConfig | None = None,
) -> LinkGeometry:
    """Compute where a link leaves its source and meets its target.

    Both ends sit on the (margin-widened) node ellipses instead of the
    node centres. Parallel INFORM links have their ends rotated by half
    the angular spread, so that arcs in opposite directions start and end
    at different points.

    Args:
        link: A link whose source and target are positioned Nodes
        angular_spread: Overrides ``config.angular_spread``
        config: Geometry configuration

    Returns:
        LinkGeometry with trimmed endpoints, residual vector and arc radius
    """
    if config is None:
        config = GeometryConfig()
    if angular_spread is None:
        angular_spread = config.angular_spread

    source, target = link.source, link.target
    for node in (source, target):
        if node.x is None or node.y is None:
            raise ValueError(f"Node '{node.name}' has no position, run the layout first")

    theta = math.atan2(target.y - source.y, target.x - source.x)
    half = angular_spread / 2 if use_arc(link) else 0.0
    arrow_start, arrow_end = arrowheads(link)

    ox0, oy0 = _boundary_offset(source, theta - half, arrow_start, config)
    ox1, oy1 = _boundary_offset(target, theta + half, arrow_end, config)

    x0, y0 = source.x + ox0, source.y + oy0
    x1, y1 = target.x - ox1, target.y - oy1
    dx, dy = x1 - x0, y1 - y0

    return LinkGeometry(
        x0=x0, y0=y0,
        x1=x1, y1=y1,
        dx=dx, dy=dy,
        dr=config.curvature * math.hypot(dx, dy),
    )


def path_line(geom: LinkGeometry) -> str:
    """SVG path data for a straight segment."""
    return f"M{geom.x0:.3f},{geom.y0:.3f}L{geom.x1:.3f},{geom.y1:.3f}"


def path_arc(geom: LinkGeometry) -> str:
    """SVG path data for a circular arc of radius ``dr``."""
    return (
        f"M{geom.x0:.3f},{geom.y0:.3f}"
        f"A{geom.dr:.3f},{geom.dr:.3f} 0 0,1 {geom.x1:.3f},{geom.y1:.3f}"
    )


def edge_path(link: Link, geom: LinkGeometry) -> str:
    """Path data for a link: an arc when it fans out, a line otherwise."""
    return path_arc(geom) if use_arc(link) else path_line(geom)
