"""SVG renderer using drawsvg."""

from __future__ import annotations

import html
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

import drawsvg as draw

from .geometry import (
    GeometryConfig,
    arrowheads,
    correct_link,
    edge_path,
    node_radii,
    use_arc,
)
from .models import Flow, LinkType

if TYPE_CHECKING:
    from .graph import Graph
    from .models import HyperLink, Link, Node

logger = logging.getLogger(__name__)


class Theme:
    """Color theme for graphs."""

    def __init__(
        self,
        background: str = "#ffffff",
        node_fill: str = "#f8fafc",
        node_stroke: str = "#64748b",
        fixed_stroke: str = "#3b82f6",
        text_color: str = "#1e293b",
        done_color: str = "#334155",
        todo_color: str = "#f59e0b",
        maybe_color: str = "#94a3b8",
        font_size: float = 12,
        stroke_width: float = 1.5,
        fade_distance: float = 40,
        padding: float = 20,
    ):
        self.background = background
        self.node_fill = node_fill
        self.node_stroke = node_stroke
        self.fixed_stroke = fixed_stroke
        self.text_color = text_color
        self.done_color = done_color
        self.todo_color = todo_color
        self.maybe_color = maybe_color
        self.font_size = font_size
        self.stroke_width = stroke_width
        # Links shorter than this fade out
        self.fade_distance = fade_distance
        self.padding = padding

    def link_color(self, link_type: LinkType | None) -> str:
        if link_type == LinkType.TODO:
            return self.todo_color
        if link_type == LinkType.MAYBE:
            return self.maybe_color
        return self.done_color


DEFAULT_THEME = Theme()


@dataclass
class NodeShape:
    """A node ellipse with its label."""

    node: Node
    cx: float
    cy: float
    rx: float
    ry: float
    label: str
    css_class: str = "node"


@dataclass
class EdgeShape:
    """A link path, ready to draw."""

    link: Link
    d: str
    arc: bool
    marker_start: bool
    marker_end: bool
    css_class: str
    opacity: float = 1.0
    visible: bool = True


Shape = Union[NodeShape, EdgeShape]


def link_css_class(link: Link) -> str:
    kind = link.type.name.lower() if link.type is not None else "untyped"
    flow = "connect" if link.flow == Flow.CONNECT else "inform"
    return f"link {kind} {flow}"


def fade(length: float, fade_distance: float) -> float:
    """Opacity for a link whose visible part is ``length`` long."""
    if fade_distance <= 0 or length >= fade_distance:
        return 1.0
    return max(length / fade_distance, 0.0)


class GraphRenderer:
    """Turns a laid-out Graph into shapes and SVG.

    Click handlers let a UI layer react to node/link selection without
    the renderer knowing about the UI:

        renderer = GraphRenderer()
        renderer.on_link_click(lambda link: print(describe_link(link)))
        renderer.click_link(graph.links[0])
    """

    def __init__(
        self,
        theme: Theme | None = None,
        geometry: GeometryConfig | None = None,
    ):
        self.theme = theme or DEFAULT_THEME
        self.geometry = geometry or GeometryConfig()
        self._node_handlers: list[Callable[[Node], Any]] = []
        self._link_handlers: list[Callable[[Link], Any]] = []

    def on_node_click(self, handler: Callable[[Node], Any]) -> Callable[[Node], Any]:
        self._node_handlers.append(handler)
        return handler

    def on_link_click(self, handler: Callable[[Link], Any]) -> Callable[[Link], Any]:
        self._link_handlers.append(handler)
        return handler

    def click_node(self, node: Node) -> None:
        for handler in self._node_handlers:
            handler(node)

    def click_link(self, link: Link) -> None:
        for handler in self._link_handlers:
            handler(link)

    def render(self, graph: Graph, visible: Sequence[bool] | None = None) -> list[Shape]:
        """Compute shapes for every link and node.

        Links come first so that nodes are drawn over their ends.
        ``visible`` holds one flag per link (see ``Graph.link_visibility``).
        """
        if visible is not None and len(visible) != len(graph.links):
            raise ValueError(
                f"Got {len(visible)} visibility flags for {len(graph.links)} links"
            )

        shapes: list[Shape] = []
        for i, link in enumerate(graph.links):
            geom = correct_link(link, config=self.geometry)
            marker_start, marker_end = arrowheads(link)
            shapes.append(EdgeShape(
                link=link,
                d=edge_path(link, geom),
                arc=use_arc(link),
                marker_start=marker_start,
                marker_end=marker_end,
                css_class=link_css_class(link),
                opacity=fade(math.hypot(geom.dx, geom.dy), self.theme.fade_distance),
                visible=True if visible is None else bool(visible[i]),
            ))

        for node in graph.nodes:
            if node.x is None or node.y is None:
                raise ValueError(f"Node '{node.name}' has no position, run the layout first")
            rx, ry = node_radii(node, self.geometry)
            shapes.append(NodeShape(
                node=node,
                cx=node.x,
                cy=node.y,
                rx=rx,
                ry=ry,
                label=node.name,
                css_class="node fixed" if node.fixed else "node",
            ))

        return shapes

    def to_drawing(self, graph: Graph, visible: Sequence[bool] | None = None) -> draw.Drawing:
        """Render a graph to an SVG Drawing object."""
        shapes = self.render(graph, visible)
        nodes = [s for s in shapes if isinstance(s, NodeShape)]
        edges = [s for s in shapes if isinstance(s, EdgeShape) and s.visible]

        padding = self.theme.padding
        width = max((n.cx + n.rx for n in nodes), default=0) + padding
        height = max((n.cy + n.ry for n in nodes), default=0) + padding

        d = draw.Drawing(width, height)
        d.append(draw.Rectangle(0, 0, width, height, fill=self.theme.background))

        markers: dict[str, draw.Marker] = {}
        for edge in edges:
            color = self.theme.link_color(edge.link.type)
            if color not in markers:
                markers[color] = self._arrow_marker(color)
            marker = markers[color]

            attrs: dict[str, Any] = {}
            if edge.link.type == LinkType.MAYBE:
                attrs["stroke_dasharray"] = "5,5"
            if edge.marker_start:
                attrs["marker_start"] = marker
            if edge.marker_end:
                attrs["marker_end"] = marker

            d.append(draw.Path(
                d=edge.d,
                stroke=color,
                stroke_width=self.theme.stroke_width,
                fill="none",
                opacity=edge.opacity,
                class_=edge.css_class,
                **attrs,
            ))

        for node in nodes:
            self._render_node(d, node)

        return d

    def _arrow_marker(self, color: str) -> draw.Marker:
        arrow = draw.Marker(-0.1, -0.5, 0.9, 0.5, scale=4, orient="auto-start-reverse")
        arrow.append(draw.Lines(-0.1, 0.5, -0.1, -0.5, 0.9, 0, fill=color, close=True))
        return arrow

    def _render_node(self, d: draw.Drawing, shape: NodeShape) -> None:
        stroke = self.theme.fixed_stroke if shape.node.fixed else self.theme.node_stroke
        group = draw.Group(class_=shape.css_class)
        group.append(draw.Ellipse(
            shape.cx, shape.cy, shape.rx, shape.ry,
            fill=self.theme.node_fill,
            stroke=stroke,
            stroke_width=self.theme.stroke_width,
        ))
        group.append(draw.Text(
            shape.label,
            self.theme.font_size,
            shape.cx, shape.cy,
            fill=self.theme.text_color,
            font_family="Inter, -apple-system, BlinkMacSystemFont, sans-serif",
            text_anchor="middle",
            dominant_baseline="middle",
        ))
        d.append(group)


def _hyperlinks(items: list[HyperLink] | None) -> str:
    parts = []
    for item in items or []:
        text = html.escape(item.text or item.link or "")
        if item.link:
            parts.append(f'<a href="{html.escape(item.link)}">{text}</a>')
        else:
            parts.append(text)
    return ", ".join(parts)


def describe_node(node: Node) -> str:
    """HTML summary of a node for an info panel."""
    out = f"<h3>{html.escape(node.name or '')}</h3>"
    if node.description:
        out += f"<p>{html.escape(node.description)}</p>"
    return out


def describe_link(link: Link) -> str:
    """HTML summary of a link for an info panel."""
    title = f"{html.escape(link.source_name or '')}&mdash;{html.escape(link.target_name or '')}"
    rows = [
        ("Description", html.escape(link.description or "")),
        ("Reference", _hyperlinks(link.reference)),
        ("Tools", _hyperlinks(link.tools)),
        ("Notes", html.escape(link.notes or "")),
        ("Links", _hyperlinks(link.links)),
    ]
    body = "".join(f"<dd>{label}: {value}</dd>" for label, value in rows if value)
    return f"<h3>{title}</h3><dl>{body}</dl>"


def render_to_svg(
    graph: Graph,
    filename: str | None = None,
    visible: Sequence[bool] | None = None,
    renderer: GraphRenderer | None = None,
) -> str:
    """Render a laid-out graph to SVG.

    Args:
        graph: Graph whose nodes all have positions
        filename: Optional filename to save to (without extension)
        visible: Optional per-link visibility flags
        renderer: Renderer to use, a default one otherwise

    Returns:
        SVG content as string
    """
    renderer = renderer or GraphRenderer()
    drawing = renderer.to_drawing(graph, visible)

    if filename:
        drawing.save_svg(f"{filename}.svg")
        logger.info("Saved %s.svg", filename)

    return drawing.as_svg()
