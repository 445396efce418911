"""datagraph - a graph of data types joined by documented workflows.

Example usage:
    from datagraph import Graph, layout_graph, render_to_svg

    g = Graph()
    g.add_link({"source": "Hi-C", "target": "3D structure", "flow": "->",
                "tools": "TADbit", "reference": "Serra 2017",
                "links": "https://example.org/tadbit"})
    g.add_link({"source": "3D structure", "target": "Hi-C", "flow": "->"})

    layout_graph(g)
    render_to_svg(g, filename="datagraph")
"""

from .geometry import (
    GeometryConfig,
    LinkGeometry,
    correct_link,
    correct_radius,
    edge_path,
    path_arc,
    path_line,
)
from .graph import (
    ErrorKind,
    Graph,
    GraphConfig,
)
from .ids import (
    node_pair_ids,
)
from .io import (
    GraphImportError,
    read_delimited,
    read_json,
    write_json,
)
from .layout import (
    LayoutConfig,
    layout_graph,
    pin_node,
)
from .models import (
    Flow,
    HyperLink,
    Link,
    LinkType,
    Node,
    Pilot,
)
from .renderer import (
    DEFAULT_THEME,
    GraphRenderer,
    Theme,
    describe_link,
    describe_node,
    render_to_svg,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "Node",
    "Link",
    "HyperLink",
    "Flow",
    "LinkType",
    "Pilot",
    # Graph
    "Graph",
    "GraphConfig",
    "ErrorKind",
    "node_pair_ids",
    # Geometry
    "GeometryConfig",
    "LinkGeometry",
    "correct_link",
    "correct_radius",
    "edge_path",
    "path_arc",
    "path_line",
    # Layout
    "LayoutConfig",
    "layout_graph",
    "pin_node",
    # IO
    "GraphImportError",
    "read_delimited",
    "read_json",
    "write_json",
    # Rendering
    "render_to_svg",
    "GraphRenderer",
    "Theme",
    "DEFAULT_THEME",
    "describe_node",
    "describe_link",
    # Version
    "__version__",
]
