import pytest

from datagraph import Flow, Graph, LinkType


@pytest.fixture
def graph():
    return Graph()


@pytest.fixture
def fan_graph():
    """Hi-C and 3D structure joined by a full fan of three links, plus a spoke."""
    g = Graph()
    g.add_link({"source": "Hi-C", "target": "3D structure", "flow": Flow.INFORM, "type": LinkType.DONE})
    g.add_link({"source": "3D structure", "target": "Hi-C", "flow": Flow.INFORM, "type": LinkType.TODO})
    g.add_link({"source": "Hi-C", "target": "3D structure", "flow": Flow.CONNECT, "type": LinkType.MAYBE})
    g.add_link({"source": "ChIP-seq", "target": "Hi-C", "flow": Flow.INFORM})
    return g


@pytest.fixture
def placed_graph(fan_graph):
    positions = {"Hi-C": (100, 100), "3D structure": (300, 100), "ChIP-seq": (100, 300)}
    for node in fan_graph.nodes:
        node.x, node.y = positions[node.name]
    return fan_graph
