"""Example usage of datagraph."""

import logging
from pathlib import Path

from datagraph import (
    Flow,
    Graph,
    LayoutConfig,
    LinkType,
    Pilot,
    layout_graph,
    pin_node,
    read_delimited,
    render_to_svg,
    write_json,
)

OUTPUT = Path("output")

EXAMPLE_TSV = """\
data1\tdata2\tflow\ttype\tdescription\treference\ttools\tnotes\tlinks
Hi-C\t3D structure\t->\tdone\tModel chromatin from contacts\tSerra 2017\tTADbit\t\thttps://example.org/tadbit
3D structure\tHi-C\t->\ttodo\tPredict contacts from models\t\t\tneeds benchmarks\t
ChIP-seq\tHi-C\t<->\t\tCompare binding and contacts\tRao 2014;Dixon 2012\t\t\thttps://example.org/rao;https://example.org/dixon
MNase-seq\tNucleosome map\t->\tdone\tCall nucleosome positions\t\tDANPOS\t\t
Nucleosome map\t3D structure\t<-\tmaybe\tCoarse-grained fibre models\t\t\t\t
"""


def programmatic_example():
    """Build a small graph by hand, with a fan of parallel links."""
    graph = Graph()

    graph.add_node({"name": "Hi-C", "description": "Chromosome conformation capture"})
    graph.add_node({"name": "3D structure", "description": "Ensemble of chromatin models"})

    graph.add_link({
        "source": "Hi-C",
        "target": "3D structure",
        "flow": Flow.INFORM,
        "type": LinkType.DONE,
        "pilot": Pilot.PILOT_1 | Pilot.PILOT_2,
        "reference": "Serra 2017",
        "tools": "TADbit",
        "links": "https://example.org/tadbit",
    })
    graph.add_link({"source": "3D structure", "target": "Hi-C", "flow": Flow.INFORM, "type": LinkType.TODO})
    graph.add_link({"source": "Hi-C", "target": "3D structure", "flow": Flow.CONNECT, "type": LinkType.MAYBE})

    # A fourth link between the same pair is refused
    if graph.add_link({"source": "3D structure", "target": "Hi-C", "flow": Flow.CONNECT}) == -1:
        print(f"Fourth link refused: {graph.last_error.value}")

    graph.add_link({"source": "ChIP-seq", "target": "Hi-C", "flow": "<->"})

    pin_node(graph, "Hi-C")
    layout_graph(graph, LayoutConfig(seed=1))
    render_to_svg(graph, filename=str(OUTPUT / "programmatic_example"))
    write_json(graph, OUTPUT / "programmatic_example.json")

    print("Diagram saved to programmatic_example.svg")


def tsv_example():
    """Load links from a tab-separated file and show only tooled links."""
    source = OUTPUT / "example.tsv"
    source.write_text(EXAMPLE_TSV, encoding="utf-8")

    graph = read_delimited(source)
    layout_graph(graph, LayoutConfig(seed=1))

    visible = graph.link_visibility([lambda link, i, links: link.type == LinkType.DONE])
    render_to_svg(graph, filename=str(OUTPUT / "tsv_example"), visible=visible)

    print("Diagram saved to tsv_example.svg")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    OUTPUT.mkdir(exist_ok=True)
    programmatic_example()
    tsv_example()
