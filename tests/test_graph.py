import json

import pytest

from datagraph import ErrorKind, Flow, Graph, GraphConfig, HyperLink, Link, LinkType, Node


def link_tuples(g):
    return {(l.source.name, l.target.name, l.flow, l.type) for l in g.links}


class TestAddNode:

    def test_idempotent_on_name(self, graph):
        assert graph.add_node({"name": "Hi-C"}) == 0
        assert graph.add_node({"name": "Hi-C", "description": "ignored"}) == 0
        assert len(graph.nodes) == 1
        assert graph.nodes[0].description is None

    def test_indices_follow_insertion_order(self, graph):
        assert [graph.add_node({"name": n}) for n in "ABC"] == [0, 1, 2]

    @pytest.mark.parametrize("record", [{}, {"name": None}, {"name": ""}, {"description": "x"}])
    def test_missing_name(self, graph, record):
        assert graph.add_node(record) == -1
        assert graph.last_error is ErrorKind.INVALID_INPUT
        assert graph.nodes == []

    def test_node_object_is_kept(self, graph):
        n = Node(name="Hi-C")
        graph.add_node(n)
        assert graph.nodes[0] is n
        assert n in graph
        assert "Hi-C" in graph

    def test_names_are_case_sensitive(self, graph):
        graph.add_node({"name": "hic"})
        assert graph.add_node({"name": "HiC"}) == 1


class TestAddLink:

    def test_names_create_nodes(self, graph):
        assert graph.add_link({"source": "Hi-C", "target": "3D structure"}) == 0
        link = graph.links[0]
        assert link.source is graph.nodes[0]
        assert link.target is graph.nodes[1]
        assert link.flow is Flow.INFORM
        assert link.weight == 1

    def test_indices_resolve_to_nodes(self, graph):
        graph.add_node({"name": "A"})
        graph.add_node({"name": "B"})
        graph.add_link({"source": 1, "target": 0})
        assert graph.links[0].source.name == "B"
        assert graph.links[0].target.name == "A"

    def test_node_references(self, graph):
        a, b = Node(name="A"), Node(name="B")
        graph.add_node(a)
        graph.add_node(b)
        graph.add_link(Link(source=a, target=b))
        assert graph.links[0].source is a

    def test_link_object_is_stored(self, graph):
        link = Link(source="A", target="B", notes="n")
        graph.add_link(link)
        assert graph.links[0] is link

    @pytest.mark.parametrize("record", [
        {"target": "B"},
        {"source": "A"},
        {"source": "A", "target": 5},
        {"source": "A", "target": ""},
        {"source": Node(name="stranger"), "target": "B"},
        {"source": "A", "target": "B", "flow": "=>"},
        {"source": "A", "target": "B", "type": "finished"},
    ])
    def test_invalid_input_creates_nothing(self, graph, record):
        assert graph.add_link(record) == -1
        assert graph.last_error is ErrorKind.INVALID_INPUT
        assert graph.nodes == []
        assert graph.links == []

    def test_reversed_flow_swaps_endpoints(self, graph):
        graph.add_link({"source": "A", "target": "B", "flow": -1})
        link = graph.links[0]
        assert (link.source.name, link.target.name) == ("B", "A")
        assert link.flow is Flow.INFORM

    def test_arrow_strings(self, graph):
        graph.add_link({"source": "A", "target": "B", "flow": "<->"})
        graph.add_link({"source": "C", "target": "D", "flow": "<-"})
        assert graph.links[0].flow is Flow.CONNECT
        assert graph.links[1].source.name == "D"

    def test_weight_is_not_user_settable(self, graph):
        graph.add_link({"source": "A", "target": "B", "weight": 3})
        assert graph.links[0].weight == 1

    def test_adding_the_same_object_twice(self, graph):
        link = Link(source="A", target="B")
        graph.add_link(link)
        assert graph.add_link(link) == -1
        assert graph.last_error is ErrorKind.DUPLICATE
        assert len(graph.links) == 1


class TestHyperlinkNormalization:

    def test_delimited_reference_pairs_with_links(self, graph):
        graph.add_link({
            "source": "A",
            "target": "B",
            "reference": "Rao 2014; Dixon 2012",
            "links": "u1;u2;u3",
            "tools": "Juicer;HiCExplorer",
        })
        link = graph.links[0]
        assert link.reference == [HyperLink(link="u1", text="Rao 2014"), HyperLink(link="u2", text="Dixon 2012")]
        assert link.links == [HyperLink(link="u3", text="u3")]
        assert link.tools == [HyperLink(link="Juicer"), HyperLink(link="HiCExplorer")]

    def test_more_references_than_links(self, graph):
        graph.add_link({"source": "A", "target": "B", "reference": "R1;R2", "links": "u1"})
        link = graph.links[0]
        assert link.reference == [HyperLink(link="u1", text="R1"), HyperLink(link=None, text="R2")]
        assert link.links is None

    def test_structured_entries(self, graph):
        graph.add_link({
            "source": "A",
            "target": "B",
            "reference": [{"text": "Serra 2017", "link": "u"}],
            "tools": ["TADbit"],
            "links": [HyperLink(link="v")],
        })
        link = graph.links[0]
        assert link.reference == [HyperLink(link="u", text="Serra 2017")]
        assert link.tools == [HyperLink(link="TADbit", text="TADbit")]
        assert link.links == [HyperLink(link="v")]

    def test_empty_text_means_none(self, graph):
        graph.add_link({"source": "A", "target": "B", "reference": "", "tools": " ; "})
        assert graph.links[0].reference is None
        assert graph.links[0].tools is None


class TestWeights:

    def test_bucket_shares_weight(self, graph):
        graph.add_link({"source": "A", "target": "B", "flow": Flow.INFORM})
        graph.add_link({"source": "B", "target": "A", "flow": Flow.INFORM})
        assert [l.weight for l in graph.links] == [2, 2]

        graph.add_link({"source": "A", "target": "B", "flow": Flow.CONNECT})
        assert [l.weight for l in graph.links] == [3, 3, 3]

    def test_other_buckets_are_untouched(self, fan_graph):
        assert [l.weight for l in fan_graph.links] == [3, 3, 3, 1]

    def test_capacity_exceeded(self, fan_graph):
        before = len(fan_graph.links)
        assert fan_graph.add_link({"source": "3D structure", "target": "Hi-C", "flow": Flow.CONNECT}) == -1
        assert fan_graph.last_error is ErrorKind.CAPACITY_EXCEEDED
        assert len(fan_graph.links) == before
        assert [l.weight for l in fan_graph.links] == [3, 3, 3, 1]

    def test_duplicate_rejected(self, graph):
        graph.add_link({"source": "A", "target": "B", "flow": Flow.INFORM})
        assert graph.add_link({"source": "A", "target": "B", "flow": Flow.INFORM, "notes": "again"}) == -1
        assert graph.last_error is ErrorKind.DUPLICATE
        assert len(graph.links) == 1
        assert graph.links[0].weight == 1

    def test_reversed_duplicate_rejected(self, graph):
        graph.add_link({"source": "A", "target": "B"})
        assert graph.add_link({"source": "B", "target": "A", "flow": -1}) == -1
        assert graph.last_error is ErrorKind.DUPLICATE

    def test_opposite_connect_links_are_distinct(self, graph):
        graph.add_link({"source": "A", "target": "B", "flow": Flow.CONNECT})
        assert graph.add_link({"source": "B", "target": "A", "flow": Flow.CONNECT}) == 1
        assert [l.weight for l in graph.links] == [2, 2]

    def test_configurable_cap(self):
        g = Graph(GraphConfig(max_weight=1))
        g.add_link({"source": "A", "target": "B"})
        assert g.add_link({"source": "B", "target": "A"}) == -1
        assert g.last_error is ErrorKind.CAPACITY_EXCEEDED

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            GraphConfig(max_weight=0)

    def test_failed_calculation_writes_nothing(self, fan_graph):
        a, b = fan_graph.nodes[0], fan_graph.nodes[1]
        extra = Link(source=b, target=a, flow=Flow.CONNECT)
        assert fan_graph.calculate_weights(extra) == -1
        assert extra.weight == 1
        assert [l.weight for l in fan_graph.links][:3] == [3, 3, 3]


class TestDelete:

    def test_del_link_shrinks_bucket(self, fan_graph):
        assert fan_graph.del_link(fan_graph.links[1]) == 1
        assert [l.weight for l in fan_graph.links] == [2, 2, 1]

    def test_del_link_by_index(self, fan_graph):
        assert fan_graph.del_link(0) == 0
        assert len(fan_graph.links) == 3

    def test_del_unknown_link(self, fan_graph):
        assert fan_graph.del_link(Link(source="A", target="B")) == -1
        assert fan_graph.last_error is ErrorKind.NOT_FOUND
        assert fan_graph.del_link(42) == -1

    def test_freed_slot_can_be_reused(self, fan_graph):
        fan_graph.del_link(2)
        assert fan_graph.add_link({"source": "3D structure", "target": "Hi-C", "flow": Flow.CONNECT}) != -1
        assert [l.weight for l in fan_graph.links if l.source.name != "ChIP-seq"] == [3, 3, 3]

    def test_del_node_cascades(self, graph):
        for s, t in [("A", "B"), ("B", "A"), ("B", "C"), ("C", "B")]:
            graph.add_link({"source": s, "target": t})

        assert graph.del_node("A") == 0
        assert [n.name for n in graph.nodes] == ["B", "C"]
        assert [(l.source.name, l.target.name) for l in graph.links] == [("B", "C"), ("C", "B")]
        assert [l.weight for l in graph.links] == [2, 2]

    def test_del_node_removes_only_incident_links(self, fan_graph):
        chip = fan_graph.find_node("ChIP-seq")
        assert fan_graph.del_node(chip) == 2
        assert len(fan_graph.links) == 3
        assert all(l.weight == 3 for l in fan_graph.links)

    def test_del_node_then_every_link_is_valid(self, fan_graph):
        fan_graph.del_node(0)
        assert fan_graph.links == []
        for link in fan_graph.links:
            assert link.source in fan_graph and link.target in fan_graph

    def test_del_unknown_node(self, graph):
        assert graph.del_node("nope") == -1
        assert graph.last_error is ErrorKind.NOT_FOUND

    def test_pair_ids_survive_deletion(self, graph):
        graph.add_node({"name": "A"})
        graph.add_link({"source": "B", "target": "C"})
        graph.del_node("A")
        assert graph.add_link({"source": "C", "target": "B"}) == 1
        assert graph.add_link({"source": "B", "target": "C"}) == -1
        assert graph.last_error is ErrorKind.DUPLICATE


class TestUpdate:

    def test_rename_node(self, fan_graph):
        assert fan_graph.update_node("Hi-C", {"name": "HiC"}) == 0
        assert "HiC" in fan_graph and "Hi-C" not in fan_graph
        assert fan_graph.links[0].source.name == "HiC"

    def test_rename_collision(self, fan_graph):
        assert fan_graph.update_node("Hi-C", {"name": "ChIP-seq"}) == -1
        assert fan_graph.last_error is ErrorKind.DUPLICATE
        assert fan_graph.nodes[0].name == "Hi-C"

    def test_rename_through_node_update(self, graph):
        graph.add_link({"source": "A", "target": "B"})
        assert graph.nodes[0].update({"name": "C"}) == 0

        assert graph.add_node({"name": "C"}) == 0
        assert [n.name for n in graph.nodes] == ["C", "B"]
        assert graph.find_node("A") is None

        assert graph.del_node("C") == 0
        assert [n.name for n in graph.nodes] == ["B"]
        assert graph.links == []
        assert graph.add_node({"name": "C"}) == 1

    def test_node_id_is_not_patchable(self, graph):
        graph.add_link({"source": "A", "target": "B"})
        graph.add_link({"source": "A", "target": "C"})
        b, c = graph.find_node("B"), graph.find_node("C")

        assert graph.update_node("C", {"id": b.id}) == -1
        assert graph.last_error is ErrorKind.INVALID_INPUT
        assert c.id != b.id
        assert graph.add_link({"source": "A", "target": "C", "flow": 2}) == 2
        assert [l.weight for l in graph.links] == [1, 2, 2]

    def test_update_unknown_node(self, fan_graph):
        assert fan_graph.update_node("nope", {"description": "x"}) == -1
        assert fan_graph.last_error is ErrorKind.NOT_FOUND

    def test_update_link_metadata(self, fan_graph):
        assert fan_graph.update_link(0, {"notes": "checked"}) == 0
        assert fan_graph.links[0].notes == "checked"

    def test_update_link_hyperlinks_survive_export(self, fan_graph):
        assert fan_graph.update_link(0, {"reference": "Rao 2014;Dixon 2012", "tools": "Juicer"}) == 0
        link = fan_graph.links[0]
        assert link.reference == [HyperLink(text="Rao 2014"), HyperLink(text="Dixon 2012")]

        again = Graph.from_json(fan_graph.to_json())
        assert again.links[0].reference == link.reference
        assert again.links[0].tools == [HyperLink(link="Juicer")]
        assert again.to_dict() == fan_graph.to_dict()

    def test_update_link_weight_refused(self, fan_graph):
        assert fan_graph.update_link(fan_graph.links[0], {"weight": 1}) == -1
        assert fan_graph.last_error is ErrorKind.INVALID_INPUT
        assert fan_graph.links[0].weight == 3

    def test_success_clears_last_error(self, graph):
        graph.add_node({})
        graph.add_node({"name": "A"})
        assert graph.last_error is None


class TestFilter:

    @pytest.fixture
    def pilots(self, graph):
        graph.add_link({"source": "a1", "target": "a2", "type": LinkType.DONE, "pilot": 1, "notes": "A"})
        graph.add_link({"source": "b1", "target": "b2", "type": LinkType.TODO, "pilot": 2, "notes": "B"})
        graph.add_link({"source": "c1", "target": "c2", "type": LinkType.DONE, "pilot": 2, "notes": "C"})
        return graph

    @staticmethod
    def notes(links):
        return [l.notes for l in links]

    def test_and_of_or_groups(self, pilots):
        criteria = [[lambda l, i, a: l.pilot == 2], [lambda l, i, a: l.type == LinkType.DONE]]
        assert self.notes(pilots.filter_links(criteria)) == ["C"]

    def test_or_group(self, pilots):
        criteria = [
            [lambda l, i, a: l.pilot == 1, lambda l, i, a: l.pilot == 2],
            lambda l, i, a: l.type == LinkType.DONE,
        ]
        assert self.notes(pilots.filter_links(criteria)) == ["A", "C"]

    def test_negate_inverts_leaves(self, pilots):
        assert self.notes(pilots.filter_links([lambda l, i, a: l.type == LinkType.DONE], negate=True)) == ["B"]
        # not(pilot 1) or not(pilot 2) holds for every link
        criteria = [[lambda l, i, a: l.pilot == 1, lambda l, i, a: l.pilot == 2]]
        assert self.notes(pilots.filter_links(criteria, negate=True)) == ["A", "B", "C"]

    def test_predicates_see_index_and_links(self, pilots):
        seen = []

        def predicate(link, index, links):
            seen.append(links)
            return index == 1

        assert self.notes(pilots.filter_links([predicate])) == ["B"]
        assert all(links is pilots.links for links in seen)

    def test_callback(self, pilots):
        calls = []
        pilots.filter_links([lambda l, i, a: l.pilot == 2], lambda l, i, m: calls.append((l.notes, i, len(m))))
        assert calls == [("B", 0, 2), ("C", 1, 2)]

    def test_empty_criteria_match_everything(self, pilots):
        assert len(pilots.filter_links([])) == 3

    def test_visibility(self, pilots):
        assert pilots.link_visibility([lambda l, i, a: l.notes == "C"]) == [False, False, True]


class TestSerialization:

    def test_to_json_strips_derived_fields(self, fan_graph):
        fan_graph.nodes[0].x = 10
        fan_graph.nodes[0].fixed = True
        data = json.loads(fan_graph.to_json())

        assert data["nodes"][0] == {"name": "Hi-C"}
        first = data["links"][0]
        assert first == {"source": "Hi-C", "target": "3D structure", "flow": 1, "type": 1}
        for link in data["links"]:
            assert "weight" not in link

    def test_hyperlinks_are_exported(self, graph):
        graph.add_link({"source": "A", "target": "B", "reference": "R", "links": "u", "pilot": 3})
        link = graph.to_dict()["links"][0]
        assert link["reference"] == [{"text": "R", "link": "u"}]
        assert link["pilot"] == 3
        assert "links" not in link

    def test_round_trip(self):
        data = {
            "nodes": [
                {"name": "Hi-C", "description": "Contacts"},
                {"name": "3D structure"},
                {"name": "Orphan"},
            ],
            "links": [
                {"source": "Hi-C", "target": "3D structure", "flow": 1, "type": 1,
                 "reference": [{"text": "Serra 2017", "link": "u"}], "tools": ["TADbit"]},
                {"source": "3D structure", "target": "Hi-C", "flow": 1, "type": 2},
                {"source": "Hi-C", "target": "ChIP-seq", "flow": 2, "type": 3, "notes": "n"},
            ],
        }
        g = Graph.from_dict(data)
        again = Graph.from_json(g.to_json())

        assert [n.name for n in again.nodes] == [n.name for n in g.nodes]
        assert link_tuples(again) == link_tuples(g)
        assert [l.weight for l in again.links] == [2, 2, 1]
        assert again.to_dict() == g.to_dict()

    def test_from_dict_skips_rejected_records(self, caplog):
        data = {
            "nodes": [{"description": "nameless"}],
            "links": [{"source": "A", "target": "B"}, {"source": "A", "target": "B"}],
        }
        g = Graph.from_dict(data)
        assert len(g.links) == 1
        assert "Skipping node" in caplog.text
        assert "Skipping link" in caplog.text
