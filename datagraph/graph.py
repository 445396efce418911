"""The authoritative node/link collection.

A :class:`Graph` owns two insertion-ordered lists, ``nodes`` and ``links``,
and keeps them consistent under editing:

* node names are unique, and adding an existing name is a no-op that
  returns the existing index, so links can create their endpoints lazily;
* every link's ``source``/``target`` is a Node held in ``nodes``;
* links sharing an unordered endpoint pair (a *bucket*) all carry the same
  ``weight``, equal to the bucket size. The bucket size is capped by
  ``GraphConfig.max_weight``.

Operations report failure by returning ``-1`` and recording the reason in
``Graph.last_error``. A failed operation leaves ``links`` untouched.

Example:
    g = Graph()
    g.add_link({"source": "Hi-C", "target": "3D structure", "flow": "->"})
    g.add_link({"source": "3D structure", "target": "Hi-C", "flow": "->"})
    g.links[0].weight  # 2
    g.to_json()
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .ids import PAIR_ID_BASE, node_pair_ids
from .models import (
    Flow,
    HyperLink,
    Link,
    LinkType,
    Node,
    NodeRef,
    Pilot,
    normalize_hyperlinks,
)

logger = logging.getLogger(__name__)

Predicate = Callable[[Link, int, list[Link]], Any]
Criterion = Union[Predicate, Sequence[Predicate]]

NODE_EXPORT_FIELDS = ("name", "description")
LINK_EXPORT_FIELDS = (
    "source",
    "target",
    "flow",
    "type",
    "description",
    "reference",
    "tools",
    "notes",
    "links",
    "pilot",
)


class ErrorKind(Enum):
    """Why the last Graph operation returned -1."""

    INVALID_INPUT = "invalid input"
    DUPLICATE = "duplicate"
    CAPACITY_EXCEEDED = "too many parallel links"
    NOT_FOUND = "not found"


@dataclass
class GraphConfig:
    """Configuration for graph bookkeeping."""

    # Most parallel links one node pair may carry (arcs the renderer can fan out)
    max_weight: int = 3
    pair_id_base: int = PAIR_ID_BASE

    def __post_init__(self) -> None:
        if self.max_weight < 1:
            raise ValueError(f"max_weight must be at least 1, got {self.max_weight}")


def _export_value(value: Any) -> Any:
    if isinstance(value, Node):
        return value.name
    if isinstance(value, list):
        return [v.to_dict() if isinstance(v, HyperLink) else v for v in value]
    if isinstance(value, Enum):
        return int(value)
    return value


class Graph:
    """Nodes and links with uniqueness and weight bookkeeping."""

    def __init__(self, config: GraphConfig | None = None):
        self.config = config or GraphConfig()
        self.nodes: list[Node] = []
        self.links: list[Link] = []
        self.last_error: ErrorKind | None = None
        self._next_id = 0

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return self._named(item) is not None
        return any(node is item for node in self.nodes)

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self.nodes)}, links={len(self.links)})"

    def _fail(self, kind: ErrorKind, message: str, *args: Any) -> int:
        self.last_error = kind
        logger.info(message, *args)
        return -1

    # Lookup

    def _named(self, name: str) -> Node | None:
        # Names are read from the nodes themselves, so a rename through
        # Node.update is seen immediately.
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    def find_node(self, ref: NodeRef | None) -> Node | None:
        """Return the Node for a name, an index or a Node, or None."""
        if isinstance(ref, Node):
            return ref if ref in self else None
        if isinstance(ref, str):
            return self._named(ref)
        if isinstance(ref, int) and not isinstance(ref, bool):
            if 0 <= ref < len(self.nodes):
                return self.nodes[ref]
        return None

    def index_of_node(self, ref: NodeRef) -> int:
        node = self.find_node(ref)
        return -1 if node is None else self.nodes.index(node)

    def index_of_link(self, link: Link) -> int:
        for i, candidate in enumerate(self.links):
            if candidate is link:
                return i
        return -1

    def _valid_ref(self, ref: Any) -> bool:
        if isinstance(ref, str):
            return bool(ref)
        return self.find_node(ref) is not None

    def _resolve(self, ref: NodeRef) -> Node:
        if isinstance(ref, str):
            return self.nodes[self.add_node({"name": ref})]
        return self.find_node(ref)

    def _pair_ids(self, link: Link) -> tuple[int, int]:
        return node_pair_ids(link.source.id, link.target.id, self.config.pair_id_base)

    # Editing

    def add_node(self, node: Node | Mapping[str, Any]) -> int:
        """Add a node and return its index.

        Adding a name that already exists returns the existing index and
        changes nothing. Returns -1 if the name is missing.
        """
        name = node.name if isinstance(node, Node) else node.get("name")
        if not isinstance(name, str) or not name:
            return self._fail(ErrorKind.INVALID_INPUT, "Node without a name: %r", node)

        self.last_error = None
        existing = self._named(name)
        if existing is not None:
            return self.nodes.index(existing)

        new = node if isinstance(node, Node) else Node.from_dict(node)
        new.id = self._next_id
        self._next_id += 1
        self.nodes.append(new)
        logger.debug("Added node %r", name)
        return len(self.nodes) - 1

    def add_link(self, link: Link | Mapping[str, Any]) -> int:
        """Add a link and return its index, or -1.

        ``source``/``target`` may be node names (created on demand),
        indices into ``nodes`` or Nodes. ``flow == -1`` (or "<-") swaps the
        endpoints and stores an INFORM link. Fails on missing endpoints,
        on a duplicate (same endpoints, same direction, same flow) and when
        the node pair already carries ``max_weight`` links.
        """
        if isinstance(link, Link):
            if self.index_of_link(link) != -1:
                return self._fail(ErrorKind.DUPLICATE, "Link %r is already in the graph", link)
            record = link
        else:
            record = Link.from_dict({k: v for k, v in link.items() if k != "weight"})

        source, target = record.source, record.target
        if source is None or target is None:
            return self._fail(ErrorKind.INVALID_INPUT, "Link needs a source and a target: %r", link)
        if not (self._valid_ref(source) and self._valid_ref(target)):
            return self._fail(
                ErrorKind.INVALID_INPUT, "Unknown link endpoint in %r -> %r", source, target
            )

        try:
            flow = Flow.coerce(record.flow)
            link_type = LinkType.coerce(record.type)
            pilot = Pilot.coerce(record.pilot)
        except ValueError as e:
            return self._fail(ErrorKind.INVALID_INPUT, "Invalid link field: %s", e)

        if flow is Flow.REVERSED:
            source, target = target, source
            flow = Flow.INFORM

        reference, tools, links = normalize_hyperlinks(record.reference, record.tools, record.links)

        record.source = self._resolve(source)
        record.target = self._resolve(target)
        record.flow = flow
        record.type = link_type
        record.pilot = pilot
        record.reference = reference
        record.tools = tools
        record.links = links
        record.weight = 1

        if self.calculate_weights(record) == -1:
            return -1

        self.links.append(record)
        self.last_error = None
        logger.debug(
            "Added link %s -> %s (%s, weight %d)",
            record.source.name, record.target.name, flow.name, record.weight,
        )
        return len(self.links) - 1

    def del_node(self, node: NodeRef) -> int:
        """Remove a node and every link touching it. Returns its old index."""
        found = self.find_node(node)
        if found is None:
            return self._fail(ErrorKind.NOT_FOUND, "Cannot delete unknown node %r", node)

        index = self.nodes.index(found)
        incident = [link for link in self.links if link.source is found or link.target is found]
        for link in incident:
            self.del_link(link)

        del self.nodes[index]
        self.last_error = None
        logger.debug("Deleted node %r and %d link(s)", found.name, len(incident))
        return index

    def del_link(self, link: Link | int) -> int:
        """Remove a link and shrink its bucket. Returns its old index."""
        if isinstance(link, int) and not isinstance(link, bool):
            index = link if 0 <= link < len(self.links) else -1
        else:
            index = self.index_of_link(link)
        if index == -1:
            return self._fail(ErrorKind.NOT_FOUND, "Cannot delete unknown link %r", link)

        record = self.links.pop(index)
        self.calculate_weights(record, delete=True)
        self.last_error = None
        return index

    def calculate_weights(self, link: Link, delete: bool = False) -> int:
        """Recompute the weight of ``link``'s bucket.

        The bucket is every other link sharing ``link``'s unordered node
        pair. When adding, a bucket member with the same direction and the
        same flow is a duplicate and the bucket would grow past
        ``max_weight`` is refused; both return -1 and write nothing. On
        success every bucket member (and ``link`` when adding) gets the new
        weight, which is returned. After a delete that empties the bucket
        the result is 0.
        """
        undirected, directed = self._pair_ids(link)
        bucket = []
        for other in self.links:
            if other is link:
                continue
            other_undirected, other_directed = self._pair_ids(other)
            if other_undirected != undirected:
                continue
            if not delete and other_directed == directed and other.flow == link.flow:
                return self._fail(
                    ErrorKind.DUPLICATE,
                    "Duplicate link %s -> %s",
                    link.source.name, link.target.name,
                )
            bucket.append(other)

        current = bucket[0].weight if bucket else 0
        if delete:
            weight = current - 1 if bucket else 0
        else:
            weight = current + 1
            if weight > self.config.max_weight:
                return self._fail(
                    ErrorKind.CAPACITY_EXCEEDED,
                    "%s and %s already share %d links",
                    link.source.name, link.target.name, current,
                )
            link.weight = weight

        for other in bucket:
            other.weight = weight
        return weight

    def update_node(self, node: NodeRef, patch: Mapping[str, Any]) -> int:
        """Merge ``patch`` into a node, keeping names unique."""
        found = self.find_node(node)
        if found is None:
            return self._fail(ErrorKind.NOT_FOUND, "Cannot update unknown node %r", node)

        old_name = found.name
        new_name = patch.get("name", old_name)
        if not isinstance(new_name, str) or not new_name:
            return self._fail(ErrorKind.INVALID_INPUT, "Node name cannot be empty")
        if new_name != old_name and self._named(new_name) is not None:
            return self._fail(ErrorKind.DUPLICATE, "Node %r already exists", new_name)

        if found.update(patch) == -1:
            return self._fail(ErrorKind.INVALID_INPUT, "Node ids are assigned by the graph")
        self.last_error = None
        return 0

    def update_link(self, link: Link | int, patch: Mapping[str, Any]) -> int:
        """Merge ``patch`` into a link's metadata."""
        if isinstance(link, int) and not isinstance(link, bool):
            record = self.links[link] if 0 <= link < len(self.links) else None
        else:
            record = link if self.index_of_link(link) != -1 else None
        if record is None:
            return self._fail(ErrorKind.NOT_FOUND, "Cannot update unknown link %r", link)

        if record.update(patch) == -1:
            return self._fail(ErrorKind.INVALID_INPUT, "Link endpoints, flow and weight are fixed")
        self.last_error = None
        return 0

    # Filtering

    def filter_links(
        self,
        criteria: Sequence[Criterion],
        callback: Callable[[Link, int, list[Link]], Any] | None = None,
        negate: bool = False,
    ) -> list[Link]:
        """Select links matching ``criteria`` and pass each to ``callback``.

        Each criterion is a predicate ``(link, index, links) -> bool`` or a
        sequence of such predicates. Top-level criteria are AND-ed; the
        members of a nested sequence are OR-ed first. ``negate`` inverts
        every predicate before combining.

        Example:
            # (pilot == 1 or pilot == 2) and type == DONE
            g.filter_links([
                [lambda l, i, a: l.pilot == 1, lambda l, i, a: l.pilot == 2],
                lambda l, i, a: l.type == LinkType.DONE,
            ])
        """
        def check(predicate: Predicate, link: Link, index: int) -> bool:
            result = bool(predicate(link, index, self.links))
            return not result if negate else result

        def matches(link: Link, index: int) -> bool:
            for criterion in criteria:
                if callable(criterion):
                    if not check(criterion, link, index):
                        return False
                elif not any(check(p, link, index) for p in criterion):
                    return False
            return True

        matching = [link for i, link in enumerate(self.links) if matches(link, i)]
        if callback is not None:
            for i, link in enumerate(matching):
                callback(link, i, matching)
        return matching

    def link_visibility(self, criteria: Sequence[Criterion], negate: bool = False) -> list[bool]:
        """One flag per link: does it pass ``criteria``?"""
        shown = {id(link) for link in self.filter_links(criteria, negate=negate)}
        return [id(link) in shown for link in self.links]

    # Serialization

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Portable form: endpoints by name, derived fields dropped."""
        def export(entity: Any, names: Sequence[str]) -> dict[str, Any]:
            out = {}
            for name in names:
                value = getattr(entity, name)
                if value is not None:
                    out[name] = _export_value(value)
            return out

        return {
            "nodes": [export(node, NODE_EXPORT_FIELDS) for node in self.nodes],
            "links": [export(link, LINK_EXPORT_FIELDS) for link in self.links],
        }

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], config: GraphConfig | None = None) -> Graph:
        """Build a graph from ``{"nodes": [...], "links": [...]}``.

        Records the graph rejects are logged and skipped.
        """
        graph = cls(config)
        for record in data.get("nodes") or []:
            if graph.add_node(record) == -1:
                logger.warning("Skipping node %r: %s", record, graph.last_error.value)
        for record in data.get("links") or []:
            if graph.add_link(record) == -1:
                logger.warning("Skipping link %r: %s", record, graph.last_error.value)
        return graph

    @classmethod
    def from_json(cls, text: str, config: GraphConfig | None = None) -> Graph:
        return cls.from_dict(json.loads(text), config)
