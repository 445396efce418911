"""Data models for datagraph graphs."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from enum import IntEnum, IntFlag
from typing import Any, Union

logger = logging.getLogger(__name__)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class Flow(IntEnum):
    """Relationship kind of a link."""

    REVERSED = -1  # input only: swap endpoints, store as INFORM
    INFORM = 1  # directed, "->"
    CONNECT = 2  # bidirectional, "<->"

    @classmethod
    def coerce(cls, value: Flow | int | str | None) -> Flow:
        """Parse an arrow ("->", "<-", "<->"), a number or a Flow.

        Missing values mean INFORM. Raises ValueError for anything else.
        """
        if _blank(value):
            return cls.INFORM
        if isinstance(value, str):
            value = value.strip()
            if value in _FLOW_ARROWS:
                return _FLOW_ARROWS[value]
            value = int(value)
        return cls(int(value))


_FLOW_ARROWS = {
    "->": Flow.INFORM,
    "<-": Flow.REVERSED,
    "<->": Flow.CONNECT,
}


class LinkType(IntEnum):
    """Maturity of the workflow behind a link."""

    DONE = 1  # tooled
    TODO = 2  # evidenced, no tools yet
    MAYBE = 3  # speculative

    @classmethod
    def coerce(cls, value: LinkType | int | str | None) -> LinkType | None:
        """Parse a type name ("done", "TODO", ...) or number."""
        if _blank(value):
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value.lstrip("-").isdigit():
                try:
                    return cls[value.upper()]
                except KeyError:
                    raise ValueError(f"Invalid link type '{value}'") from None
            value = int(value)
        return cls(int(value))


class Pilot(IntFlag):
    """Pilot projects a link applies to."""

    NONE = 0
    PILOT_1 = 1
    PILOT_2 = 2
    PILOT_3 = 4
    PILOT_4 = 8

    @classmethod
    def coerce(cls, value: Pilot | int | str | None) -> Pilot | None:
        if _blank(value):
            return None
        return cls(int(value))


def _field_names(entity: Any) -> set[str]:
    # init=False fields are owned by the container, not by patches
    return {f.name for f in fields(entity) if f.init}


def merge(target: Any, patch: Mapping[str, Any]) -> Any:
    """Deep-merge ``patch`` into ``target`` in place.

    ``target`` is a dataclass record or a dict. Mapping values are merged
    recursively into mapping or record fields, everything else replaces the
    current value. Keys missing from the patch are left alone. Unknown keys
    on records are skipped.
    """
    is_record = is_dataclass(target)
    known = _field_names(target) if is_record else None

    for key, value in patch.items():
        if is_record:
            if key not in known:
                logger.debug("Ignoring unknown field %r for %s", key, type(target).__name__)
                continue
            current = getattr(target, key)
        else:
            current = target.get(key)

        if isinstance(value, Mapping) and (is_dataclass(current) or isinstance(current, dict)):
            merge(current, value)
            continue

        if isinstance(value, (dict, list)):
            value = copy.deepcopy(value)
        if is_record:
            setattr(target, key, value)
        else:
            target[key] = value

    return target


class _Record:
    """Construction and update shared by the graph records."""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """Build a record from a partial mapping, defaults for the rest."""
        known = {f.name for f in fields(cls) if f.init}
        unknown = set(data) - known
        if unknown:
            logger.debug("Ignoring unknown fields %s for %s", sorted(unknown), cls.__name__)
        return cls(**{k: v for k, v in data.items() if k in known})

    def update(self, patch: Mapping[str, Any]) -> int:
        """Deep-merge ``patch`` into this record. Returns 0."""
        merge(self, patch)
        return 0


@dataclass
class HyperLink(_Record):
    """A citation or URL: display text plus target."""

    text: str | None = None
    link: str | None = None

    def __post_init__(self) -> None:
        if self.text is None:
            self.text = self.link

    @classmethod
    def coerce(cls, value: HyperLink | Mapping[str, Any] | str) -> HyperLink:
        """Turn a string, mapping or HyperLink into a HyperLink."""
        if isinstance(value, HyperLink):
            return value
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        return cls(link=value, text=value)

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in (("text", self.text), ("link", self.link)) if v is not None}


@dataclass(eq=False)
class Node(_Record):
    """A named data type in the graph.

    Nodes compare by identity: links hold references to them.
    """

    name: str | None = None
    description: str | None = None

    # Layout properties (owned by placement and rendering)
    x: float | None = field(default=None, repr=False)
    y: float | None = field(default=None, repr=False)
    rx: float | None = field(default=None, repr=False)
    ry: float | None = field(default=None, repr=False)
    fixed: bool = field(default=False, repr=False)

    # Assigned by the owning Graph
    id: int | None = field(default=None, repr=False, init=False)

    def update(self, patch: Mapping[str, Any]) -> int:
        """Deep-merge ``patch`` into the node. Returns -1 if it touches ``id``."""
        if "id" in patch:
            logger.info("Refusing node update of id")
            return -1
        merge(self, patch)
        return 0


NodeRef = Union[Node, str, int]

HYPERLINK_FIELDS = ("reference", "tools", "links")


def _split(value: Any) -> list[Any]:
    """Split ';'-delimited text, or copy a sequence."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(";") if item.strip()]
    return list(value)


def normalize_hyperlinks(
    reference: Any, tools: Any, links: Any
) -> tuple[list[HyperLink] | None, list[HyperLink] | None, list[HyperLink] | None]:
    """Normalize link metadata into HyperLink lists.

    When ``reference`` is delimited text its items are citation texts that
    pair positionally with the entries of ``links``; the ``links`` entries
    left over stay as standalone HyperLinks. Plain strings anywhere become
    ``HyperLink(text=value, link=value)``.
    """
    link_items = _split(links)

    if isinstance(reference, str):
        texts = _split(reference)
        references = []
        for i, text in enumerate(texts):
            url = link_items[i] if i < len(link_items) else None
            if url is not None and not isinstance(url, str):
                url = HyperLink.coerce(url).link
            references.append(HyperLink(text=text, link=url))
        link_items = link_items[len(texts):]
    else:
        references = [HyperLink.coerce(item) for item in _split(reference)]

    return (
        references or None,
        [HyperLink.coerce(item) for item in _split(tools)] or None,
        [HyperLink.coerce(item) for item in link_items] or None,
    )

# Changing any of these moves the link between weight buckets.
LINK_IDENTITY_FIELDS = frozenset({"source", "target", "flow", "weight"})


@dataclass(eq=False)
class Link(_Record):
    """A workflow between two nodes, with provenance metadata.

    Before insertion ``source``/``target`` may be a node name, an index
    into ``Graph.nodes`` or a Node; the Graph resolves them to Nodes.
    """

    source: NodeRef | None = None
    target: NodeRef | None = None
    flow: Flow | int | None = None
    type: LinkType | int | None = None
    description: str | None = None
    reference: list[HyperLink] | None = None
    tools: list[HyperLink] | None = None
    notes: str | None = None
    links: list[HyperLink] | None = None
    pilot: Pilot | int | None = None

    # Computed by the Graph, never set by callers
    weight: int = field(default=1, repr=False)

    @property
    def source_name(self) -> str | None:
        return self.source.name if isinstance(self.source, Node) else self.source

    @property
    def target_name(self) -> str | None:
        return self.target.name if isinstance(self.target, Node) else self.target

    def update(self, patch: Mapping[str, Any]) -> int:
        """Deep-merge ``patch`` into the link metadata.

        Returns -1 without changing anything if the patch touches the
        endpoints, the flow or the weight.
        """
        blocked = LINK_IDENTITY_FIELDS.intersection(patch)
        if blocked:
            logger.info("Refusing link update of %s", ", ".join(sorted(blocked)))
            return -1

        merge(self, {k: v for k, v in patch.items() if k not in HYPERLINK_FIELDS})

        # Patched hyperlink fields are normalized the way add_link does it,
        # a delimited reference pairing with the links of the same patch.
        touched = [name for name in HYPERLINK_FIELDS if name in patch]
        if touched:
            normalized = normalize_hyperlinks(*(patch.get(name) for name in HYPERLINK_FIELDS))
            for name, value in zip(HYPERLINK_FIELDS, normalized):
                if name in touched:
                    setattr(self, name, copy.deepcopy(value))
        return 0
