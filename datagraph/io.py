"""Reading and writing graphs.

Two input formats are understood:

- JSON: ``{"nodes": [{name, description}, ...], "links": [{source, target,
  flow, type, description, reference, tools, notes, links, pilot}, ...]}``.
  Nodes come first so links can refer to them by name.
- Delimited text (tab-separated by default), one link per row, with
  columns ``data1``/``source``, ``data2``/``target``, ``flow`` ("->",
  "<-", "<->" or a number), ``type``, ``description``, ``reference``
  (";"-joined), ``tools``, ``notes``, ``links`` (";"-joined URLs) and
  ``pilot``. Delimited text is read with Polars, all columns as strings.

Export is the mirror of the JSON input (see ``Graph.to_dict``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

import polars as pl

from .graph import Graph, GraphConfig
from .models import Flow, LinkType, Pilot

logger = logging.getLogger(__name__)

SOURCE_COLUMNS = ("data1", "source")
TARGET_COLUMNS = ("data2", "target")
TEXT_COLUMNS = ("description", "reference", "tools", "notes", "links")


class GraphImportError(ValueError):
    """Input data that cannot be turned into a graph."""


def _text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _pick(record: Mapping[str, Any], columns: tuple[str, ...]) -> str | None:
    for column in columns:
        value = _text(record.get(column))
        if value is not None:
            return value
    return None


def parse_flow(value: Any) -> Flow:
    """Parse "->", "<-", "<->" or a numeric flow; empty means INFORM."""
    try:
        return Flow.coerce(value)
    except ValueError as e:
        raise GraphImportError(f"Invalid flow '{value}'") from e


def parse_type(value: Any) -> LinkType | None:
    try:
        return LinkType.coerce(value)
    except ValueError as e:
        raise GraphImportError(f"Invalid link type '{value}'") from e


def parse_pilot(value: Any) -> Pilot | None:
    try:
        return Pilot.coerce(value)
    except ValueError as e:
        raise GraphImportError(f"Invalid pilot '{value}'") from e


def link_from_record(record: Mapping[str, Any]) -> dict[str, Any]:
    """Map one delimited-text row onto a link mapping for ``Graph.add_link``.

    A row without a type counts as DONE when it lists tools, TODO
    otherwise.
    """
    source = _pick(record, SOURCE_COLUMNS)
    target = _pick(record, TARGET_COLUMNS)
    if source is None or target is None:
        raise GraphImportError(f"Row without source and target: {dict(record)!r}")

    link: dict[str, Any] = {
        "source": source,
        "target": target,
        "flow": parse_flow(record.get("flow")),
        "type": parse_type(record.get("type")),
        "pilot": parse_pilot(record.get("pilot")),
    }
    for column in TEXT_COLUMNS:
        link[column] = _text(record.get(column))

    if link["type"] is None:
        link["type"] = LinkType.DONE if link["tools"] else LinkType.TODO
    return link


def read_delimited(
    source: str | Path | IO[str] | IO[bytes],
    separator: str = "\t",
    graph: Graph | None = None,
    config: GraphConfig | None = None,
) -> Graph:
    """Load links from delimited text into ``graph`` (or a new Graph).

    Nodes are created in order of first appearance. Rows the graph refuses
    (duplicates, too many parallel links) are logged and skipped; rows
    that cannot be parsed raise GraphImportError.
    """
    try:
        frame = pl.read_csv(source, separator=separator, infer_schema_length=0)
    except (pl.exceptions.PolarsError, OSError) as e:
        raise GraphImportError(f"Cannot read {source!r}: {e}") from e

    for columns in (SOURCE_COLUMNS, TARGET_COLUMNS):
        if not any(column in frame.columns for column in columns):
            raise GraphImportError(
                f"Missing column {' or '.join(columns)}; found {', '.join(frame.columns)}"
            )

    if graph is None:
        graph = Graph(config)

    for row, record in enumerate(frame.iter_rows(named=True), start=1):
        link = link_from_record(record)
        graph.add_node({"name": link["source"]})
        graph.add_node({"name": link["target"]})
        if graph.add_link(link) == -1:
            logger.warning(
                "Skipping row %d (%s %s %s): %s",
                row, link["source"], record.get("flow") or "->", link["target"],
                graph.last_error.value,
            )

    logger.info("Read %d node(s) and %d link(s)", len(graph.nodes), len(graph.links))
    return graph


def loads(text: str, config: GraphConfig | None = None) -> Graph:
    """Build a graph from a JSON document."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GraphImportError(f"Invalid JSON: {e}") from e

    if not isinstance(data, Mapping):
        raise GraphImportError("Expected a JSON object with 'nodes' and 'links'")
    for key in ("nodes", "links"):
        items = data.get(key, [])
        if not isinstance(items, list):
            raise GraphImportError(f"'{key}' must be a list")
        for i, item in enumerate(items):
            if not isinstance(item, Mapping):
                raise GraphImportError(f"'{key}' item {i} must be an object, got {item!r}")
    return Graph.from_dict(data, config)


def dumps(graph: Graph, indent: int | None = None) -> str:
    return graph.to_json(indent=indent)


def read_json(path: str | Path, config: GraphConfig | None = None) -> Graph:
    return loads(Path(path).read_text(encoding="utf-8"), config)


def write_json(graph: Graph, path: str | Path, indent: int | None = 2) -> None:
    Path(path).write_text(graph.to_json(indent=indent), encoding="utf-8")
