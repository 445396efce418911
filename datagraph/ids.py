"""Pairing identifiers for node pairs."""

from __future__ import annotations

# Must exceed any node id the graph will hand out.
PAIR_ID_BASE = 10**10


def node_pair_ids(source: int, target: int, base: int = PAIR_ID_BASE) -> tuple[int, int]:
    """Return (undirected_id, directed_id) for a pair of node ids.

    The undirected id is the same for (a, b) and (b, a); the directed id
    tells the two orientations apart within that bucket.
    """
    low, high = min(source, target), max(source, target)
    return low * base + high, source * base + target
