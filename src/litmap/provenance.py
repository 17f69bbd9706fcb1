"""Provenance path tracing.

Walks parent edges (edges whose target is the current node) depth-first
from a query node back to the project root. Paths that dead-end on a node
with no parents are kept as orphan paths.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .models import Edge, Node

logger = logging.getLogger(__name__)

ROOT_TYPE = "project"


@dataclass
class HighlightSet:
    """Node and edge ids lying on any traced path."""

    node_ids: set[str] = field(default_factory=set)
    edge_ids: set[str] = field(default_factory=set)

    def __bool__(self) -> bool:
        return bool(self.node_ids or self.edge_ids)

    def clear(self) -> None:
        self.node_ids.clear()
        self.edge_ids.clear()

    def to_dict(self) -> dict:
        return {"nodeIds": sorted(self.node_ids), "edgeIds": sorted(self.edge_ids)}


class ProvenanceTracer:
    """Finds all paths from a node to the root over a fixed node/edge set.

    Edges referencing nodes outside the node set are ignored.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge]):
        self._nodes: dict[str, Node] = {n.id: n for n in nodes}
        self._parents: dict[str, list[Edge]] = {}
        for edge in edges:
            if edge.source_node_id not in self._nodes or edge.target_node_id not in self._nodes:
                logger.debug(f"Skipping edge {edge.id} with a dangling endpoint")
                continue
            self._parents.setdefault(edge.target_node_id, []).append(edge)

    def parent_edges(self, node_id: str) -> list[Edge]:
        return self._parents.get(node_id, [])

    def find_paths_to_root(self, node_id: str) -> list[list[str]]:
        """Return every terminated path from ``node_id``.

        Each path starts at the query node and ends at either a ``project``
        node or an orphan (a non-root node with no parent edges). A node is
        never expanded twice along one path, which keeps cycles finite.
        Unknown query ids yield no paths.
        """
        if node_id not in self._nodes:
            return []

        paths: list[list[str]] = []

        def walk(current: str, path: list[str], visited: set[str]) -> None:
            if current in visited:
                return
            visited = visited | {current}
            path = path + [current]

            if self._nodes[current].type == ROOT_TYPE:
                paths.append(path)
                return

            parents = self.parent_edges(current)
            if not parents:
                # TODO: orphan paths hide disconnected subgraphs; revisit once
                # product decides whether dead ends should be flagged instead
                paths.append(path)
                return

            for edge in parents:
                walk(edge.source_node_id, path, visited)

        walk(node_id, [], set())
        return paths

    def highlight(self, node_ids: Iterable[str]) -> HighlightSet:
        """Union of nodes and connecting edges over all paths of all queries."""
        result = HighlightSet()
        for query in node_ids:
            for path in self.find_paths_to_root(query):
                result.node_ids.update(path)
                for child, parent in zip(path, path[1:]):
                    for edge in self.parent_edges(child):
                        if edge.source_node_id == parent:
                            result.edge_ids.add(edge.id)
        return result

    def label_path(self, path: list[str]) -> list[str]:
        """Human-readable labels for a path, for the side panel."""
        return [self._nodes[nid].label if nid in self._nodes else nid for nid in path]


def find_paths_to_root(node_id: str, nodes: Iterable[Node], edges: Iterable[Edge]) -> list[list[str]]:
    """Convenience wrapper around ProvenanceTracer.find_paths_to_root()."""
    return ProvenanceTracer(nodes, edges).find_paths_to_root(node_id)
