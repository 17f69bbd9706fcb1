"""In-memory graph store for one project.

Single source of truth for the engine while a project view is open. Built
from the external store's rows; rebuilt whenever the project or layout mode
changes. The engine never deletes nodes.
"""

import logging
from dataclasses import dataclass, field

from .models import Edge, LayoutMode, Node, Position

logger = logging.getLogger(__name__)


@dataclass
class GraphStore:
    """Nodes and explicit edges of a project's knowledge graph.

    Includes indices for O(1) lookups:
    - _outgoing: node ID -> list of edges from it
    - _incoming: node ID -> list of edges to it
    - _edges_by_id: edge ID -> Edge object

    Node order is insertion order, which drives the layout bands.
    """

    project_id: str = ""
    nodes: dict[str, Node] = field(default_factory=dict)  # id -> Node
    edges: list[Edge] = field(default_factory=list)

    _outgoing: dict[str, list[Edge]] = field(default_factory=dict)
    _incoming: dict[str, list[Edge]] = field(default_factory=dict)
    _edges_by_id: dict[str, Edge] = field(default_factory=dict)

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def node_list(self) -> list[Node]:
        return list(self.nodes.values())

    def nodes_of_type(self, *types: str) -> list[Node]:
        return [n for n in self.nodes.values() if n.type in types]

    def get_outgoing_edges(self, node_id: str) -> list[Edge]:
        """O(1) lookup of edges where node is source."""
        return self._outgoing.get(node_id, [])

    def get_incoming_edges(self, node_id: str) -> list[Edge]:
        """O(1) lookup of edges where node is target."""
        return self._incoming.get(node_id, [])

    def get_edge_by_id(self, edge_id: str) -> Edge | None:
        return self._edges_by_id.get(edge_id)

    def find_root(self) -> Node | None:
        """Return the node flagged as project root, if any.

        Logs a warning when more than one node carries the flag; the first
        in insertion order wins.
        """
        roots = [n for n in self.nodes.values() if n.is_project_root]
        if len(roots) > 1:
            logger.warning(
                f"Project {self.project_id} has {len(roots)} root nodes, using {roots[0].id}"
            )
        return roots[0] if roots else None

    # --- Mutations ---

    def add_node(self, node: Node) -> Node:
        """Insert or replace a node."""
        self.nodes[node.id] = node
        return node

    def add_edge(self, edge: Edge) -> Edge:
        """Append an edge and update indices.

        No uniqueness is enforced on (source, target): several edges with
        different types may join the same pair.
        """
        self.edges.append(edge)
        self._outgoing.setdefault(edge.source_node_id, []).append(edge)
        self._incoming.setdefault(edge.target_node_id, []).append(edge)
        self._edges_by_id[edge.id] = edge
        return edge

    def move_node(self, node_id: str, mode: LayoutMode, position: Position) -> bool:
        """Set a node's position for one layout mode. Returns False if unknown."""
        node = self.nodes.get(node_id)
        if node is None:
            return False
        node.set_position(mode, position)
        return True

    def _rebuild_indices(self) -> None:
        """Rebuild edge indices from the edge list."""
        self._outgoing = {}
        self._incoming = {}
        self._edges_by_id = {}
        for edge in self.edges:
            self._outgoing.setdefault(edge.source_node_id, []).append(edge)
            self._incoming.setdefault(edge.target_node_id, []).append(edge)
            self._edges_by_id[edge.id] = edge

    def check_index_consistency(self) -> list[str]:
        """Validate that indices match base state. Returns list of errors.

        Debug/test utility. An empty list means indices are consistent.
        """
        errors: list[str] = []

        expected_outgoing: dict[str, list[Edge]] = {}
        expected_incoming: dict[str, list[Edge]] = {}
        for edge in self.edges:
            expected_outgoing.setdefault(edge.source_node_id, []).append(edge)
            expected_incoming.setdefault(edge.target_node_id, []).append(edge)

        for name, expected, actual in (
            ("_outgoing", expected_outgoing, self._outgoing),
            ("_incoming", expected_incoming, self._incoming),
        ):
            for node_id in set(expected) | set(actual):
                want = {id(e) for e in expected.get(node_id, [])}
                got = {id(e) for e in actual.get(node_id, [])}
                if want != got:
                    errors.append(
                        f"{name}[{node_id}] mismatch: expected {len(want)} edges, got {len(got)}"
                    )

        expected_by_id = {e.id: e for e in self.edges}
        missing = set(expected_by_id) - set(self._edges_by_id)
        extra = set(self._edges_by_id) - set(expected_by_id)
        if missing:
            errors.append(f"_edges_by_id missing: {missing}")
        if extra:
            errors.append(f"_edges_by_id has stale entries: {extra}")

        return errors


def build_store(project_id: str, nodes: list[Node], edges: list[Edge]) -> GraphStore:
    """Build a graph store from loaded rows."""
    store = GraphStore(project_id=project_id)
    for node in nodes:
        store.nodes[node.id] = node
    store.edges = list(edges)
    store._rebuild_indices()
    return store
