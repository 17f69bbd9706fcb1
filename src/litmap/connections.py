"""Connection editor.

A drag-connect between two nodes opens a draft; the edge is only written
once the user picks a relationship type.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from .constants import DEFAULT_EDGE_STRENGTH, EDGE_TYPES
from .exceptions import InvalidEdgeTypeError, InvalidTransitionError
from .models import Edge, Node

logger = logging.getLogger(__name__)


@dataclass
class EdgeDraft:
    """A pending connection awaiting a relationship type."""

    source_node_id: str
    target_node_id: str


class ConnectionEditor:
    """Holds at most one pending connection draft.

    Args:
        get_node: node lookup by id
        add_edge: records a committed edge (locally, then remotely)
        project_id: owning project, stamped on new edges
    """

    def __init__(
        self,
        get_node: Callable[[str], Node | None],
        add_edge: Callable[[Edge], Edge],
        project_id: str = "",
    ):
        self._get_node = get_node
        self._add_edge = add_edge
        self._project_id = project_id
        self.draft: EdgeDraft | None = None

    def propose(self, source_id: str, target_id: str) -> EdgeDraft | None:
        """Open a draft for a connection. Returns None if it is not drawable.

        Self-connections and connections to unknown nodes are refused.
        A new proposal replaces any open draft.
        """
        if source_id == target_id:
            logger.debug(f"Refusing self-connection on {source_id}")
            return None
        if self._get_node(source_id) is None or self._get_node(target_id) is None:
            logger.debug(f"Refusing connection {source_id} -> {target_id}: unknown node")
            return None
        self.draft = EdgeDraft(source_node_id=source_id, target_node_id=target_id)
        return self.draft

    def commit(
        self,
        draft: EdgeDraft,
        edge_type: str,
        annotation: str | None = None,
    ) -> Edge:
        """Write the drafted edge with the chosen relationship type.

        Raises:
            InvalidEdgeTypeError: If edge_type is outside the vocabulary
            InvalidTransitionError: If the draft is not the open one
        """
        if draft is not self.draft:
            raise InvalidTransitionError("no matching draft is open", "commit a connection")
        if edge_type not in EDGE_TYPES:
            raise InvalidEdgeTypeError(edge_type)

        edge = Edge(
            project_id=self._project_id,
            source_node_id=draft.source_node_id,
            target_node_id=draft.target_node_id,
            edge_type=edge_type,
            annotation=(annotation or "").strip() or None,
            strength=DEFAULT_EDGE_STRENGTH,
        )
        self.draft = None
        return self._add_edge(edge)

    def cancel(self) -> None:
        """Discard the open draft, if any. No side effects."""
        self.draft = None
