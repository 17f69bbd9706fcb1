"""Project session - orchestrates the graph store, layout and interactions.

The session is the project view: it exclusively owns the GraphStore and is
the only writer to it. Local state is updated first; remote writes follow
through the write queue on a best-effort basis.
"""

import logging
from collections import Counter
from typing import Iterable

from pydantic import ValidationError

from .connections import ConnectionEditor, EdgeDraft
from .constants import DEFAULT_LAYOUT_MODE, EDGE_SUPPORTS, LAYOUT_MODES
from .exceptions import InvalidTransitionError, LitmapError
from .layout import LayoutResolver, PositionedNode
from .models import (
    Edge,
    InsightNode,
    LayoutMode,
    Node,
    Position,
    Project,
    is_concept_like,
)
from .positions import ClientCache, MemoryCache, PositionPersistenceAdapter, is_synthetic_id
from .provenance import HighlightSet, ProvenanceTracer
from .selection import ClickAction, InteractionState, SelectionController
from .state import GraphStore, build_store
from .store import GraphRepository
from .structure import (
    make_synthetic_root,
    synthesize_container_nodes,
    synthesize_structural_edges,
)
from .sync import LocalChange, Notification, WriteQueue

logger = logging.getLogger(__name__)


class ProjectSession:
    """Main entry point for one project's literature map.

    Inbound renderer events: on_node_click(), on_edge_connect_attempt(),
    on_node_drag_end(). Outbound: render_payload().

    Thread-safety: single-threaded by design. All mutations happen on the
    caller's thread in the order they are issued.
    """

    def __init__(
        self,
        repository: GraphRepository,
        project_id: str,
        cache: ClientCache | None = None,
        mode: LayoutMode | None = None,
        autoflush: bool = True,
        default_mode: LayoutMode = DEFAULT_LAYOUT_MODE,
    ):
        self.repository = repository
        self.project_id = project_id
        self.cache = cache if cache is not None else MemoryCache()
        self.write_queue = WriteQueue(autoflush=autoflush)
        self.positions = PositionPersistenceAdapter(repository, self.cache, self.write_queue)
        self.resolver = LayoutResolver(self.positions)

        self.interaction = InteractionState()
        self.selection = SelectionController(
            get_node=self.get_node,
            trace=self.trace,
            create_insight=self._create_insight,
            state=self.interaction,
        )
        self.connections = ConnectionEditor(self.get_node, self._add_edge, project_id)

        self.project: Project | None = None
        self.store = GraphStore(project_id=project_id)
        self.mode: LayoutMode = mode or self._stored_mode() or default_mode
        self.reload()

    def _stored_mode(self) -> LayoutMode | None:
        try:
            return self.repository.get_layout_mode(self.project_id)
        except Exception as e:
            logger.warning(f"Could not read layout mode for {self.project_id}: {e}")
            return None

    # --- Loading ---

    def reload(self) -> bool:
        """Discard the graph store and rebuild it from the repository.

        A synthetic root is added when no node is flagged as root. Local
        changes the repository has not confirmed are replayed on top, so a
        pending or failed write never rolls the view back. On a failed load
        the previous store is kept and a notification raised.
        """
        pid = self.project_id
        try:
            self.project = self.repository.get_project(pid)
            nodes = self.repository.list_nodes(pid)
            edges = self.repository.list_edges(pid)
            notebooks = self.repository.list_notebooks(pid)
            resources = self.repository.list_resources(pid)
        except Exception as e:
            logger.warning(f"Failed to load graph for project {pid}: {e}")
            self.write_queue.notify("error", "Failed to load graph data")
            return False

        nodes = nodes + synthesize_container_nodes(pid, nodes, notebooks, resources)
        if not any(n.is_project_root for n in nodes):
            nodes = [make_synthetic_root(pid, self.project)] + nodes

        self.store = build_store(pid, nodes, edges)
        self._replay_unsynced()
        self._prune_interaction()
        logger.debug(f"Loaded project {pid}: {len(nodes)} nodes, {len(edges)} edges")
        return True

    def _replay_unsynced(self) -> None:
        """Re-apply local changes whose remote write is pending or failed."""
        for change in self.write_queue.unsynced():
            if change.kind == "node":
                if self.store.get_node(change.target_id) is None:
                    self.store.add_node(change.value)
            elif change.kind == "edge":
                if self.store.get_edge_by_id(change.target_id) is None:
                    self.store.add_edge(change.value)
            elif not self.store.move_node(change.target_id, change.mode, change.value):
                logger.debug(f"Dropping unsynced move of missing node {change.target_id}")

    def _prune_interaction(self) -> None:
        """Drop selections that no longer point at loaded nodes."""
        state = self.interaction
        state.multi_selected[:] = [i for i in state.multi_selected if i in self.store.nodes]
        state.traced_insights[:] = [i for i in state.traced_insights if i in self.store.nodes]
        if state.detail_node_id not in self.store.nodes:
            state.detail_node_id = None

        if state.mode == "multi-selecting-concepts" and not state.multi_selected:
            state.mode = "idle"
        if state.mode == "tracing-insights" and not state.traced_insights:
            state.mode = "idle"
        self.selection.refresh_highlight()

    # --- Reads ---

    def get_node(self, node_id: str) -> Node | None:
        return self.store.get_node(node_id)

    @property
    def root(self) -> Node:
        return self.store.find_root()

    def structural_edges(self) -> list[Edge]:
        return synthesize_structural_edges(self.store.node_list(), self.project_id, self.root)

    def visible_edges(self) -> list[Edge]:
        """Structural plus explicit edges, minus those with a missing endpoint."""
        nodes = self.store.nodes
        edges = []
        for edge in self.structural_edges() + self.store.edges:
            if edge.source_node_id in nodes and edge.target_node_id in nodes:
                edges.append(edge)
            else:
                logger.debug(f"Hiding edge {edge.id}: endpoint not loaded")
        return edges

    def positioned_nodes(self) -> list[PositionedNode]:
        return self.resolver.resolve(self.store.node_list(), self.mode, self.project_id, self.project)

    def tracer(self) -> ProvenanceTracer:
        return ProvenanceTracer(self.store.node_list(), self.visible_edges())

    def find_paths_to_root(self, node_id: str) -> list[list[str]]:
        return self.tracer().find_paths_to_root(node_id)

    def trace(self, insight_ids: list[str]) -> HighlightSet:
        return self.tracer().highlight(insight_ids)

    def traced_paths(self) -> dict[str, list[list[str]]]:
        """Paths of every insight in the active trace set."""
        tracer = self.tracer()
        return {
            insight_id: tracer.find_paths_to_root(insight_id)
            for insight_id in self.interaction.traced_insights
        }

    def path_labels(self, paths: list[list[str]]) -> list[list[str]]:
        tracer = self.tracer()
        return [tracer.label_path(path) for path in paths]

    def insight_concepts(self, insight_id: str) -> list[Node]:
        """Concept-like nodes feeding an insight through supports edges."""
        concepts = []
        for edge in self.store.get_incoming_edges(insight_id):
            if edge.edge_type != EDGE_SUPPORTS:
                continue
            node = self.store.get_node(edge.source_node_id)
            if node is not None and is_concept_like(node):
                concepts.append(node)
        return concepts

    def node_stats(self) -> dict:
        """Node counts per type plus the total connection count."""
        counts = Counter(n.type for n in self.store.nodes.values())
        return {
            "nodes": dict(counts),
            "node_count": len(self.store.nodes),
            "connections": len(self.visible_edges()),
        }

    def render_payload(self) -> dict:
        """Positioned nodes, typed edges and the highlight set for the renderer."""
        highlight = self.interaction.highlight
        selected = set(self.interaction.multi_selected)

        nodes = []
        for placed in self.positioned_nodes():
            data = placed.node.model_dump(mode="json", by_alias=True)
            data["position"] = placed.position.as_dict()
            data["positionSource"] = placed.source
            data["highlighted"] = placed.id in highlight.node_ids
            data["selected"] = placed.id in selected
            nodes.append(data)

        edges = []
        for edge in self.visible_edges():
            data = edge.model_dump(mode="json", by_alias=True)
            data["highlighted"] = edge.id in highlight.edge_ids
            edges.append(data)

        return {
            "projectId": self.project_id,
            "mode": self.mode,
            "nodes": nodes,
            "edges": edges,
            "highlight": highlight.to_dict(),
            "interaction": self.interaction.mode,
        }

    # --- Layout mode ---

    def set_layout_mode(self, mode: LayoutMode) -> None:
        """Switch layout mode, persist the preference and rebuild the store."""
        if mode not in LAYOUT_MODES:
            raise LitmapError(f"Unknown layout mode: {mode!r}")
        if mode == self.mode:
            return
        self.mode = mode
        self.write_queue.submit(
            f"save layout mode for {self.project_id}",
            self.repository.set_layout_mode, self.project_id, mode,
        )
        self.reload()

    # --- Renderer events ---

    def on_node_click(self, node_id: str, modifiers: Iterable[str] | None = None) -> ClickAction:
        return self.selection.handle_click(node_id, modifiers)

    def on_edge_connect_attempt(self, source_id: str, target_id: str) -> EdgeDraft | None:
        return self.connections.propose(source_id, target_id)

    def on_node_drag_end(self, node_id: str, position: Position | dict) -> bool:
        """Move a node locally, then persist through its channel."""
        if not isinstance(position, Position):
            try:
                position = Position.model_validate(position)
            except ValidationError as e:
                logger.debug(f"Ignoring drag of {node_id} with malformed position: {e}")
                return False
        if not self.store.move_node(node_id, self.mode, position):
            logger.debug(f"Ignoring drag of unknown node {node_id}")
            return False
        self.positions.save(node_id, self.mode, position)
        return True

    # --- Connections ---

    def commit_connection(self, edge_type: str, annotation: str | None = None) -> Edge:
        draft = self.connections.draft
        if draft is None:
            raise InvalidTransitionError("no connection is pending", "commit a connection")
        return self.connections.commit(draft, edge_type, annotation)

    def cancel_connection(self) -> None:
        self.connections.cancel()

    # --- Insights ---

    def open_insight_draft(self):
        return self.selection.open_insight_draft()

    def save_insight(
        self,
        title: str,
        content: str | None = None,
        confidence_score: float | None = None,
    ) -> InsightNode:
        return self.selection.save_insight(title, content, confidence_score)

    def cancel_insight_draft(self) -> None:
        self.selection.cancel_insight_draft()

    # --- Mutations (local first, remote after) ---

    def add_node(self, node: Node) -> Node:
        """Add a user-created node (e.g. an extracted concept)."""
        if is_synthetic_id(node.id):
            raise LitmapError(f"Node id {node.id!r} is reserved for synthetic nodes")
        node.project_id = self.project_id
        self.store.add_node(node)
        self.write_queue.submit(
            f"save node {node.title!r}",
            self.repository.insert_node, node,
            local=LocalChange("node", node.id, node),
        )
        return node

    def _add_edge(self, edge: Edge) -> Edge:
        self.store.add_edge(edge)
        self.write_queue.submit(
            f"save connection {edge.source_node_id} -> {edge.target_node_id}",
            self.repository.insert_edge, edge,
            local=LocalChange("edge", edge.id, edge),
        )
        if self.interaction.traced_insights:
            self.selection.refresh_highlight()
        return edge

    def _create_insight(
        self,
        concept_ids: list[str],
        title: str,
        content: str | None,
        confidence_score: float | None,
    ) -> InsightNode:
        insight = InsightNode(
            project_id=self.project_id,
            title=title,
            content=content,
            confidence_score=confidence_score,
            source_concept_ids=list(concept_ids),
        )
        self.add_node(insight)
        for concept_id in concept_ids:
            self._add_edge(Edge(
                project_id=self.project_id,
                source_node_id=concept_id,
                target_node_id=insight.id,
                edge_type=EDGE_SUPPORTS,
            ))
        self.write_queue.notify("info", f"Insight {title!r} created from {len(concept_ids)} concepts")
        return insight

    # --- Write queue ---

    def flush(self) -> int:
        return self.write_queue.flush()

    @property
    def notifications(self) -> list[Notification]:
        return self.write_queue.notifications
