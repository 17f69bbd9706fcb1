"""Structural edge synthesis.

Derives the implicit containment edges (root -> notebook -> source ->
concept) from node attributes. Never mutates the graph store; synthesized
edges exist only in the list handed to the renderer.
"""

from __future__ import annotations

import logging

from .constants import (
    CITED_TYPES,
    EDGE_CITES,
    EDGE_CONTAINS,
    EDGE_INCLUDES,
    SYNTHETIC_NOTEBOOK_PREFIX,
    SYNTHETIC_PROJECT_PREFIX,
    SYNTHETIC_SOURCE_PREFIX,
)
from .models import (
    ConceptNode,
    Edge,
    Node,
    NotebookNode,
    NotebookRecord,
    Project,
    ProjectNode,
    ResourceRecord,
    SourceNode,
)

logger = logging.getLogger(__name__)


def synthetic_root_id(project_id: str) -> str:
    return f"{SYNTHETIC_PROJECT_PREFIX}{project_id}"


def make_synthetic_root(project_id: str, project: Project | None = None) -> ProjectNode:
    """Manufacture the non-persisted root used when no node is flagged."""
    if project is None:
        return ProjectNode(
            id=synthetic_root_id(project_id),
            project_id=project_id,
            title="Research Project",
            is_project_root=True,
        )
    return ProjectNode(
        id=synthetic_root_id(project_id),
        project_id=project_id,
        title=project.title,
        content=project.hypothesis,
        hypothesis=project.hypothesis,
        paper_type=project.paper_type,
        theme=project.theme,
        is_project_root=True,
    )


def synthesize_container_nodes(
    project_id: str,
    nodes: list[Node],
    notebooks: list[NotebookRecord],
    resources: list[ResourceRecord],
) -> list[Node]:
    """Create session-only nodes for notebooks/resources without a graph node.

    A notebook record is represented when some notebook node's identity
    matches it; a resource is represented when a source node carries its
    title within the same notebook.
    """
    represented_notebooks = {
        n.notebook_key for n in nodes if isinstance(n, NotebookNode)
    }
    represented_sources = {
        (n.notebook_id, n.title) for n in nodes if isinstance(n, SourceNode)
    }

    synthetic: list[Node] = []
    for nb in notebooks:
        if nb.id in represented_notebooks:
            continue
        synthetic.append(NotebookNode(
            id=f"{SYNTHETIC_NOTEBOOK_PREFIX}{nb.id}",
            project_id=project_id,
            title=nb.title,
            content=nb.briefing,
            notebook_id=nb.id,
            notebook_url=nb.notebook_url,
            briefing=nb.briefing,
        ))

    for res in resources:
        if (res.notebook_id, res.title) in represented_sources:
            continue
        synthetic.append(SourceNode(
            id=f"{SYNTHETIC_SOURCE_PREFIX}{res.id}",
            project_id=project_id,
            title=res.title,
            notebook_id=res.notebook_id,
            source_url=res.source_url,
            file_type=res.file_type,
        ))

    if synthetic:
        logger.debug(f"Synthesized {len(synthetic)} container nodes for project {project_id}")
    return synthetic


def _structural_edge(project_id: str, source_id: str, target_id: str, edge_type: str) -> Edge:
    # Deterministic id so the same structure yields the same edge ids
    return Edge(
        id=f"{edge_type}:{source_id}->{target_id}",
        project_id=project_id,
        source_node_id=source_id,
        target_node_id=target_id,
        edge_type=edge_type,
        structural=True,
    )


def synthesize_structural_edges(
    nodes: list[Node],
    project_id: str,
    root: Node | None = None,
) -> list[Edge]:
    """Derive containment edges from node attributes.

    Rules, in order:
    1. root --includes--> every notebook (only when a root exists)
    2. notebook --contains--> each source whose notebook_id matches it
    3. every source sharing a concept's notebook_id --cites--> that concept
       (concepts and hypotheses only)

    Args:
        nodes: All nodes of the project (the root may or may not be among them)
        project_id: Owning project
        root: Real or synthetic root node

    Returns:
        New edges; the input is not modified.
    """
    edges: list[Edge] = []

    notebooks = [n for n in nodes if isinstance(n, NotebookNode)]
    sources = [n for n in nodes if isinstance(n, SourceNode)]

    if root is not None:
        for nb in notebooks:
            edges.append(_structural_edge(project_id, root.id, nb.id, EDGE_INCLUDES))

    notebook_by_key = {}
    for nb in notebooks:
        notebook_by_key.setdefault(nb.notebook_key, nb)

    sources_by_notebook: dict[str, list[SourceNode]] = {}
    for src in sources:
        if not src.notebook_id:
            continue
        sources_by_notebook.setdefault(src.notebook_id, []).append(src)
        nb = notebook_by_key.get(src.notebook_id)
        if nb is not None:
            edges.append(_structural_edge(project_id, nb.id, src.id, EDGE_CONTAINS))

    for node in nodes:
        if not isinstance(node, ConceptNode) or node.type not in CITED_TYPES:
            continue
        if not node.notebook_id:
            continue
        for src in sources_by_notebook.get(node.notebook_id, []):
            edges.append(_structural_edge(project_id, src.id, node.id, EDGE_CITES))

    return edges
