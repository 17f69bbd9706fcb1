"""Layout resolution for the literature map.

Every node gets a position under the active layout mode. Precedence,
per node and per mode:

1. the mode-specific position stored on the node record
2. a cached position from the persistence adapter
3. a computed default (hierarchical bands or a spatial grid)

Both modes' coordinates are kept side by side on each node, so resolving
one mode never touches the other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from .constants import (
    CITED_TYPES,
    CITE_OFFSET_X,
    DETAIL_BAND_Y,
    DETAIL_COLUMNS,
    DETAIL_SPACING_X,
    DETAIL_SPACING_Y,
    DETAIL_START_X,
    HIERARCHICAL_ROOT_X,
    HIERARCHICAL_ROOT_Y,
    NOTEBOOK_BAND_Y,
    NOTEBOOK_SPACING_X,
    NOTEBOOK_START_X,
    SOURCE_BAND_Y,
    SOURCE_CLUSTER_OFFSET_X,
    SOURCE_SPACING_X,
    SPATIAL_COLUMNS,
    SPATIAL_ROOT_X,
    SPATIAL_ROOT_Y,
    SPATIAL_SPACING_X,
    SPATIAL_SPACING_Y,
    SPATIAL_START_X,
    SPATIAL_START_Y,
)
from .models import (
    ConceptNode,
    LayoutMode,
    Node,
    NotebookNode,
    Position,
    Project,
    SourceNode,
)
from .positions import PositionPersistenceAdapter
from .structure import make_synthetic_root

logger = logging.getLogger(__name__)

PositionSource = Literal["stored", "cached", "computed"]


@dataclass
class PositionedNode:
    """A node with its resolved position for one layout mode."""

    node: Node
    position: Position
    source: PositionSource

    @property
    def id(self) -> str:
        return self.node.id


def ensure_root(
    nodes: list[Node],
    project_id: str,
    project: Project | None = None,
) -> tuple[Node, list[Node]]:
    """Return the project root and the node list guaranteed to contain it.

    When no node is flagged ``is_project_root`` a synthetic root with id
    ``project-<project_id>`` is prepended.
    """
    for node in nodes:
        if node.is_project_root:
            return node, nodes
    root = make_synthetic_root(project_id, project)
    return root, [root] + list(nodes)


def hierarchical_defaults(nodes: list[Node], root: Node) -> dict[str, Position]:
    """Compute banded positions: root, notebooks, sources, then the rest.

    Sources cluster under their notebook. Concepts and hypotheses stack
    under the first source of their notebook when one is known, near the
    sources that cite them; everything else fills a grid below those stacks.
    """
    out: dict[str, Position] = {root.id: Position(x=HIERARCHICAL_ROOT_X, y=HIERARCHICAL_ROOT_Y)}
    rest = [n for n in nodes if n.id != root.id]

    notebooks = [n for n in rest if isinstance(n, NotebookNode)]
    notebook_x: dict[str, float] = {}
    for i, nb in enumerate(notebooks):
        x = NOTEBOOK_START_X + i * NOTEBOOK_SPACING_X
        out[nb.id] = Position(x=x, y=NOTEBOOK_BAND_Y)
        notebook_x.setdefault(nb.notebook_key, x)

    # Sources without a known notebook go right of the last notebook
    loose_x = NOTEBOOK_START_X + len(notebooks) * NOTEBOOK_SPACING_X
    loose_count = 0
    per_notebook: dict[str, int] = {}
    first_source_x: dict[str, float] = {}
    for src in (n for n in rest if isinstance(n, SourceNode)):
        key = src.notebook_id
        if key is not None and key in notebook_x:
            k = per_notebook.get(key, 0)
            per_notebook[key] = k + 1
            x = notebook_x[key] + SOURCE_CLUSTER_OFFSET_X + k * SOURCE_SPACING_X
        else:
            x = loose_x + loose_count * SOURCE_SPACING_X
            loose_count += 1
        out[src.id] = Position(x=x, y=SOURCE_BAND_Y)
        if key is not None:
            first_source_x.setdefault(key, x)

    stacks: dict[str, int] = {}
    uncited: list[Node] = []
    for node in rest:
        if isinstance(node, (NotebookNode, SourceNode)):
            continue
        cited = isinstance(node, ConceptNode) and node.type in CITED_TYPES
        key = node.notebook_id if cited else None
        if key is not None and key in first_source_x:
            k = stacks.get(key, 0)
            stacks[key] = k + 1
            out[node.id] = Position(
                x=first_source_x[key] + k * CITE_OFFSET_X,
                y=DETAIL_BAND_Y + k * DETAIL_SPACING_Y,
            )
        else:
            uncited.append(node)

    grid_top = DETAIL_BAND_Y + max(stacks.values(), default=0) * DETAIL_SPACING_Y
    for i, node in enumerate(uncited):
        col, row = i % DETAIL_COLUMNS, i // DETAIL_COLUMNS
        out[node.id] = Position(
            x=DETAIL_START_X + col * DETAIL_SPACING_X,
            y=grid_top + row * DETAIL_SPACING_Y,
        )

    return out


def spatial_defaults(nodes: list[Node], root: Node) -> dict[str, Position]:
    """Root at its anchor, every other node on a uniform grid."""
    out: dict[str, Position] = {root.id: Position(x=SPATIAL_ROOT_X, y=SPATIAL_ROOT_Y)}
    others = [n for n in nodes if n.id != root.id]
    for i, node in enumerate(others):
        col, row = i % SPATIAL_COLUMNS, i // SPATIAL_COLUMNS
        out[node.id] = Position(
            x=SPATIAL_START_X + col * SPATIAL_SPACING_X,
            y=SPATIAL_START_Y + row * SPATIAL_SPACING_Y,
        )
    return out


class LayoutResolver:
    """Assigns a position to every node under a layout mode."""

    def __init__(self, adapter: PositionPersistenceAdapter | None = None):
        self._adapter = adapter

    def resolve(
        self,
        nodes: list[Node],
        mode: LayoutMode,
        project_id: str,
        project: Project | None = None,
    ) -> list[PositionedNode]:
        """Resolve positions for all nodes, manufacturing a root if needed.

        Nodes are not modified.
        """
        root, nodes = ensure_root(nodes, project_id, project)
        if mode == "hierarchical":
            defaults = hierarchical_defaults(nodes, root)
        else:
            defaults = spatial_defaults(nodes, root)

        positioned: list[PositionedNode] = []
        for node in nodes:
            stored = node.position_for(mode)
            if stored is not None:
                positioned.append(PositionedNode(node, stored, "stored"))
                continue
            cached = self._adapter.load(node.id, mode) if self._adapter else None
            if cached is not None:
                positioned.append(PositionedNode(node, cached, "cached"))
                continue
            positioned.append(PositionedNode(node, defaults[node.id], "computed"))

        return positioned


def resolve_layout(
    nodes: list[Node],
    mode: LayoutMode,
    project_id: str = "",
    adapter: PositionPersistenceAdapter | None = None,
) -> list[PositionedNode]:
    """Convenience wrapper around LayoutResolver.resolve()."""
    return LayoutResolver(adapter).resolve(nodes, mode, project_id)
