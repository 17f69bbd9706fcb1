"""Authoritative store for projects and their graphs.

GraphRepository is the contract the engine consumes. SqliteGraphRepository
is a local implementation backed by SQLite; a hosted store only needs to
provide the same methods.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .constants import LAYOUT_MODES
from .models import (
    Edge,
    LayoutMode,
    Node,
    NotebookRecord,
    Position,
    Project,
    ResourceRecord,
    parse_node,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Node fields stored in their own columns; everything else goes in `data`
_NODE_COLUMNS = {
    "id",
    "project_id",
    "type",
    "title",
    "is_project_root",
    "hierarchical_position",
    "spatial_position",
    "position",
    "created_at",
}


class GraphRepository(Protocol):
    """Persistence contract consumed by the engine."""

    def list_nodes(self, project_id: str) -> list[Node]: ...

    def list_edges(self, project_id: str) -> list[Edge]: ...

    def insert_node(self, node: Node) -> Node: ...

    def insert_edge(self, edge: Edge) -> Edge: ...

    def update_node_position(self, node_id: str, position: Position, mode: LayoutMode) -> None: ...

    def get_project(self, project_id: str) -> Project | None: ...

    def list_notebooks(self, project_id: str) -> list[NotebookRecord]: ...

    def list_resources(self, project_id: str) -> list[ResourceRecord]: ...

    def get_layout_mode(self, project_id: str) -> LayoutMode | None: ...

    def set_layout_mode(self, project_id: str, mode: LayoutMode) -> None: ...


def _xy(position: dict | None) -> tuple[float | None, float | None]:
    if not position:
        return None, None
    return position["x"], position["y"]


def _position(x, y) -> dict | None:
    if x is None or y is None:
        return None
    return {"x": x, "y": y}


class SqliteGraphRepository:
    """GraphRepository backed by a SQLite file."""

    def __init__(self, db_path: Path):
        """Initialize the repository.

        Args:
            db_path: Path to litmap.db (created if missing)
        """
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = None
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), timeout=30.0)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA busy_timeout=30000")
        return self._conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        conn = self._get_conn()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                created_at TEXT DEFAULT (datetime('now'))
            )
        """)
        version = conn.execute("SELECT version FROM schema_version").fetchone()
        if version is None:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        elif version[0] < SCHEMA_VERSION:
            logger.warning(f"Schema version {version[0]} detected, may need migration")

        conn.executescript("""
            CREATE TABLE IF NOT EXISTS projects (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                hypothesis TEXT,
                paper_type TEXT NOT NULL,
                theme TEXT
            );

            CREATE TABLE IF NOT EXISTS notebooks (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                title TEXT NOT NULL,
                notebook_url TEXT,
                briefing TEXT
            );

            CREATE TABLE IF NOT EXISTS notebook_resources (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                notebook_id TEXT NOT NULL,
                title TEXT NOT NULL,
                source_url TEXT,
                file_type TEXT
            );

            CREATE TABLE IF NOT EXISTS graph_nodes (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                node_type TEXT NOT NULL,
                title TEXT NOT NULL,
                is_project_root INTEGER NOT NULL DEFAULT 0,
                hierarchical_position_x REAL,
                hierarchical_position_y REAL,
                spatial_position_x REAL,
                spatial_position_y REAL,
                position_x REAL,
                position_y REAL,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS graph_edges (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                source_node_id TEXT NOT NULL,
                target_node_id TEXT NOT NULL,
                edge_type TEXT NOT NULL,
                annotation TEXT,
                strength REAL NOT NULL DEFAULT 1.0,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS project_preferences (
                project_id TEXT PRIMARY KEY,
                layout_mode TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_nodes_project ON graph_nodes(project_id);
            CREATE INDEX IF NOT EXISTS idx_edges_project ON graph_edges(project_id);
            CREATE INDEX IF NOT EXISTS idx_notebooks_project ON notebooks(project_id);
            CREATE INDEX IF NOT EXISTS idx_resources_project ON notebook_resources(project_id);
        """)
        conn.commit()

    # --- Projects, notebooks, resources ---

    def create_project(self, project: Project) -> Project:
        conn = self._get_conn()
        conn.execute(
            "INSERT INTO projects (id, title, hypothesis, paper_type, theme) VALUES (?, ?, ?, ?, ?)",
            (project.id, project.title, project.hypothesis, project.paper_type, project.theme),
        )
        conn.commit()
        return project

    def get_project(self, project_id: str) -> Project | None:
        row = self._get_conn().execute(
            "SELECT id, title, hypothesis, paper_type, theme FROM projects WHERE id = ?",
            (project_id,),
        ).fetchone()
        if row is None:
            return None
        return Project(**dict(row))

    def list_projects(self) -> list[Project]:
        cursor = self._get_conn().execute(
            "SELECT id, title, hypothesis, paper_type, theme FROM projects ORDER BY rowid"
        )
        return [Project(**dict(row)) for row in cursor]

    def add_notebook(self, notebook: NotebookRecord) -> NotebookRecord:
        conn = self._get_conn()
        conn.execute(
            "INSERT INTO notebooks (id, project_id, title, notebook_url, briefing) VALUES (?, ?, ?, ?, ?)",
            (notebook.id, notebook.project_id, notebook.title, notebook.notebook_url, notebook.briefing),
        )
        conn.commit()
        return notebook

    def list_notebooks(self, project_id: str) -> list[NotebookRecord]:
        cursor = self._get_conn().execute(
            "SELECT id, project_id, title, notebook_url, briefing FROM notebooks "
            "WHERE project_id = ? ORDER BY rowid",
            (project_id,),
        )
        return [NotebookRecord(**dict(row)) for row in cursor]

    def add_resource(self, resource: ResourceRecord) -> ResourceRecord:
        conn = self._get_conn()
        conn.execute(
            """
            INSERT INTO notebook_resources (id, project_id, notebook_id, title, source_url, file_type)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                resource.id,
                resource.project_id,
                resource.notebook_id,
                resource.title,
                resource.source_url,
                resource.file_type,
            ),
        )
        conn.commit()
        return resource

    def list_resources(self, project_id: str) -> list[ResourceRecord]:
        cursor = self._get_conn().execute(
            "SELECT id, project_id, notebook_id, title, source_url, file_type "
            "FROM notebook_resources WHERE project_id = ? ORDER BY rowid",
            (project_id,),
        )
        return [ResourceRecord(**dict(row)) for row in cursor]

    # --- Graph nodes ---

    def insert_node(self, node: Node) -> Node:
        data = node.model_dump(mode="json")
        extras = {k: v for k, v in data.items() if k not in _NODE_COLUMNS}
        hx, hy = _xy(data["hierarchical_position"])
        sx, sy = _xy(data["spatial_position"])
        px, py = _xy(data["position"])

        conn = self._get_conn()
        conn.execute(
            """
            INSERT INTO graph_nodes (
                id, project_id, node_type, title, is_project_root,
                hierarchical_position_x, hierarchical_position_y,
                spatial_position_x, spatial_position_y,
                position_x, position_y, data, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                node.id, node.project_id, node.type, node.title, int(node.is_project_root),
                hx, hy, sx, sy, px, py,
                json.dumps(extras),
                data["created_at"],
            ),
        )
        conn.commit()
        return node

    def _row_to_node(self, row: sqlite3.Row) -> Node:
        data = json.loads(row["data"])
        if not isinstance(data, dict):
            raise TypeError(f"data column holds {type(data).__name__}, expected object")
        data.update({
            "id": row["id"],
            "project_id": row["project_id"],
            "type": row["node_type"],
            "title": row["title"],
            "is_project_root": bool(row["is_project_root"]),
            "hierarchical_position": _position(
                row["hierarchical_position_x"], row["hierarchical_position_y"]
            ),
            "spatial_position": _position(row["spatial_position_x"], row["spatial_position_y"]),
            "position": _position(row["position_x"], row["position_y"]),
            "created_at": row["created_at"],
        })
        return parse_node(data)

    def list_nodes(self, project_id: str, tolerant: bool = True) -> list[Node]:
        """Read all nodes of a project in insertion order.

        Args:
            tolerant: If True, skip malformed rows with warnings.
                      If False, raise on first error (strict mode).
        """
        cursor = self._get_conn().execute(
            "SELECT * FROM graph_nodes WHERE project_id = ? ORDER BY rowid",
            (project_id,),
        )
        nodes: list[Node] = []
        for row in cursor:
            try:
                nodes.append(self._row_to_node(row))
            except (json.JSONDecodeError, ValidationError, KeyError, TypeError) as e:
                if not tolerant:
                    raise ValueError(f"Malformed node {row['id']}: {e}") from e
                logger.warning(f"Skipping malformed node {row['id']}: {e}")
        return nodes

    def update_node_position(self, node_id: str, position: Position, mode: LayoutMode) -> None:
        """Write a mode-specific position and mirror it to the legacy columns.

        Raises:
            ValueError: If the mode is unknown or the node has no row
        """
        if mode not in LAYOUT_MODES:
            raise ValueError(f"Unknown layout mode: {mode}")
        conn = self._get_conn()
        cursor = conn.execute(
            f"""
            UPDATE graph_nodes
            SET {mode}_position_x = ?, {mode}_position_y = ?, position_x = ?, position_y = ?
            WHERE id = ?
            """,
            (position.x, position.y, position.x, position.y, node_id),
        )
        conn.commit()
        if cursor.rowcount == 0:
            raise ValueError(f"Node {node_id} not found")

    # --- Graph edges ---

    def insert_edge(self, edge: Edge) -> Edge:
        conn = self._get_conn()
        conn.execute(
            """
            INSERT INTO graph_edges (
                id, project_id, source_node_id, target_node_id,
                edge_type, annotation, strength, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                edge.id,
                edge.project_id,
                edge.source_node_id,
                edge.target_node_id,
                edge.edge_type,
                edge.annotation,
                edge.strength,
                edge.created_at.isoformat(),
            ),
        )
        conn.commit()
        return edge

    def list_edges(self, project_id: str) -> list[Edge]:
        cursor = self._get_conn().execute(
            """
            SELECT id, project_id, source_node_id, target_node_id,
                   edge_type, annotation, strength, created_at
            FROM graph_edges WHERE project_id = ? ORDER BY rowid
            """,
            (project_id,),
        )
        edges = []
        for row in cursor:
            data = dict(row)
            if data["strength"] is None:
                data.pop("strength")
            edges.append(Edge(**data))
        return edges

    # --- Preferences ---

    def get_layout_mode(self, project_id: str) -> LayoutMode | None:
        row = self._get_conn().execute(
            "SELECT layout_mode FROM project_preferences WHERE project_id = ?",
            (project_id,),
        ).fetchone()
        if row is None or row["layout_mode"] not in LAYOUT_MODES:
            return None
        return row["layout_mode"]

    def set_layout_mode(self, project_id: str, mode: LayoutMode) -> None:
        if mode not in LAYOUT_MODES:
            raise ValueError(f"Unknown layout mode: {mode}")
        conn = self._get_conn()
        conn.execute(
            """
            INSERT INTO project_preferences (project_id, layout_mode) VALUES (?, ?)
            ON CONFLICT(project_id) DO UPDATE SET layout_mode = excluded.layout_mode
            """,
            (project_id, mode),
        )
        conn.commit()

    def close(self) -> None:
        """Close database connection, checkpointing the WAL first."""
        if self._conn is not None:
            self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            self._conn.close()
            self._conn = None
