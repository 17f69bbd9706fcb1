"""Shared test fixtures and helpers for litmap tests."""

import tempfile
from pathlib import Path

import pytest

from litmap.models import (
    ConceptNode,
    Edge,
    NotebookNode,
    Position,
    Project,
    ProjectNode,
    SourceNode,
)
from litmap.store import SqliteGraphRepository


class InMemoryRepository:
    """GraphRepository double that records every write.

    Set ``fail_writes`` to make every write raise, to exercise the
    best-effort path.
    """

    def __init__(self, project=None, nodes=None, edges=None, notebooks=None, resources=None):
        self.projects = {project.id: project} if project else {}
        self.nodes = list(nodes or [])
        self.edges = list(edges or [])
        self.notebooks = list(notebooks or [])
        self.resources = list(resources or [])
        self.modes: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.fail_writes = False

    def _write(self, *call):
        self.calls.append(call)
        if self.fail_writes:
            raise ConnectionError("store unreachable")

    def list_nodes(self, project_id):
        return [n.model_copy(deep=True) for n in self.nodes if n.project_id == project_id]

    def list_edges(self, project_id):
        return [e.model_copy() for e in self.edges if e.project_id == project_id]

    def insert_node(self, node):
        self._write("insert_node", node.id)
        self.nodes.append(node.model_copy(deep=True))
        return node

    def insert_edge(self, edge):
        self._write("insert_edge", edge.id)
        self.edges.append(edge.model_copy())
        return edge

    def update_node_position(self, node_id, position, mode):
        self._write("update_node_position", node_id, position.as_dict(), mode)
        for node in self.nodes:
            if node.id == node_id:
                node.set_position(mode, position)
                return
        raise ValueError(f"Node {node_id} not found")

    def get_project(self, project_id):
        return self.projects.get(project_id)

    def list_notebooks(self, project_id):
        return [nb for nb in self.notebooks if nb.project_id == project_id]

    def list_resources(self, project_id):
        return [r for r in self.resources if r.project_id == project_id]

    def get_layout_mode(self, project_id):
        return self.modes.get(project_id)

    def set_layout_mode(self, project_id, mode):
        self._write("set_layout_mode", project_id, mode)
        self.modes[project_id] = mode

    def write_calls(self, name):
        return [c for c in self.calls if c[0] == name]


# --- Fixtures ---


@pytest.fixture
def temp_data_dir():
    """Provide a temporary directory for the database and caches."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sqlite_repo(temp_data_dir):
    """Provide a fresh SQLite repository."""
    repo = SqliteGraphRepository(temp_data_dir / "litmap.db")
    yield repo
    repo.close()


@pytest.fixture
def scenario_nodes():
    """Root P, notebook NB1, source S1 and concept C1 in one notebook."""
    return [
        make_root("P"),
        make_notebook("NB1"),
        make_source("S1", "NB1"),
        make_concept("C1", "NB1"),
    ]


@pytest.fixture
def scenario_repo(scenario_nodes):
    """In-memory repository holding the scenario graph for project 'proj'."""
    return InMemoryRepository(
        project=Project(id="proj", title="Sleep and memory"),
        nodes=scenario_nodes,
    )


# --- Helper Functions (not fixtures) ---


def make_root(node_id="P", project_id="proj", title="Root"):
    return ProjectNode(id=node_id, project_id=project_id, title=title, is_project_root=True)


def make_notebook(node_id, project_id="proj", notebook_id=None, title=None):
    return NotebookNode(
        id=node_id, project_id=project_id, title=title or node_id, notebook_id=notebook_id
    )


def make_source(node_id, notebook_id=None, project_id="proj", title=None):
    return SourceNode(
        id=node_id, project_id=project_id, title=title or node_id, notebook_id=notebook_id
    )


def make_concept(node_id, notebook_id=None, project_id="proj", node_type="concept", **kwargs):
    return ConceptNode(
        id=node_id,
        project_id=project_id,
        title=kwargs.pop("title", node_id),
        type=node_type,
        notebook_id=notebook_id,
        **kwargs,
    )


def make_edge(edge_id, source, target, edge_type="relates_to", project_id="proj"):
    return Edge(
        id=edge_id,
        project_id=project_id,
        source_node_id=source,
        target_node_id=target,
        edge_type=edge_type,
    )


def pos(x, y):
    return Position(x=x, y=y)
