"""Core data models for the literature map.

Uses Pydantic v2 for validation, ULID for sortable unique IDs.
Nodes are a tagged union keyed by ``type``; each variant carries only the
fields it uses.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel
from ulid import ULID


def generate_id() -> str:
    """Generate a ULID (sortable, unique identifier)."""
    return str(ULID())


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


LayoutMode = Literal["hierarchical", "spatial"]

NodeType = Literal[
    "project",      # research project root
    "notebook",     # a NotebookLM-style notebook
    "source",       # a resource attached to a notebook
    "concept",      # key concept extracted from sources
    "hypothesis",   # research question / hypothesis
    "gap",          # research gap
    "discrepancy",  # conflicting findings
    "publication",  # pivotal publication
    "insight",      # user synthesis over several concepts
]

ConceptType = Literal["concept", "hypothesis", "gap", "discrepancy", "publication"]


class _Model(BaseModel):
    """Shared config: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Position(_Model):
    """A 2-D coordinate on the rendering surface."""

    x: float
    y: float

    def as_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


class _NodeBase(_Model):
    id: str = Field(default_factory=generate_id)
    project_id: str = ""
    title: str
    content: str | None = None
    is_project_root: bool = False
    hierarchical_position: Position | None = None
    spatial_position: Position | None = None
    # Legacy single position, mirrors whichever mode last wrote.
    position: Position | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def position_for(self, mode: LayoutMode) -> Position | None:
        """Return the stored position for a layout mode, if any."""
        if mode == "hierarchical":
            return self.hierarchical_position
        return self.spatial_position

    def set_position(self, mode: LayoutMode, position: Position) -> None:
        """Store a mode-specific position and mirror it to the legacy field."""
        if mode == "hierarchical":
            self.hierarchical_position = position
        else:
            self.spatial_position = position
        self.position = position

    @property
    def label(self) -> str:
        return self.title or self.id

    def to_summary(self) -> dict:
        """Return a compact summary of this node."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "created_at": self.created_at.isoformat(),
        }


class ProjectNode(_NodeBase):
    """Root of a project's graph."""

    type: Literal["project"] = "project"
    hypothesis: str | None = None
    paper_type: str | None = None
    theme: str | None = None


class NotebookNode(_NodeBase):
    """A notebook in the project.

    ``notebook_id`` is the notebook record this node stands for. When it is
    missing the node id doubles as the notebook identity.
    """

    type: Literal["notebook"] = "notebook"
    notebook_id: str | None = None
    notebook_url: str | None = None
    briefing: str | None = None

    @property
    def notebook_key(self) -> str:
        return self.notebook_id or self.id


class SourceNode(_NodeBase):
    """A resource (paper, article, dataset) attached to a notebook."""

    type: Literal["source"] = "source"
    notebook_id: str | None = None
    source_url: str | None = None
    file_type: str | None = None


class ConceptNode(_NodeBase):
    """An extracted concept-like node (concept, hypothesis, gap, ...)."""

    type: ConceptType = "concept"
    notebook_id: str | None = None
    concept_source: str | None = None
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    extraction_method: str | None = None
    size: Literal["medium", "large"] = "medium"


class InsightNode(_NodeBase):
    """A synthesis created by aggregating concept-like nodes."""

    type: Literal["insight"] = "insight"
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    source_concept_ids: list[str] = Field(default_factory=list)


Node = Annotated[
    Union[ProjectNode, NotebookNode, SourceNode, ConceptNode, InsightNode],
    Field(discriminator="type"),
]

_node_adapter: TypeAdapter = TypeAdapter(Node)


def parse_node(data: dict) -> Node:
    """Validate a stored record into the matching node variant.

    Raises:
        pydantic.ValidationError: If ``type`` is unknown or fields are invalid
    """
    return _node_adapter.validate_python(data)


def is_concept_like(node) -> bool:
    """Check whether a node can be aggregated into an insight."""
    return isinstance(node, ConceptNode)


class Edge(_Model):
    """A directed, typed relationship between two nodes.

    ``structural`` marks edges derived from containment. They only live in
    memory and cannot be deleted or re-annotated.
    """

    id: str = Field(default_factory=generate_id)
    project_id: str = ""
    source_node_id: str
    target_node_id: str
    edge_type: str  # see constants.EDGE_TYPES; open to future values
    annotation: str | None = None
    strength: float = 1.0
    structural: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    def to_summary(self) -> dict:
        """Return a compact summary of this edge."""
        return {
            "id": self.id,
            "source": self.source_node_id,
            "target": self.target_node_id,
            "type": self.edge_type,
            "structural": self.structural,
        }


class Project(_Model):
    """Project metadata, used to label a synthetic root."""

    id: str = Field(default_factory=generate_id)
    title: str
    hypothesis: str | None = None
    paper_type: str = "literature_review"
    theme: str | None = None


class NotebookRecord(_Model):
    """A notebook row from the external store."""

    id: str = Field(default_factory=generate_id)
    project_id: str
    title: str
    notebook_url: str | None = None
    briefing: str | None = None


class ResourceRecord(_Model):
    """A notebook resource row from the external store."""

    id: str = Field(default_factory=generate_id)
    project_id: str
    notebook_id: str
    title: str
    source_url: str | None = None
    file_type: str | None = None
