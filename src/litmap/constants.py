"""Shared constants: vocabularies, id conventions, layout geometry."""

# --- Vocabularies ---

NODE_TYPES = (
    "project",
    "notebook",
    "source",
    "concept",
    "hypothesis",
    "gap",
    "discrepancy",
    "publication",
    "insight",
)

CONCEPT_TYPES = ("concept", "hypothesis", "gap", "discrepancy", "publication")

# Concept-like types that sources in the same notebook cite
CITED_TYPES = ("concept", "hypothesis")

# Relationship labels a user may pick when drawing a connection
EDGE_TYPES = (
    "supports",
    "contradicts",
    "relates_to",
    "builds_on",
    "questions",
    "includes",
    "contains",
    "cites",
)

# Structural edges derived from containment
EDGE_INCLUDES = "includes"  # root -> notebook
EDGE_CONTAINS = "contains"  # notebook -> source
EDGE_CITES = "cites"        # source -> concept
EDGE_SUPPORTS = "supports"  # concept -> insight

DEFAULT_EDGE_STRENGTH = 1.0

LAYOUT_MODES = ("hierarchical", "spatial")
DEFAULT_LAYOUT_MODE = "hierarchical"

# --- Synthetic ids ---

SYNTHETIC_PROJECT_PREFIX = "project-"
SYNTHETIC_NOTEBOOK_PREFIX = "notebook-"
SYNTHETIC_SOURCE_PREFIX = "source-"
SYNTHETIC_PREFIXES = (
    SYNTHETIC_PROJECT_PREFIX,
    SYNTHETIC_NOTEBOOK_PREFIX,
    SYNTHETIC_SOURCE_PREFIX,
)

# Client cache key for a synthetic node's position
POSITION_CACHE_KEY = "{node_id}-{mode}-position"

# --- Hierarchical layout geometry ---

HIERARCHICAL_ROOT_X = 600.0
HIERARCHICAL_ROOT_Y = 50.0

NOTEBOOK_BAND_Y = 200.0
NOTEBOOK_START_X = 150.0
NOTEBOOK_SPACING_X = 320.0

SOURCE_BAND_Y = 350.0
SOURCE_CLUSTER_OFFSET_X = -60.0  # pull sources left so they sit under their notebook
SOURCE_SPACING_X = 180.0

DETAIL_BAND_Y = 500.0
DETAIL_START_X = 150.0
DETAIL_COLUMNS = 4
DETAIL_SPACING_X = 220.0
DETAIL_SPACING_Y = 120.0
CITE_OFFSET_X = 30.0  # horizontal nudge per node stacked under the same source

# --- Spatial layout geometry ---

SPATIAL_ROOT_X = 400.0
SPATIAL_ROOT_Y = 50.0
SPATIAL_START_X = 100.0
SPATIAL_START_Y = 200.0
SPATIAL_COLUMNS = 4
SPATIAL_SPACING_X = 250.0
SPATIAL_SPACING_Y = 150.0
