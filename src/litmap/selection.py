"""Selection and aggregation state machine.

States:
- idle
- multi-selecting-concepts: shift-clicked concepts staged for an insight
- insight-draft-open: the staged concepts copied into an insight draft
- tracing-insights: ctrl-clicked insights whose provenance is highlighted

All interaction state lives in one InteractionState record owned by the
project view; transitions go through SelectionController only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Literal

from .exceptions import EmptySelectionError, InvalidTransitionError, LitmapError
from .models import InsightNode, Node, is_concept_like
from .provenance import HighlightSet

logger = logging.getLogger(__name__)

InteractionMode = Literal[
    "idle",
    "multi-selecting-concepts",
    "insight-draft-open",
    "tracing-insights",
]

ClickAction = Literal["toggle-concept", "toggle-trace", "open-detail", "ignored"]


@dataclass
class InsightDraft:
    """An insight being written from a fixed set of concepts."""

    source_concept_ids: list[str]
    title: str = ""
    content: str | None = None


@dataclass
class InteractionState:
    """Ephemeral per-view interaction state. Never persisted."""

    mode: InteractionMode = "idle"
    multi_selected: list[str] = field(default_factory=list)  # ordered set
    traced_insights: list[str] = field(default_factory=list)  # ordered set
    draft: InsightDraft | None = None
    highlight: HighlightSet = field(default_factory=HighlightSet)
    detail_node_id: str | None = None


def normalize_modifiers(modifiers: Iterable[str] | None) -> set[str]:
    """Lower-case modifier names; ``meta`` (cmd) counts as ``ctrl``."""
    result = {m.lower() for m in (modifiers or ())}
    if "meta" in result:
        result.add("ctrl")
    return result


class SelectionController:
    """Routes clicks and drives insight aggregation and provenance tracing.

    Uses callable accessors so it always reads the current graph:
    - get_node: node lookup by id
    - trace: highlight set for a list of insight ids
    - create_insight: persists an insight from (concept ids, title, content,
      confidence) and returns the new node
    """

    def __init__(
        self,
        get_node: Callable[[str], Node | None],
        trace: Callable[[list[str]], HighlightSet],
        create_insight: Callable[[list[str], str, str | None, float | None], InsightNode],
        state: InteractionState | None = None,
    ):
        self._get_node = get_node
        self._trace = trace
        self._create_insight = create_insight
        self.state = state or InteractionState()

    # --- Click routing ---

    def handle_click(self, node_id: str, modifiers: Iterable[str] | None = None) -> ClickAction:
        """Route a click to exactly one behavior based on the held modifier."""
        mods = normalize_modifiers(modifiers)
        if "shift" in mods:
            return "toggle-concept" if self.toggle_concept(node_id) else "ignored"
        if "ctrl" in mods:
            return "toggle-trace" if self.toggle_trace(node_id) else "ignored"
        return "open-detail" if self.open_detail(node_id) else "ignored"

    # --- Concept multi-select ---

    def toggle_concept(self, node_id: str) -> bool:
        """Toggle a concept-like node in the selection. Returns False if ignored."""
        if self.state.mode not in ("idle", "multi-selecting-concepts"):
            logger.debug(f"Ignoring concept toggle while {self.state.mode}")
            return False
        node = self._get_node(node_id)
        if node is None or not is_concept_like(node):
            return False

        selected = self.state.multi_selected
        if node_id in selected:
            selected.remove(node_id)
        else:
            selected.append(node_id)
        self.state.mode = "multi-selecting-concepts" if selected else "idle"
        return True

    def clear_selection(self) -> None:
        if self.state.mode == "insight-draft-open":
            raise InvalidTransitionError(self.state.mode, "clear the selection")
        self.state.multi_selected.clear()
        if self.state.mode == "multi-selecting-concepts":
            self.state.mode = "idle"

    # --- Insight draft ---

    def open_insight_draft(self) -> InsightDraft:
        """Copy the live selection into a new insight draft.

        The selection itself stays in place until the draft is saved or
        cancelled.
        """
        if not self.state.multi_selected:
            raise EmptySelectionError()
        if self.state.mode != "multi-selecting-concepts":
            raise InvalidTransitionError(self.state.mode, "open an insight draft")
        self.state.draft = InsightDraft(source_concept_ids=list(self.state.multi_selected))
        self.state.mode = "insight-draft-open"
        return self.state.draft

    def save_insight(
        self,
        title: str,
        content: str | None = None,
        confidence_score: float | None = None,
    ) -> InsightNode:
        """Create the insight, then clear both the draft and the selection."""
        draft = self.state.draft
        if self.state.mode != "insight-draft-open" or draft is None:
            raise InvalidTransitionError(self.state.mode, "save an insight")
        if not draft.source_concept_ids:
            raise EmptySelectionError()
        if not title.strip():
            raise LitmapError("Insight title is required")

        draft.title = title
        draft.content = content
        insight = self._create_insight(
            list(draft.source_concept_ids), title, content, confidence_score
        )

        self.state.draft = None
        self.state.multi_selected.clear()
        self.state.mode = "idle"
        return insight

    def cancel_insight_draft(self) -> None:
        """Discard the draft; the originating selection stays live."""
        if self.state.mode != "insight-draft-open":
            raise InvalidTransitionError(self.state.mode, "cancel an insight draft")
        self.state.draft = None
        self.state.mode = "multi-selecting-concepts" if self.state.multi_selected else "idle"

    # --- Provenance tracing ---

    def toggle_trace(self, node_id: str) -> bool:
        """Toggle an insight in the trace set and recompute the highlight."""
        if self.state.mode not in ("idle", "tracing-insights"):
            logger.debug(f"Ignoring trace toggle while {self.state.mode}")
            return False
        node = self._get_node(node_id)
        if node is None or node.type != "insight":
            return False

        traced = self.state.traced_insights
        if node_id in traced:
            traced.remove(node_id)
        else:
            traced.append(node_id)

        if traced:
            self.state.mode = "tracing-insights"
            self.refresh_highlight()
        else:
            self.state.mode = "idle"
            self.state.highlight = HighlightSet()
        return True

    def refresh_highlight(self) -> HighlightSet:
        """Recompute the highlight set over the whole trace set."""
        traced = self.state.traced_insights
        self.state.highlight = self._trace(list(traced)) if traced else HighlightSet()
        return self.state.highlight

    def clear_traces(self) -> None:
        self.state.traced_insights.clear()
        self.state.highlight = HighlightSet()
        if self.state.mode == "tracing-insights":
            self.state.mode = "idle"

    # --- Detail view ---

    def open_detail(self, node_id: str) -> bool:
        """Show a node read-only; clicking the open node again closes it."""
        if self._get_node(node_id) is None:
            return False
        if self.state.detail_node_id == node_id:
            self.state.detail_node_id = None
        else:
            self.state.detail_node_id = node_id
        return True

    def close_detail(self) -> None:
        self.state.detail_node_id = None
