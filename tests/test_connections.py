"""Tests for the connection editor."""

import pytest

from conftest import make_concept

from litmap.connections import ConnectionEditor
from litmap.constants import EDGE_TYPES
from litmap.exceptions import InvalidEdgeTypeError, InvalidTransitionError


@pytest.fixture
def editor_and_edges():
    nodes = {n.id: n for n in (make_concept("A"), make_concept("B"))}
    added = []

    def add_edge(edge):
        added.append(edge)
        return edge

    return ConnectionEditor(nodes.get, add_edge, project_id="proj"), added


def test_propose_opens_draft(editor_and_edges):
    editor, added = editor_and_edges
    draft = editor.propose("A", "B")
    assert draft.source_node_id == "A"
    assert draft.target_node_id == "B"
    assert editor.draft is draft
    assert added == []


def test_self_connection_refused(editor_and_edges):
    editor, _ = editor_and_edges
    assert editor.propose("A", "A") is None
    assert editor.draft is None


def test_unknown_endpoint_refused(editor_and_edges):
    editor, _ = editor_and_edges
    assert editor.propose("A", "ghost") is None


def test_commit_writes_edge(editor_and_edges):
    editor, added = editor_and_edges
    draft = editor.propose("A", "B")

    edge = editor.commit(draft, "contradicts", "  different cohorts ")

    assert added == [edge]
    assert edge.edge_type == "contradicts"
    assert edge.annotation == "different cohorts"
    assert edge.strength == 1.0
    assert edge.project_id == "proj"
    assert edge.structural is False
    assert editor.draft is None


def test_blank_annotation_stored_as_none(editor_and_edges):
    editor, _ = editor_and_edges
    edge = editor.commit(editor.propose("A", "B"), "supports", "   ")
    assert edge.annotation is None


def test_every_vocabulary_label_accepted(editor_and_edges):
    editor, added = editor_and_edges
    for edge_type in EDGE_TYPES:
        editor.commit(editor.propose("A", "B"), edge_type)
    assert [e.edge_type for e in added] == list(EDGE_TYPES)


def test_unknown_type_rejected_and_draft_kept(editor_and_edges):
    editor, added = editor_and_edges
    draft = editor.propose("A", "B")

    with pytest.raises(InvalidEdgeTypeError):
        editor.commit(draft, "refutes")

    assert added == []
    assert editor.draft is draft


def test_cancel_writes_nothing(editor_and_edges):
    editor, added = editor_and_edges
    draft = editor.propose("A", "B")
    editor.cancel()

    assert editor.draft is None
    with pytest.raises(InvalidTransitionError):
        editor.commit(draft, "supports")
    assert added == []


def test_new_proposal_replaces_draft(editor_and_edges):
    editor, _ = editor_and_edges
    first = editor.propose("A", "B")
    second = editor.propose("B", "A")
    assert editor.draft is second
    with pytest.raises(InvalidTransitionError):
        editor.commit(first, "supports")
