"""Tests for render payload export."""

import json

from litmap.export import export_render_payload
from litmap.session import ProjectSession


def test_export_default_path(scenario_repo, temp_data_dir):
    session = ProjectSession(scenario_repo, "proj")

    path = export_render_payload(session, temp_data_dir)

    assert path.parent == temp_data_dir / "exports"
    assert path.name.startswith("proj-hierarchical-")
    data = json.loads(path.read_text())
    assert data["meta"]["project_id"] == "proj"
    assert data["meta"]["node_count"] == 4
    assert data["meta"]["edge_count"] == 3
    assert {n["id"] for n in data["nodes"]} == {"P", "NB1", "S1", "C1"}


def test_export_explicit_path(scenario_repo, temp_data_dir):
    session = ProjectSession(scenario_repo, "proj", mode="spatial")
    target = temp_data_dir / "out" / "map.json"

    path = export_render_payload(session, temp_data_dir, target)

    assert path == target
    data = json.loads(target.read_text())
    assert data["mode"] == "spatial"
    nodes = {n["id"]: n for n in data["nodes"]}
    assert nodes["P"]["position"] == {"x": 400.0, "y": 50.0}
