"""Tests for layout resolution in both modes."""

import json

from conftest import InMemoryRepository, make_concept, make_notebook, make_root, make_source, pos

from litmap.layout import LayoutResolver, ensure_root, hierarchical_defaults, resolve_layout, spatial_defaults
from litmap.models import Project
from litmap.positions import MemoryCache, PositionPersistenceAdapter
from litmap.sync import WriteQueue


def _by_id(positioned):
    return {p.id: p for p in positioned}


def _adapter(cache):
    return PositionPersistenceAdapter(InMemoryRepository(), cache, WriteQueue())


class TestEnsureRoot:

    def test_existing_root_kept(self, scenario_nodes):
        root, nodes = ensure_root(scenario_nodes, "proj")
        assert root.id == "P"
        assert nodes is scenario_nodes

    def test_synthetic_root_prepended(self):
        nodes = [make_concept("C1")]
        root, out = ensure_root(nodes, "42", Project(id="42", title="Sleep"))
        assert root.id == "project-42"
        assert root.title == "Sleep"
        assert [n.id for n in out] == ["project-42", "C1"]
        assert len(nodes) == 1


class TestHierarchicalDefaults:

    def test_scenario_bands(self, scenario_nodes):
        out = hierarchical_defaults(scenario_nodes, scenario_nodes[0])
        assert out["P"] == pos(600, 50)
        assert out["NB1"] == pos(150, 200)
        assert out["S1"] == pos(90, 350)
        assert out["C1"] == pos(90, 500)

    def test_notebooks_spread_along_band(self):
        root = make_root("P")
        nodes = [root, make_notebook("NB1"), make_notebook("NB2")]
        out = hierarchical_defaults(nodes, root)
        assert out["NB2"] == pos(470, 200)

    def test_sources_cluster_under_notebook(self):
        root = make_root("P")
        nodes = [
            root,
            make_notebook("NB1"),
            make_notebook("NB2"),
            make_source("S1", "NB2"),
            make_source("S2", "NB2"),
            make_source("S3"),
        ]
        out = hierarchical_defaults(nodes, root)
        assert out["S1"] == pos(410, 350)
        assert out["S2"] == pos(590, 350)
        # loose sources go right of the last notebook
        assert out["S3"] == pos(790, 350)

    def test_cited_nodes_stack_under_first_source(self, scenario_nodes):
        nodes = scenario_nodes + [make_concept("C2", "NB1")]
        out = hierarchical_defaults(nodes, nodes[0])
        assert out["C1"] == pos(90, 500)
        assert out["C2"] == pos(120, 620)

    def test_uncited_nodes_fill_grid_below_stacks(self, scenario_nodes):
        nodes = scenario_nodes + [make_concept(f"X{i}") for i in range(5)]
        out = hierarchical_defaults(nodes, nodes[0])
        assert out["X0"] == pos(150, 620)
        assert out["X3"] == pos(810, 620)
        assert out["X4"] == pos(150, 740)

    def test_uncited_types_skip_notebook_stack(self, scenario_nodes):
        nodes = scenario_nodes + [
            make_concept("G1", "NB1", node_type="gap"),
            make_concept("D1", "NB1", node_type="discrepancy"),
            make_concept("H1", "NB1", node_type="hypothesis"),
        ]
        out = hierarchical_defaults(nodes, nodes[0])
        assert out["C1"] == pos(90, 500)
        assert out["H1"] == pos(120, 620)
        assert out["G1"] == pos(150, 740)
        assert out["D1"] == pos(370, 740)

    def test_uncited_grid_starts_at_detail_band(self):
        root = make_root("P")
        out = hierarchical_defaults([root, make_concept("X")], root)
        assert out["X"] == pos(150, 500)


class TestSpatialDefaults:

    def test_scenario_grid(self, scenario_nodes):
        out = spatial_defaults(scenario_nodes, scenario_nodes[0])
        assert out["P"] == pos(400, 50)
        assert out["NB1"] == pos(100, 200)
        assert out["S1"] == pos(350, 200)
        assert out["C1"] == pos(600, 200)

    def test_wraps_after_four_columns(self):
        root = make_root("P")
        nodes = [root] + [make_concept(f"C{i}") for i in range(5)]
        out = spatial_defaults(nodes, root)
        assert out["C4"] == pos(100, 350)


class TestLayoutResolver:

    def test_every_node_positioned(self, scenario_nodes):
        for mode in ("hierarchical", "spatial"):
            positioned = resolve_layout(scenario_nodes, mode, "proj")
            assert [p.id for p in positioned] == ["P", "NB1", "S1", "C1"]
            assert all(p.position is not None for p in positioned)

    def test_manufactures_root_when_missing(self):
        positioned = resolve_layout([make_concept("C1")], "spatial", "42")
        ids = [p.id for p in positioned]
        assert ids == ["project-42", "C1"]
        assert _by_id(positioned)["project-42"].position == pos(400, 50)

    def test_empty_graph_gets_root_only(self):
        positioned = resolve_layout([], "hierarchical", "42")
        assert [p.id for p in positioned] == ["project-42"]

    def test_stored_position_wins(self, scenario_nodes):
        scenario_nodes[3].set_position("spatial", pos(7, 8))
        positioned = _by_id(resolve_layout(scenario_nodes, "spatial", "proj"))
        assert positioned["C1"].position == pos(7, 8)
        assert positioned["C1"].source == "stored"
        assert positioned["S1"].source == "computed"

    def test_other_mode_position_ignored(self, scenario_nodes):
        scenario_nodes[3].set_position("spatial", pos(7, 8))
        positioned = _by_id(resolve_layout(scenario_nodes, "hierarchical", "proj"))
        assert positioned["C1"].position == pos(90, 500)
        assert positioned["C1"].source == "computed"

    def test_cached_position_for_synthetic_node(self):
        cache = MemoryCache({"project-42-spatial-position": json.dumps({"x": 120, "y": 80})})
        resolver = LayoutResolver(_adapter(cache))

        positioned = _by_id(resolver.resolve([make_concept("C1")], "spatial", "42"))

        assert positioned["project-42"].position == pos(120, 80)
        assert positioned["project-42"].source == "cached"

    def test_cache_not_consulted_for_stored_nodes(self):
        cache = MemoryCache({"C1-spatial-position": json.dumps({"x": 1, "y": 1})})
        resolver = LayoutResolver(_adapter(cache))

        positioned = _by_id(resolver.resolve([make_root("P"), make_concept("C1")], "spatial", "proj"))

        assert positioned["C1"].source == "computed"

    def test_malformed_cache_falls_back_to_default(self):
        cache = MemoryCache({"project-42-spatial-position": "{not json"})
        resolver = LayoutResolver(_adapter(cache))

        positioned = _by_id(resolver.resolve([], "spatial", "42"))

        assert positioned["project-42"].position == pos(400, 50)
        assert positioned["project-42"].source == "computed"

    def test_resolving_does_not_mutate_nodes(self, scenario_nodes):
        before = [n.model_dump() for n in scenario_nodes]
        resolve_layout(scenario_nodes, "hierarchical", "proj")
        resolve_layout(scenario_nodes, "spatial", "proj")
        assert [n.model_dump() for n in scenario_nodes] == before

    def test_mode_round_trip_preserves_positions(self, scenario_nodes):
        scenario_nodes[3].set_position("hierarchical", pos(11, 22))
        scenario_nodes[3].set_position("spatial", pos(33, 44))

        first = _by_id(resolve_layout(scenario_nodes, "hierarchical", "proj"))
        resolve_layout(scenario_nodes, "spatial", "proj")
        again = _by_id(resolve_layout(scenario_nodes, "hierarchical", "proj"))

        assert {k: p.position for k, p in first.items()} == {k: p.position for k, p in again.items()}
        assert again["C1"].position == pos(11, 22)
