"""
Unit Tests for atlas/topology/constraints.py
"""

import pytest

from atlas.core.graph_state import GraphState
from atlas.core.models import InternalNode, NodeRecord, PeerReport
from atlas.topology.constraints import ConstraintEnforcer

from tests.conftest import assert_graph_consistent


def _primary(node_id: str) -> InternalNode:
    return InternalNode.primary(node_id, PeerReport(node=NodeRecord(ip=node_id)))


def star(primaries: int, stubs: int) -> GraphState:
    """Hub 'h' linked to p0..pN and s0..sM."""
    state = GraphState()
    state.add_node(_primary("h"))
    for i in range(primaries):
        state.add_node(_primary(f"p{i}"))
        state.add_edge("h", f"p{i}")
    for i in range(stubs):
        state.add_node(InternalNode.stub(f"s{i}"))
        state.add_edge("h", f"s{i}")
    return state


class TestStubCap:

    def test_zero_removes_all_stubs(self):
        state = star(2, 3)
        ConstraintEnforcer(max_stub_nodes=0, max_node_degree=0, max_edges=0).apply(state)
        assert not state.stub_nodes()
        assert len(state.edges) == 2
        assert_graph_consistent(state)

    def test_keeps_best_connected_stubs(self):
        state = star(0, 3)
        state.add_node(_primary("q"))
        state.add_edge("q", "s2")
        enforcer = ConstraintEnforcer(max_stub_nodes=1, max_node_degree=0, max_edges=0)
        assert enforcer.enforce_stub_cap(state) == 2
        assert [n.id for n in state.stub_nodes()] == ["s2"]
        assert_graph_consistent(state)

    def test_under_cap_untouched(self):
        state = star(1, 2)
        assert ConstraintEnforcer(max_stub_nodes=5).enforce_stub_cap(state) == 0
        assert len(state.stub_nodes()) == 2


class TestDegreeCap:

    def test_stub_edges_removed_first(self):
        state = star(3, 3)
        ConstraintEnforcer(max_stub_nodes=100, max_node_degree=3, max_edges=0).apply(state)
        assert state.degree("h") == 3
        # primary links survive, every stub lost its only edge and was pruned
        assert {e.other("h") for e in state.incident_edges("h")} == {"p0", "p1", "p2"}
        assert not state.stub_nodes()
        assert_graph_consistent(state)

    def test_lower_weight_removed_first(self):
        state = GraphState()
        for node_id in ("h", "a", "b", "c"):
            state.add_node(_primary(node_id))
        state.add_edge("h", "a", weight=3.0)
        state.add_edge("h", "b", weight=1.0)
        state.add_edge("h", "c", weight=2.0)
        ConstraintEnforcer(max_node_degree=2, max_edges=0).enforce_max_degree(state)
        assert {e.other("h") for e in state.incident_edges("h")} == {"a", "c"}

    @pytest.mark.parametrize("cap", [1, 2, 5])
    def test_invariant_holds(self, cap):
        state = GraphState()
        ids = [f"n{i}" for i in range(12)]
        for node_id in ids:
            state.add_node(_primary(node_id))
        for i, a in enumerate(ids):
            for b in ids[i + 1:]:
                state.add_edge(a, b)
        ConstraintEnforcer(max_node_degree=cap, max_edges=0).apply(state)
        assert all(state.degree(n) <= cap for n in state.nodes)
        assert_graph_consistent(state)

    def test_zero_means_unlimited(self):
        state = star(10, 10)
        ConstraintEnforcer(max_stub_nodes=100, max_node_degree=0, max_edges=0).apply(state)
        assert state.degree("h") == 20


class TestEdgeCap:

    def test_global_cap_prefers_primary_links(self):
        state = star(4, 4)
        ConstraintEnforcer(max_stub_nodes=100, max_node_degree=0, max_edges=5).apply(state)
        assert len(state.edges) == 5
        assert len(state.stub_nodes()) == 1
        assert sum(1 for e in state.iter_edges() if not e.stub_edge) == 4
        assert_graph_consistent(state)

    def test_zero_means_unlimited(self):
        state = star(4, 4)
        assert ConstraintEnforcer(max_edges=0).enforce_edge_cap(state) == 0
        assert len(state.edges) == 8


class TestIsolatedStubs:

    def test_isolated_stub_dropped_isolated_primary_kept(self):
        state = star(1, 1)
        state.add_node(InternalNode.stub("lonely"))
        state.add_node(_primary("alone"))
        assert ConstraintEnforcer().drop_isolated_stubs(state) == 1
        assert "lonely" not in state
        assert "alone" in state

    def test_stage_snapshots_recorded(self):
        enforcer = ConstraintEnforcer(max_stub_nodes=0, max_node_degree=0, max_edges=0)
        enforcer.apply(star(2, 2))
        stages = [s.stage for s in enforcer.diagnostics.stages]
        assert stages == ["assembled", "stub_cap", "max_degree", "edge_cap", "isolated_stubs"]
        assert enforcer.diagnostics.stages[0].edges == 4
        assert enforcer.diagnostics.stages[1].edges == 2
