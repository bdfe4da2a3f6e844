"""
Unit Tests for atlas/layout/synthesizer.py
"""

import math

import pytest

from atlas.core.graph_state import GraphState
from atlas.core.models import InternalNode, NodeRecord, PeerReport
from atlas.layout.synthesizer import (
    LOGICAL_EXTENT,
    LayoutPhase,
    LayoutStrategy,
    LayoutSynthesizer,
    cluster_graph,
    iteration_budget,
    make_layout_rng,
    normalize_positions,
)


def _primary(node_id: str, ip: str = None) -> InternalNode:
    return InternalNode.primary(node_id, PeerReport(node=NodeRecord(ip=ip or node_id)))


@pytest.fixture
def network() -> GraphState:
    """Ring of 12 hosts plus a 3-node address cluster and one stub."""
    state = GraphState()
    hosts = [f"10.0.1.{i}" for i in range(12)]
    for host in hosts:
        state.add_node(_primary(host))
    for i, host in enumerate(hosts):
        state.add_edge(host, hosts[(i + 1) % len(hosts)])
    for i, port in enumerate((16127, 16137, 16147)):
        state.add_node(_primary(f"C{i}", f"10.0.9.9:{port}"))
        state.add_edge(f"C{i}", hosts[i])
    state.add_node(InternalNode.stub("203.0.113.5:16125"))
    state.add_edge("C0", "203.0.113.5:16125")
    return state


def _layout(state, node_cap=4200, seed="s", started=1_700_000_000_000):
    return LayoutSynthesizer(node_cap).layout(state, {}, make_layout_rng(seed, started))


class TestLayout:

    def test_every_node_inside_bounds(self, network):
        result = _layout(network)
        assert set(result.positions) == set(network.nodes)
        for position in result.positions.values():
            assert result.bounds.contains(position)

    def test_normalized_to_logical_extent(self, network):
        bounds = _layout(network).bounds
        width = bounds.max_x - bounds.min_x
        height = bounds.max_y - bounds.min_y
        assert max(width, height) == pytest.approx(LOGICAL_EXTENT)
        assert bounds.min_x == pytest.approx(-bounds.max_x)
        assert bounds.min_y == pytest.approx(-bounds.max_y)

    def test_force_strategy_under_cap(self, network):
        result = _layout(network)
        assert result.strategy == LayoutStrategy.FORCE
        assert result.cluster_count == 14
        assert result.iterations == iteration_budget(14)
        assert result.phases == [
            LayoutPhase.INIT,
            LayoutPhase.CLUSTER_PLACEMENT,
            LayoutPhase.FORCE_SIMULATION,
            LayoutPhase.FANOUT,
            LayoutPhase.NORMALIZE,
            LayoutPhase.DONE,
        ]

    def test_seeded_fallback_over_cap(self, network):
        result = _layout(network, node_cap=5)
        assert result.strategy == LayoutStrategy.SEEDED
        assert LayoutPhase.SEEDED_FALLBACK in result.phases
        assert LayoutPhase.FORCE_SIMULATION not in result.phases
        for position in result.positions.values():
            assert result.bounds.contains(position)

    def test_same_seed_and_timestamp_reproduce(self, network):
        first = _layout(network)
        second = _layout(network)
        assert first.positions == second.positions

    def test_timestamp_changes_layout(self, network):
        first = _layout(network, node_cap=0)
        second = _layout(network, node_cap=0, started=1_700_000_000_001)
        assert first.positions != second.positions

    def test_cluster_members_fan_out_around_center(self, network):
        result = _layout(network, node_cap=0)
        members = [result.positions[f"C{i}"] for i in range(3)]
        cx = sum(p.x for p in members) / 3
        cy = sum(p.y for p in members) / 3
        radii = [math.hypot(p.x - cx, p.y - cy) for p in members]
        assert radii[0] > 0
        assert radii[1] == pytest.approx(radii[0])
        assert radii[2] == pytest.approx(radii[0])

    def test_empty_graph(self):
        result = _layout(GraphState())
        assert result.positions == {}
        assert result.strategy == LayoutStrategy.SEEDED
        assert result.bounds.max_x == result.bounds.min_x == 0.0

    def test_single_node_at_origin(self):
        state = GraphState()
        state.add_node(_primary("10.0.0.1"))
        result = _layout(state)
        assert result.positions["10.0.0.1"].x == 0.0
        assert result.positions["10.0.0.1"].y == 0.0


class TestHelpers:

    def test_iteration_budget_capped(self):
        assert iteration_budget(0) == 30
        assert iteration_budget(1000) == 50
        assert iteration_budget(100_000) == 100

    def test_cluster_graph_sums_cross_cluster_weights(self):
        state = GraphState()
        state.add_node(_primary("A1", "10.0.0.1:1"))
        state.add_node(_primary("A2", "10.0.0.1:2"))
        state.add_node(_primary("B", "10.0.0.2"))
        state.add_edge("A1", "B")
        state.add_edge("A2", "B")
        state.add_edge("A1", "A2")
        membership = {"A1": "10.0.0.1", "A2": "10.0.0.1", "B": "10.0.0.2"}
        G = cluster_graph(state, membership)
        assert G.number_of_nodes() == 2
        assert G.number_of_edges() == 1
        assert G["10.0.0.1"]["10.0.0.2"]["weight"] == 2.0

    def test_normalize_degenerate_box(self):
        positions, bounds = normalize_positions({"a": (5.0, 5.0), "b": (5.0, 5.0)})
        assert positions["a"].x == 0.0
        assert bounds.min_x == bounds.max_x == 0.0
