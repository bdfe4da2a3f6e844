"""
Constraint Enforcer

Greedy trimming policies applied in a fixed order, because each step changes
what the next one sees:

    1. stub cap             (0 removes every stub)
    2. per-node degree cap  (0 = unlimited)
    3. global edge cap      (0 = unlimited)
    4. isolated-stub pruning

Removal priority for edges: edges to stubs go before primary-primary links,
then lower weight before higher weight. The edge key breaks remaining ties so
the result does not depend on set iteration order.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from atlas.core.diagnostics import BuildDiagnostics
from atlas.core.graph_state import GraphState
from atlas.core.models import InternalEdge

logger = logging.getLogger(__name__)


def _global_priority(edge: InternalEdge) -> Tuple[int, float, str]:
    return (0 if edge.stub_edge else 1, edge.weight, edge.key)


class ConstraintEnforcer:
    """Applies stub, degree and edge caps to a GraphState in place."""

    def __init__(
        self,
        max_stub_nodes: int = 6000,
        max_node_degree: int = 64,
        max_edges: int = 90000,
        diagnostics: Optional[BuildDiagnostics] = None,
    ) -> None:
        self.max_stub_nodes = max_stub_nodes
        self.max_node_degree = max_node_degree
        self.max_edges = max_edges
        self.diagnostics = diagnostics if diagnostics is not None else BuildDiagnostics()

    def apply(self, state: GraphState) -> None:
        self.diagnostics.record_stage("assembled", len(state.nodes), len(state.edges))

        self.enforce_stub_cap(state)
        self.diagnostics.record_stage("stub_cap", len(state.nodes), len(state.edges))

        self.enforce_max_degree(state)
        self.diagnostics.record_stage("max_degree", len(state.nodes), len(state.edges))

        self.enforce_edge_cap(state)
        self.diagnostics.record_stage("edge_cap", len(state.nodes), len(state.edges))

        self.drop_isolated_stubs(state)
        self.diagnostics.record_stage("isolated_stubs", len(state.nodes), len(state.edges))

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    def enforce_stub_cap(self, state: GraphState) -> int:
        """Keep at most ``max_stub_nodes`` stubs, preferring the best connected."""
        stubs = state.stub_nodes()
        if self.max_stub_nodes <= 0:
            excess = stubs
        elif len(stubs) > self.max_stub_nodes:
            # stable sort: equal degrees keep creation order
            ranked = sorted(stubs, key=lambda node: state.degree(node.id), reverse=True)
            excess = ranked[self.max_stub_nodes:]
        else:
            return 0

        for node in excess:
            state.remove_node(node.id)
        self.diagnostics.increment("stubs_capped", len(excess))
        return len(excess)

    def enforce_max_degree(self, state: GraphState) -> int:
        if self.max_node_degree <= 0:
            return 0

        removed = 0
        for node_id in list(state.nodes):
            overflow = state.degree(node_id) - self.max_node_degree
            if overflow <= 0:
                continue
            # Priorities depend only on the far endpoint and the edge weight,
            # so one sort yields the same sequence as repeated minimum removal.
            candidates: List[InternalEdge] = sorted(
                state.incident_edges(node_id),
                key=lambda edge: (
                    0 if state.nodes[edge.other(node_id)].is_stub else 1,
                    edge.weight,
                    edge.key,
                ),
            )
            for edge in candidates[:overflow]:
                if state.remove_edge(edge.key):
                    removed += 1

        self.diagnostics.increment("degree_trimmed_edges", removed)
        return removed

    def enforce_edge_cap(self, state: GraphState) -> int:
        if self.max_edges <= 0 or len(state.edges) <= self.max_edges:
            return 0

        overflow = len(state.edges) - self.max_edges
        ranked = sorted(state.iter_edges(), key=_global_priority)
        for edge in ranked[:overflow]:
            state.remove_edge(edge.key)

        self.diagnostics.increment("edge_cap_trimmed_edges", overflow)
        return overflow

    def drop_isolated_stubs(self, state: GraphState) -> int:
        isolated = [node.id for node in state.stub_nodes() if state.degree(node.id) == 0]
        for node_id in isolated:
            state.remove_node(node_id)
        self.diagnostics.increment("isolated_stubs_dropped", len(isolated))
        return len(isolated)
