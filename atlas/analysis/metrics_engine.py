"""
Metrics Engine

Computes per-node importance metrics on the trimmed graph using NetworkX.

Metrics:
    raw_degree          incident edges to primary nodes only (stub edges stay
                        in the graph for layout but are not counted)
    normalized_degree   raw degree averaged over the node's address cluster
    degree_centrality   normalized_degree / (N - 1), N = all nodes
    hub_threshold       90th-percentile centrality among primary nodes
                        (ascending sort, index floor(0.9 * count)), 0 if none
    composite_weight    mean of raw degree, centrality and bandwidth, each
                        divided by its maximum (maxima floored); in [0, 1]

The composite weight only biases layout spread.

Usage:
    engine = MetricsEngine()
    metrics = engine.analyze(state)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import networkx as nx
import numpy as np

from atlas.core.diagnostics import BuildDiagnostics
from atlas.core.graph_state import GraphState

from .clusters import group_address_clusters

DEGREE_FLOOR = 1.0
CENTRALITY_FLOOR = 0.001
BANDWIDTH_FLOOR = 1.0
HUB_PERCENTILE = 0.9


@dataclass
class NetworkMetrics:
    raw_degree: Dict[str, int] = field(default_factory=dict)
    normalized_degree: Dict[str, float] = field(default_factory=dict)
    centrality: Dict[str, float] = field(default_factory=dict)
    composite_weight: Dict[str, float] = field(default_factory=dict)
    hub_threshold: float = 0.0
    hubs: List[str] = field(default_factory=list)

    def is_hub(self, node_id: str) -> bool:
        return node_id in self._hub_set

    def __post_init__(self) -> None:
        self._hub_set = set(self.hubs)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def raw_degrees(state: GraphState) -> Dict[str, int]:
    """Primary-only degree per node, from the stub-free NetworkX view."""
    G = state.to_networkx(include_stub_edges=False)
    return {node_id: int(G.degree(node_id)) for node_id in state.nodes}


def cluster_normalized_degrees(
    degrees: Mapping[str, float],
    clusters: Mapping[str, Sequence[str]],
) -> Dict[str, float]:
    """Every member of a cluster gets the cluster's mean degree."""
    normalized: Dict[str, float] = {}
    for members in clusters.values():
        if len(members) == 1:
            normalized[members[0]] = float(degrees.get(members[0], 0))
            continue
        mean = sum(degrees.get(m, 0) for m in members) / len(members)
        for member in members:
            normalized[member] = mean
    return normalized


def degree_centrality(normalized: Mapping[str, float], node_count: int) -> Dict[str, float]:
    denominator = max(1, node_count - 1)
    return {node_id: value / denominator for node_id, value in normalized.items()}


def hub_threshold(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    index = min(len(ordered) - 1, int(math.floor(HUB_PERCENTILE * len(ordered))))
    return ordered[index]


def composite_weights(
    degrees: Mapping[str, float],
    centrality: Mapping[str, float],
    bandwidth: Mapping[str, float],
) -> Dict[str, float]:
    """Mean of the three quantities, each scaled by its floored maximum."""
    ids = list(degrees)
    if not ids:
        return {}
    deg = np.array([degrees[i] for i in ids], dtype=float)
    cen = np.array([centrality.get(i, 0.0) for i in ids], dtype=float)
    bw = np.array([bandwidth.get(i, 0.0) for i in ids], dtype=float)

    score = (
        deg / max(deg.max(), DEGREE_FLOOR)
        + cen / max(cen.max(), CENTRALITY_FLOOR)
        + bw / max(bw.max(), BANDWIDTH_FLOOR)
    ) / 3.0
    return {node_id: float(value) for node_id, value in zip(ids, score)}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class MetricsEngine:
    """Runs the metric helpers over a GraphState."""

    def __init__(self, diagnostics: Optional[BuildDiagnostics] = None) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else BuildDiagnostics()
        self._logger = logging.getLogger(__name__)

    def analyze(self, state: GraphState) -> NetworkMetrics:
        degrees = raw_degrees(state)
        clusters = group_address_clusters(state)
        normalized = cluster_normalized_degrees(degrees, clusters)
        centrality = degree_centrality(normalized, len(state.nodes))

        primary_ids = [node.id for node in state.primary_nodes()]
        threshold = hub_threshold([centrality[i] for i in primary_ids])
        hubs = [i for i in primary_ids if centrality[i] >= threshold]

        bandwidth = {
            node.id: node.bandwidth.total if node.bandwidth is not None else 0.0
            for node in state.nodes.values()
        }
        weights = composite_weights(degrees, centrality, bandwidth)

        self.diagnostics.gauge("address_clusters", len(clusters))
        self.diagnostics.gauge("hub_threshold", threshold)
        self._logger.debug(
            "Metrics: %d nodes, %d clusters, hub threshold %.4f, %d hubs",
            len(state.nodes), len(clusters), threshold, len(hubs),
        )

        return NetworkMetrics(
            raw_degree=degrees,
            normalized_degree=normalized,
            centrality=centrality,
            composite_weight=weights,
            hub_threshold=threshold,
            hubs=hubs,
        )

    @staticmethod
    def connected_components(state: GraphState) -> int:
        """Connected components of the full graph, stub edges included."""
        G = state.to_networkx()
        return nx.number_connected_components(G) if G.number_of_nodes() else 0
