"""
Layout Synthesizer

Assigns every node a 2D position in a fixed logical extent.

Phases:
    INIT -> CLUSTER_PLACEMENT -> (FORCE_SIMULATION | SEEDED_FALLBACK)
         -> FANOUT -> NORMALIZE -> DONE

    CLUSTER_PLACEMENT   one seed position per address cluster, drawn from the
                        injected RNG; spread grows with the cluster's mean
                        composite weight
    FORCE_SIMULATION    charge + link simulation on the cluster graph
                        (``ForceSimulation``, grid-approximated repulsion,
                        no centering term)
    SEEDED_FALLBACK     cluster count above ``node_cap``: seeds are final
    FANOUT              members of a multi-node cluster on a small circle
    NORMALIZE           center the bounding box on the origin and scale the
                        larger side to ``LOGICAL_EXTENT``

The simulation itself is deterministic given its initial positions, so a
fixed seed string and start timestamp reproduce a layout exactly.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Tuple

import networkx as nx
import numpy as np

from atlas.analysis.clusters import group_address_clusters
from atlas.core.artifacts import AtlasBounds, Position
from atlas.core.graph_state import GraphState

from .force import ForceSimulation

logger = logging.getLogger(__name__)

LOGICAL_EXTENT = 1000.0
SEED_SPREAD = 6.0
FANOUT_RADIUS = 6.0
MIN_ITERATIONS = 30
MAX_ITERATIONS = 100


class LayoutStrategy(str, Enum):
    FORCE = "force"
    SEEDED = "seeded"


class LayoutPhase(str, Enum):
    INIT = "init"
    CLUSTER_PLACEMENT = "cluster_placement"
    FORCE_SIMULATION = "force_simulation"
    SEEDED_FALLBACK = "seeded_fallback"
    FANOUT = "fanout"
    NORMALIZE = "normalize"
    DONE = "done"


@dataclass
class LayoutResult:
    positions: Dict[str, Position]
    bounds: AtlasBounds
    strategy: LayoutStrategy
    cluster_count: int = 0
    iterations: int = 0
    phases: List[LayoutPhase] = field(default_factory=list)


def make_layout_rng(seed: str, started_at_ms: int) -> random.Random:
    """Layout RNG for one build: same seed and start time, same layout."""
    return random.Random(f"{seed}:{started_at_ms}")


def iteration_budget(cluster_count: int) -> int:
    return min(MAX_ITERATIONS, MIN_ITERATIONS + int(math.floor(0.02 * cluster_count)))


def cluster_graph(state: GraphState, membership: Mapping[str, str]) -> nx.Graph:
    """
    One vertex per cluster, one edge per connected cluster pair.

    Edge weight is the sum of the underlying node-level edge weights; edges
    inside a cluster are skipped.
    """
    G = nx.Graph()
    G.add_nodes_from(dict.fromkeys(membership.values()))
    for edge in state.iter_edges():
        a, b = membership[edge.source], membership[edge.target]
        if a == b:
            continue
        if G.has_edge(a, b):
            G[a][b]["weight"] += edge.weight
        else:
            G.add_edge(a, b, weight=edge.weight)
    return G


def normalize_positions(raw: Mapping[str, Tuple[float, float]]) -> Tuple[Dict[str, Position], AtlasBounds]:
    """Center on the origin and scale the larger dimension to LOGICAL_EXTENT."""
    if not raw:
        return {}, AtlasBounds()

    ids = list(raw)
    coords = np.array([raw[i] for i in ids], dtype=float)
    lo = coords.min(axis=0)
    hi = coords.max(axis=0)
    center = (lo + hi) / 2.0
    width, height = hi - lo
    scale = LOGICAL_EXTENT / max(width or 1.0, height or 1.0)
    scaled = (coords - center) * scale

    positions = {node_id: Position(float(x), float(y)) for node_id, (x, y) in zip(ids, scaled)}
    xs = [p.x for p in positions.values()]
    ys = [p.y for p in positions.values()]
    bounds = AtlasBounds(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))
    return positions, bounds


class LayoutSynthesizer:
    """Cluster-level force layout with a seeded fallback for very large graphs."""

    def __init__(self, node_cap: int = 4200) -> None:
        self.node_cap = node_cap
        self._logger = logging.getLogger(__name__)

    def layout(
        self,
        state: GraphState,
        weights: Mapping[str, float],
        rng: random.Random,
    ) -> LayoutResult:
        phases: List[LayoutPhase] = [LayoutPhase.INIT]
        if not state.nodes:
            phases.append(LayoutPhase.DONE)
            return LayoutResult({}, AtlasBounds(), LayoutStrategy.SEEDED, phases=phases)

        clusters = group_address_clusters(state)
        membership = {member: key for key, members in clusters.items() for member in members}

        # Cluster placement
        phases.append(LayoutPhase.CLUSTER_PLACEMENT)
        seeds: Dict[str, Tuple[float, float]] = {}
        for key, members in clusters.items():
            avg_weight = sum(weights.get(m, 0.0) for m in members) / len(members)
            spread = LOGICAL_EXTENT * SEED_SPREAD * (1.0 + 2.0 * avg_weight)
            seeds[key] = ((rng.random() - 0.5) * spread, (rng.random() - 0.5) * spread)

        # Cluster centers
        iterations = 0
        if len(clusters) <= self.node_cap:
            phases.append(LayoutPhase.FORCE_SIMULATION)
            strategy = LayoutStrategy.FORCE
            centers, iterations = self._simulate(state, membership, seeds)
        else:
            phases.append(LayoutPhase.SEEDED_FALLBACK)
            strategy = LayoutStrategy.SEEDED
            centers = seeds
            self._logger.info(
                "Layout: %d clusters exceed node cap %d, using seeded positions",
                len(clusters), self.node_cap,
            )

        # Fan-out
        phases.append(LayoutPhase.FANOUT)
        raw: Dict[str, Tuple[float, float]] = {}
        for key, members in clusters.items():
            cx, cy = centers[key]
            if len(members) == 1:
                raw[members[0]] = (cx, cy)
                continue
            step = 2.0 * math.pi / len(members)
            for index, member in enumerate(members):
                angle = index * step
                raw[member] = (cx + FANOUT_RADIUS * math.cos(angle), cy + FANOUT_RADIUS * math.sin(angle))

        phases.append(LayoutPhase.NORMALIZE)
        positions, bounds = normalize_positions(raw)
        phases.append(LayoutPhase.DONE)

        return LayoutResult(
            positions=positions,
            bounds=bounds,
            strategy=strategy,
            cluster_count=len(clusters),
            iterations=iterations,
            phases=phases,
        )

    def _simulate(
        self,
        state: GraphState,
        membership: Mapping[str, str],
        seeds: Dict[str, Tuple[float, float]],
    ) -> Tuple[Dict[str, Tuple[float, float]], int]:
        count = len(seeds)
        if count < 2:
            return seeds, 0

        G = cluster_graph(state, membership)
        keys = list(seeds)
        index = {key: i for i, key in enumerate(keys)}
        edges = list(G.edges(data="weight"))
        links = np.array([(index[a], index[b]) for a, b, _ in edges], dtype=int).reshape(-1, 2)
        link_weights = np.array([w for _, _, w in edges], dtype=float)
        iterations = iteration_budget(count)

        simulation = ForceSimulation(
            np.array([seeds[key] for key in keys], dtype=float), links, link_weights
        )
        pos = simulation.run(iterations)
        self._logger.debug(
            "Force layout: %d clusters, %d cluster edges, %d iterations",
            count, G.number_of_edges(), iterations,
        )
        return {key: (float(x), float(y)) for key, (x, y) in zip(keys, pos)}, iterations
