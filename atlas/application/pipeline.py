"""
Build Pipeline

Peer reports -> AtlasBuild, as one sequential in-memory pass:

    GraphAssembler -> ConstraintEnforcer -> MetricsEngine -> LayoutSynthesizer

The pipeline reads no environment and keeps no state between calls. The
only inputs besides the reports are the BuildConfig, the build start time and
the RNG used for ambiguous-peer tie breaks; fixing all three reproduces a
build exactly.

Usage:
    outcome = build_atlas(reports, BuildConfig(), started_at_ms=1700000000000)
    outcome.build.to_dict()
"""

from __future__ import annotations

import logging
import random
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from atlas.analysis.metrics_engine import MetricsEngine, NetworkMetrics
from atlas.config.settings import BuildConfig
from atlas.core.artifacts import (
    AtlasBuild,
    AtlasEdge,
    AtlasMeta,
    AtlasNode,
    NodeMetricsView,
    Position,
)
from atlas.core.diagnostics import BuildDiagnostics
from atlas.core.graph_state import GraphState
from atlas.core.models import InternalNode, NodeStatus, NodeTier, PeerReport
from atlas.core.net import HostPort, split_host_port
from atlas.layout.synthesizer import LayoutResult, LayoutSynthesizer, make_layout_rng
from atlas.topology.assembler import AssemblyResult, GraphAssembler
from atlas.topology.constraints import ConstraintEnforcer

logger = logging.getLogger(__name__)


@dataclass
class BuildOutcome:
    build: AtlasBuild
    diagnostics: BuildDiagnostics


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_timestamp(ms: int) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    moment = datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms % 1000:03d}Z"


def make_build_id(completed_at_ms: int, node_count: int) -> str:
    return f"{np.base_repr(completed_at_ms, 36).lower()}-{node_count}"


def build_atlas(
    reports: Sequence[PeerReport],
    config: Optional[BuildConfig] = None,
    started_at_ms: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> BuildOutcome:
    """Run the full pipeline over already-fetched peer reports."""
    config = config or BuildConfig()
    started = started_at_ms if started_at_ms is not None else now_ms()
    rng = rng if rng is not None else random.Random()
    diagnostics = BuildDiagnostics()
    clock = time.perf_counter()

    assembler = GraphAssembler(
        default_rpc_port=config.default_rpc_port,
        include_external_peers=config.include_external_peers,
        rng=rng,
        diagnostics=diagnostics,
    )
    assembled = assembler.assemble(reports)
    state = assembled.state
    raw_edges = len(state.edges)
    logger.info(
        "Assembled graph: %d nodes (%d stubs), %d edges from %d reports",
        len(state.nodes), len(state.stub_nodes()), raw_edges, len(reports),
    )

    ConstraintEnforcer(
        max_stub_nodes=config.max_stub_nodes,
        max_node_degree=config.max_node_degree,
        max_edges=config.max_edges,
        diagnostics=diagnostics,
    ).apply(state)
    logger.info(
        "Constraints applied: %d nodes, %d edges (%d stubs kept)",
        len(state.nodes), len(state.edges), len(state.stub_nodes()),
    )

    metrics = MetricsEngine(diagnostics).analyze(state)
    logger.info(
        "Metrics: hub threshold %.4f, %d hubs",
        metrics.hub_threshold, len(metrics.hubs),
    )

    layout = LayoutSynthesizer(config.layout_node_cap).layout(
        state, metrics.composite_weight, make_layout_rng(config.layout_seed, started)
    )
    diagnostics.gauge("layout_clusters", layout.cluster_count)
    diagnostics.gauge("layout_iterations", layout.iterations)
    logger.info(
        "Layout: %s strategy over %d clusters", layout.strategy.value, layout.cluster_count,
    )
    _log_top_nodes(assembled, metrics)

    elapsed_ms = int(round((time.perf_counter() - clock) * 1000))
    completed = started + elapsed_ms

    nodes = [
        _atlas_node(node, metrics, assembled, layout, config)
        for node in state.nodes.values()
    ]
    edges = [
        AtlasEdge(id=edge.key, source=edge.source, target=edge.target,
                  weight=edge.weight, kind=edge.kind.value)
        for edge in state.iter_edges()
    ]

    build = AtlasBuild(
        build_id=make_build_id(completed, len(nodes)),
        started_at=iso_timestamp(started),
        completed_at=iso_timestamp(completed),
        duration_ms=elapsed_ms,
        nodes=nodes,
        edges=edges,
        bounds=layout.bounds,
        stats=_build_stats(state, len(reports), raw_edges, metrics, config, diagnostics, elapsed_ms),
        meta=AtlasMeta(
            axis=layout.bounds,
            hub_threshold=metrics.hub_threshold,
            layout_strategy=layout.strategy.value,
            source=config.source,
        ),
        config=config.to_dict(),
    )
    logger.info(
        "Build %s complete: %d nodes, %d edges in %d ms",
        build.build_id, len(nodes), len(edges), elapsed_ms,
    )
    return BuildOutcome(build=build, diagnostics=diagnostics)


# ---------------------------------------------------------------------------
# Output assembly
# ---------------------------------------------------------------------------

def _node_meta(node: InternalNode, config: BuildConfig) -> Dict[str, Any]:
    meta: Dict[str, Any] = {
        "tier": node.tier.value,
        "status": node.status.value,
        "isPrimary": not node.is_stub,
        "isStub": node.is_stub,
    }
    record = node.record
    if record is None:
        return meta

    meta.update({
        "ip": record.ip,
        "collateral": record.collateral,
        "paymentAddress": record.payment_address,
        "lastConfirmedHeight": record.last_confirmed_height,
        "confirmedHeight": record.confirmed_height,
    })
    address = split_host_port(record.ip)
    if address.valid:
        endpoint = address.with_default_port(config.default_rpc_port)
        meta["rpcEndpoint"] = f"{config.rpc_protocol}://{endpoint}"
        frontend = HostPort(endpoint.host, max(1, endpoint.port - 1))
        meta["frontendUrl"] = f"http://{frontend}"
    if node.bandwidth is not None:
        meta["bandwidth"] = node.bandwidth.to_dict()
    return meta


def _atlas_node(
    node: InternalNode,
    metrics: NetworkMetrics,
    assembled: AssemblyResult,
    layout: LayoutResult,
    config: BuildConfig,
) -> AtlasNode:
    outgoing = assembled.outgoing_counts.get(node.id, 0)
    incoming = assembled.incoming_counts.get(node.id, 0)
    return AtlasNode(
        id=node.id,
        label=node.id,
        tier=node.tier.value,
        kind=node.kind.value,
        status=node.status.value,
        is_arcane=node.arcane is True,
        is_hub=metrics.is_hub(node.id),
        metrics=NodeMetricsView(
            degree=metrics.normalized_degree.get(node.id, 0.0),
            degree_centrality=metrics.centrality.get(node.id, 0.0),
            connection_count=outgoing + incoming,
            incoming_peers=incoming,
            outgoing_peers=outgoing,
        ),
        position=layout.positions.get(node.id, Position(0.0, 0.0)),
        meta=_node_meta(node, config),
    )


def _build_stats(
    state: GraphState,
    report_count: int,
    raw_edges: int,
    metrics: NetworkMetrics,
    config: BuildConfig,
    diagnostics: BuildDiagnostics,
    elapsed_ms: int,
) -> Dict[str, Any]:
    primaries = state.primary_nodes()
    stubs = state.stub_nodes()
    tier_totals = Counter({tier.value: 0 for tier in NodeTier})
    tier_totals.update(node.tier.value for node in state.nodes.values())
    status_totals = Counter({status.value: 0 for status in NodeStatus})
    status_totals.update(node.status.value for node in primaries)

    return {
        "totalPrimaryNodes": len(primaries),
        "totalStubNodes": len(stubs),
        "totalNodes": len(state.nodes),
        "totalEdgesRaw": raw_edges,
        "totalEdgesTrimmed": len(state.edges),
        "hubCount": len(metrics.hubs),
        "tierTotals": dict(tier_totals),
        "statusTotals": dict(status_totals),
        "stubAfterTrim": len(stubs),
        "connectedComponents": MetricsEngine.connected_components(state),
        "sampling": {
            "quickSampleEnabled": config.quick_sample_nodes > 0,
            "sampledCount": report_count,
        },
        "buildDurationMs": elapsed_ms,
        "diagnostics": diagnostics.to_dict(),
    }


def _log_top_nodes(assembled: AssemblyResult, metrics: NetworkMetrics, limit: int = 5) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    targeted: List[str] = [
        f"{node_id}({hits})" for node_id, hits in assembled.target_hits.most_common(limit)
    ]
    weighted = sorted(metrics.composite_weight.items(), key=lambda item: item[1], reverse=True)[:limit]
    logger.debug("Most targeted nodes: %s", ", ".join(targeted) or "-")
    logger.debug(
        "Highest weight nodes: %s",
        ", ".join(f"{node_id}({weight:.3f})" for node_id, weight in weighted) or "-",
    )
