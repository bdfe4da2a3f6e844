"""
Core Value Objects, Graph State and Ports
"""
from .models import (
    NodeTier,
    NodeStatus,
    NodeKind,
    EdgeKind,
    NodeRecord,
    Bandwidth,
    PeerReport,
    InternalNode,
    InternalEdge,
)
from .net import (
    HostPort,
    INVALID_NODE_ID,
    split_host_port,
    normalize_host,
    format_host_port,
    make_node_id,
    edge_key,
)
from .graph_state import GraphState, NodeAdjacency
from .diagnostics import BuildDiagnostics, StageSnapshot
from .artifacts import (
    Position,
    AtlasBounds,
    AtlasNode,
    AtlasEdge,
    AtlasMeta,
    AtlasBuild,
    AtlasState,
    NodeMetricsView,
)
from .interfaces import IPeerSource, IBuildCache

__all__ = [
    "NodeTier",
    "NodeStatus",
    "NodeKind",
    "EdgeKind",
    "NodeRecord",
    "Bandwidth",
    "PeerReport",
    "InternalNode",
    "InternalEdge",
    "HostPort",
    "INVALID_NODE_ID",
    "split_host_port",
    "normalize_host",
    "format_host_port",
    "make_node_id",
    "edge_key",
    "GraphState",
    "NodeAdjacency",
    "BuildDiagnostics",
    "StageSnapshot",
    "Position",
    "AtlasBounds",
    "AtlasNode",
    "AtlasEdge",
    "AtlasMeta",
    "AtlasBuild",
    "AtlasState",
    "NodeMetricsView",
    "IPeerSource",
    "IBuildCache",
]
