"""
Address clusters: nodes sharing one normalized host, ignoring port.
"""
from __future__ import annotations

from typing import Dict, List

from atlas.core.graph_state import GraphState
from atlas.core.models import InternalNode
from atlas.core.net import normalize_host


def cluster_key(node: InternalNode) -> str:
    """Host of a primary node's listed address; stubs and unparseable
    addresses fall back to the node's own id (singleton cluster)."""
    if node.is_stub or node.record is None:
        return node.id
    return normalize_host(node.record.ip) or node.id


def group_address_clusters(state: GraphState) -> Dict[str, List[str]]:
    """cluster key -> member ids, both in node insertion order."""
    clusters: Dict[str, List[str]] = {}
    for node in state.nodes.values():
        clusters.setdefault(cluster_key(node), []).append(node.id)
    return clusters
