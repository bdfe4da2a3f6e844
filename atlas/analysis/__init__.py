"""
Address clustering and node metrics.
"""
from .clusters import cluster_key, group_address_clusters
from .metrics_engine import (
    MetricsEngine,
    NetworkMetrics,
    raw_degrees,
    cluster_normalized_degrees,
    degree_centrality,
    hub_threshold,
    composite_weights,
)

__all__ = [
    "cluster_key",
    "group_address_clusters",
    "MetricsEngine",
    "NetworkMetrics",
    "raw_degrees",
    "cluster_normalized_degrees",
    "degree_centrality",
    "hub_threshold",
    "composite_weights",
]
