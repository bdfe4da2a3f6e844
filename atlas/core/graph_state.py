"""
Graph State

Owns the node map, the edge map and the adjacency index of one build.
All mutation goes through add/remove methods so that an edge present in the
edge map is always registered in the adjacency sets of both endpoints, and
removing a node also removes every edge that touches it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

import networkx as nx

from .models import InternalEdge, InternalNode, NodeKind
from .net import edge_key


@dataclass
class NodeAdjacency:
    edges: Set[str] = field(default_factory=set)
    stub_edges: Set[str] = field(default_factory=set)

    def add(self, edge: InternalEdge) -> None:
        self.edges.add(edge.key)
        if edge.stub_edge:
            self.stub_edges.add(edge.key)

    def discard(self, key: str) -> None:
        self.edges.discard(key)
        self.stub_edges.discard(key)


class GraphState:
    """Mutable graph for a single build."""

    def __init__(self) -> None:
        self.nodes: Dict[str, InternalNode] = {}
        self.edges: Dict[str, InternalEdge] = {}
        self.adjacency: Dict[str, NodeAdjacency] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node: InternalNode) -> bool:
        """Register *node*; returns False if its id is already present."""
        if node.id in self.nodes:
            return False
        self.nodes[node.id] = node
        self.adjacency[node.id] = NodeAdjacency()
        return True

    def get_node(self, node_id: str) -> Optional[InternalNode]:
        return self.nodes.get(node_id)

    def remove_node(self, node_id: str) -> int:
        """Remove a node and its incident edges. Returns the number of edges removed."""
        if node_id not in self.nodes:
            return 0
        removed = 0
        for key in list(self.adjacency[node_id].edges):
            if self.remove_edge(key):
                removed += 1
        del self.nodes[node_id]
        del self.adjacency[node_id]
        return removed

    def stub_nodes(self) -> List[InternalNode]:
        return [n for n in self.nodes.values() if n.kind == NodeKind.STUB]

    def primary_nodes(self) -> List[InternalNode]:
        return [n for n in self.nodes.values() if n.kind == NodeKind.PRIMARY]

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, source: str, target: str, weight: float = 1.0) -> Optional[InternalEdge]:
        """
        Create the edge for the unordered pair (source, target).

        Returns the new edge, or None for a self-edge or when the pair already
        has an edge. Raises KeyError if either endpoint is unknown.
        """
        for endpoint in (source, target):
            if endpoint not in self.nodes:
                raise KeyError(f"Edge endpoint {endpoint!r} is not in the node map")
        if source == target:
            return None
        key = edge_key(source, target)
        if key in self.edges:
            return None

        stub_edge = self.nodes[source].is_stub or self.nodes[target].is_stub
        edge = InternalEdge(key=key, source=source, target=target, weight=weight, stub_edge=stub_edge)
        self.edges[key] = edge
        self.adjacency[source].add(edge)
        self.adjacency[target].add(edge)
        return edge

    def remove_edge(self, key: str) -> bool:
        edge = self.edges.pop(key, None)
        if edge is None:
            return False
        for endpoint in (edge.source, edge.target):
            adj = self.adjacency.get(endpoint)
            if adj is not None:
                adj.discard(key)
        return True

    def incident_edges(self, node_id: str) -> List[InternalEdge]:
        adj = self.adjacency.get(node_id)
        if adj is None:
            return []
        return [self.edges[key] for key in adj.edges]

    def degree(self, node_id: str) -> int:
        adj = self.adjacency.get(node_id)
        return len(adj.edges) if adj is not None else 0

    def iter_edges(self) -> Iterator[InternalEdge]:
        return iter(self.edges.values())

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def to_networkx(self, include_stub_edges: bool = True) -> nx.Graph:
        """Undirected NetworkX view with node ``kind`` and edge ``weight`` attributes."""
        G = nx.Graph()
        for node in self.nodes.values():
            G.add_node(node.id, kind=node.kind.value)
        for edge in self.edges.values():
            if edge.stub_edge and not include_stub_edges:
                continue
            G.add_edge(edge.source, edge.target, weight=edge.weight, key=edge.key)
        return G
