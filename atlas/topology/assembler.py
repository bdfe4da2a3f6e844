"""
Graph Assembler

Builds the node/edge maps of one build from the per-node peer reports.

Steps:
    1. One primary node per report (identity token, else normalized host).
    2. Address lookup tables, the disambiguation mechanism for nodes sharing
       one IP behind address translation:
         - the address exactly as the directory listed it
         - (host, effective port), the port defaulting to the RPC port
         - bare host
    3. Each outgoing peer address is resolved in strict priority order:
         (a) exact listed address
         (b) (host, peer port)            -- peer gave a port
         (c) (host, default RPC port)     -- peer gave no port
         (d) bare host                    -- every node on that address
       More than one candidate from (d) is an ambiguous resolution.
    4. Unresolved peers become stub nodes when external peers are included,
       otherwise they are dropped (counted).
    5. Among several candidates one is drawn uniformly at random per edge so
       that no single member of an address cluster collects every report.
    6. Self-edges are dropped; duplicate pairs are no-ops (weight stays 1).
    7. Incoming peer lists only feed ``incoming_counts``.

Usage:
    assembler = GraphAssembler(default_rpc_port=16127, rng=random.Random(7))
    result = assembler.assemble(reports)
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from atlas.core.diagnostics import BuildDiagnostics
from atlas.core.graph_state import GraphState
from atlas.core.models import InternalNode, PeerReport
from atlas.core.net import HostPort, make_node_id, split_host_port

logger = logging.getLogger(__name__)


@dataclass
class AssemblyResult:
    state: GraphState
    raw_edge_count: int = 0
    outgoing_counts: Dict[str, int] = field(default_factory=dict)
    incoming_counts: Dict[str, int] = field(default_factory=dict)
    target_hits: Counter = field(default_factory=Counter)


class AddressIndex:
    """Address -> candidate node ids, for resolving peer self-reports."""

    def __init__(self, default_port: int) -> None:
        self.default_port = default_port
        self._by_address: Dict[str, List[str]] = {}
        self._by_endpoint: Dict[Tuple[str, int], List[str]] = {}
        self._by_host: Dict[str, List[str]] = {}

    def register(self, node_id: str, listed_address: str, address: HostPort) -> None:
        endpoint = address.with_default_port(self.default_port)
        self._by_address.setdefault(listed_address.strip(), []).append(node_id)
        self._by_endpoint.setdefault((endpoint.host, endpoint.port), []).append(node_id)
        self._by_host.setdefault(address.host, []).append(node_id)

    @property
    def multi_node_hosts(self) -> int:
        return sum(1 for ids in self._by_host.values() if len(ids) > 1)

    def __len__(self) -> int:
        return len(self._by_host)

    def resolve(self, raw_peer: str, peer: HostPort) -> Tuple[List[str], bool]:
        """Return (candidates, ambiguous) for a reported peer address."""
        exact = self._by_address.get(raw_peer.strip())
        if exact:
            return exact, False
        if peer.port is not None:
            candidates = self._by_endpoint.get((peer.host, peer.port))
        else:
            candidates = self._by_endpoint.get((peer.host, self.default_port))
        if candidates:
            return candidates, False
        candidates = self._by_host.get(peer.host, [])
        return candidates, len(candidates) > 1


class GraphAssembler:
    """Turns peer reports into a deduplicated, undirected GraphState."""

    def __init__(
        self,
        default_rpc_port: int = 16127,
        include_external_peers: bool = True,
        rng: Optional[random.Random] = None,
        diagnostics: Optional[BuildDiagnostics] = None,
    ) -> None:
        self.default_rpc_port = default_rpc_port
        self.include_external_peers = include_external_peers
        self.rng = rng if rng is not None else random.Random()
        self.diagnostics = diagnostics if diagnostics is not None else BuildDiagnostics()

    def assemble(self, reports: Sequence[PeerReport]) -> AssemblyResult:
        state = GraphState()
        result = AssemblyResult(state=state)
        index = AddressIndex(self.default_rpc_port)

        # Primary nodes and address index
        sources: List[Tuple[str, PeerReport]] = []
        for report in reports:
            node_id = make_node_id(report.node.ip, report.node.collateral)
            if not node_id:
                self.diagnostics.increment("invalid_records")
                continue
            if not state.add_node(InternalNode.primary(node_id, report)):
                self.diagnostics.increment("duplicate_records")
                continue
            address = split_host_port(report.node.ip)
            if not address.valid:
                self.diagnostics.increment("invalid_addresses")
                continue
            index.register(node_id, report.node.ip, address)
            sources.append((node_id, report))

        self.diagnostics.gauge("address_keys", len(index))
        self.diagnostics.gauge("multi_node_addresses", index.multi_node_hosts)

        # Edges from outgoing reports
        for source_id, report in sources:
            result.outgoing_counts[source_id] = len(set(report.outgoing_peers))
            for raw_peer in report.outgoing_peers:
                self._add_peer_edge(state, index, result, source_id, raw_peer)

        # Incoming reports are counted, never turned into edges
        for source_id, report in sources:
            result.incoming_counts[source_id] = len(set(report.incoming_peers))

        logger.debug(
            "Assembled %d nodes, %d edges (%d ambiguous, %d unresolved peer reports)",
            len(state.nodes), len(state.edges),
            self.diagnostics.count("ambiguous_lookups"),
            self.diagnostics.count("failed_lookups"),
        )
        return result

    def _add_peer_edge(
        self,
        state: GraphState,
        index: AddressIndex,
        result: AssemblyResult,
        source_id: str,
        raw_peer: str,
    ) -> None:
        peer = split_host_port(raw_peer)
        if not peer.valid:
            self.diagnostics.increment("malformed_peers")
            return

        candidates, ambiguous = index.resolve(raw_peer, peer)
        if ambiguous:
            self.diagnostics.increment("ambiguous_lookups")

        if candidates:
            self.diagnostics.increment("successful_lookups")
            target_id = self._choose(candidates)
        else:
            self.diagnostics.increment("failed_lookups")
            if not self.include_external_peers:
                self.diagnostics.increment("dropped_external_peers")
                return
            target_id = str(peer)
            if state.add_node(InternalNode.stub(target_id)):
                self.diagnostics.increment("stubs_created")

        if target_id == source_id:
            self.diagnostics.increment("self_edges")
            return

        result.target_hits[target_id] += 1
        if state.add_edge(source_id, target_id) is None:
            self.diagnostics.increment("duplicate_edges")
            return
        result.raw_edge_count += 1

    def _choose(self, candidates: List[str]) -> str:
        if len(candidates) == 1:
            return candidates[0]
        return candidates[self.rng.randrange(len(candidates))]
