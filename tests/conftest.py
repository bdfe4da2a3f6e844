"""
Test Configuration and Fixtures
================================

Shared pytest fixtures for the peer-atlas test suite.

Usage:
    pytest tests/                    # Run all tests
    pytest tests/ -v                 # Verbose output
    pytest tests/ -k "assembler"     # Run only assembler tests
    pytest tests/ --quick            # Skip slow tests
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from atlas.config import BuildConfig
from atlas.core.graph_state import GraphState
from atlas.core.models import Bandwidth, NodeRecord, PeerReport


# =============================================================================
# Custom Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")


def pytest_addoption(parser):
    """Add custom command line options"""
    parser.addoption(
        "--quick",
        action="store_true",
        default=False,
        help="Skip slow tests",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests if --quick is specified"""
    if config.getoption("--quick"):
        skip_slow = pytest.mark.skip(reason="Skipped with --quick")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


# =============================================================================
# Factories
# =============================================================================

def make_report(
    ip: str,
    outgoing: Optional[List[str]] = None,
    incoming: Optional[List[str]] = None,
    collateral: Optional[str] = None,
    tier: str = "CUMULUS",
    arcane: Optional[bool] = None,
    bandwidth: Optional[Dict[str, float]] = None,
) -> PeerReport:
    """Peer report for a directory-listed node."""
    return PeerReport(
        node=NodeRecord(ip=ip, collateral=collateral, tier=tier),
        outgoing_peers=list(outgoing or []),
        incoming_peers=list(incoming or []),
        arcane=arcane,
        bandwidth=Bandwidth.from_dict(bandwidth),
    )


def triangle_reports() -> List[PeerReport]:
    """Three nodes at distinct addresses, each reporting the other two."""
    return [
        make_report("10.0.0.1", ["10.0.0.2", "10.0.0.3"]),
        make_report("10.0.0.2", ["10.0.0.1", "10.0.0.3"]),
        make_report("10.0.0.3", ["10.0.0.1", "10.0.0.2"]),
    ]


def assert_graph_consistent(state: GraphState) -> None:
    """Edge uniqueness and adjacency/edge-map agreement."""
    pairs = [frozenset((e.source, e.target)) for e in state.edges.values()]
    assert len(pairs) == len(set(pairs))

    for key, edge in state.edges.items():
        assert edge.source in state.nodes
        assert edge.target in state.nodes
        assert edge.source != edge.target
        assert key in state.adjacency[edge.source].edges
        assert key in state.adjacency[edge.target].edges

    assert set(state.adjacency) == set(state.nodes)
    for node_id, adj in state.adjacency.items():
        expected = {k for k, e in state.edges.items() if node_id in (e.source, e.target)}
        assert adj.edges == expected
        assert adj.stub_edges == {k for k in expected if state.edges[k].stub_edge}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def build_config() -> BuildConfig:
    """No caps, default port, fixed layout seed."""
    return BuildConfig(
        max_stub_nodes=6000,
        max_node_degree=0,
        max_edges=0,
        layout_seed="test-seed",
        source="test",
    )


@pytest.fixture
def triangle() -> List[PeerReport]:
    return triangle_reports()


@pytest.fixture
def snapshot_payload() -> List[Dict[str, Any]]:
    """Input-contract JSON for a small network with one external peer."""
    return [
        {
            "node": {"ip": "10.0.0.1", "collateral": "COL-A", "tier": "cumulus"},
            "outgoingPeers": ["10.0.0.2", "10.0.0.3:16127", "203.0.113.9:16125"],
            "incomingPeers": ["10.0.0.2"],
            "arcane": True,
            "bandwidth": {"download_speed": 120.5, "upload_speed": 80.0},
        },
        {
            "node": {"ip": "10.0.0.2", "collateral": "COL-B", "tier": "NIMBUS"},
            "outgoingPeers": ["10.0.0.1"],
            "incomingPeers": [],
            "arcane": False,
        },
        {
            "node": {"ip": "10.0.0.3:16127", "collateral": "COL-C", "tier": "stratus"},
            "outgoingPeers": ["10.0.0.1"],
            "incomingPeers": ["10.0.0.1", "10.0.0.1"],
        },
    ]
