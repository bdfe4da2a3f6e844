"""
End-to-end tests for atlas/application/pipeline.py
"""

import random
from dataclasses import replace

import numpy as np
import pytest

from atlas.application.pipeline import build_atlas, iso_timestamp, make_build_id
from atlas.core.artifacts import AtlasBuild
from atlas.core.models import PeerReport

from tests.conftest import make_report

STARTED = 1_700_000_000_000


class TestTriangleScenario:

    def test_three_nodes_all_hubs(self, triangle, build_config):
        build = build_atlas(triangle, build_config, started_at_ms=STARTED).build

        assert len(build.nodes) == 3
        assert len(build.edges) == 3
        for node in build.nodes:
            assert node.metrics.degree == 2
            assert node.metrics.degree_centrality == pytest.approx(1.0)
            assert node.is_hub
            assert node.kind == "primary"
        assert build.meta.hub_threshold == pytest.approx(1.0)
        assert build.stats["hubCount"] == 3
        assert build.stats["totalEdgesRaw"] == 3
        assert build.stats["totalEdgesTrimmed"] == 3
        assert {e.kind for e in build.edges} == {"primary-primary"}

    def test_positions_within_bounds(self, triangle, build_config):
        build = build_atlas(triangle, build_config, started_at_ms=STARTED).build
        for node in build.nodes:
            assert build.bounds.contains(node.position)
        assert build.meta.axis == build.bounds
        assert build.meta.layout_strategy == "force"


class TestBuildArtifact:

    @pytest.fixture
    def build(self, snapshot_payload, build_config) -> AtlasBuild:
        reports = [PeerReport.from_dict(item) for item in snapshot_payload]
        return build_atlas(reports, build_config, started_at_ms=STARTED, rng=random.Random(3)).build

    def test_identity_tokens_used(self, build):
        ids = [n.id for n in build.nodes]
        assert ids[:3] == ["COL-A", "COL-B", "COL-C"]
        assert "203.0.113.9:16125" in ids

    def test_node_meta_enrichment(self, build):
        node = next(n for n in build.nodes if n.id == "COL-A")
        assert node.tier == "CUMULUS"
        assert node.status == "ARCANE"
        assert node.is_arcane
        assert node.meta["ip"] == "10.0.0.1"
        assert node.meta["rpcEndpoint"] == "http://10.0.0.1:16127"
        assert node.meta["frontendUrl"] == "http://10.0.0.1:16126"
        assert node.meta["bandwidth"] == {"download_speed": 120.5, "upload_speed": 80.0}
        assert node.meta["isPrimary"] is True
        assert node.metrics.outgoing_peers == 3
        assert node.metrics.incoming_peers == 1
        assert node.metrics.connection_count == 4

    def test_connection_count_is_self_reported(self, build):
        stub = next(n for n in build.nodes if n.kind == "stub")
        assert stub.metrics.connection_count == 0
        col_c = next(n for n in build.nodes if n.id == "COL-C")
        assert col_c.metrics.connection_count == 2

    def test_status_mapping(self, build):
        status = {n.id: n.status for n in build.nodes}
        assert status["COL-B"] == "LEGACY"
        assert status["COL-C"] == "UNVERIFIED"
        assert status["203.0.113.9:16125"] == "UNVERIFIED"

    def test_stub_node_and_edge(self, build):
        stub = next(n for n in build.nodes if n.kind == "stub")
        assert stub.meta["isStub"] is True
        assert stub.tier == "UNKNOWN"
        assert not stub.is_hub
        stub_edges = [e for e in build.edges if e.kind == "primary-stub"]
        assert len(stub_edges) == 1

    def test_stats(self, build):
        stats = build.stats
        assert stats["totalPrimaryNodes"] == 3
        assert stats["totalStubNodes"] == stats["stubAfterTrim"] == 1
        assert stats["totalNodes"] == 4
        assert stats["tierTotals"]["CUMULUS"] == 1
        assert stats["tierTotals"]["UNKNOWN"] == 1
        assert stats["statusTotals"] == {"ARCANE": 1, "LEGACY": 1, "UNVERIFIED": 1}
        assert stats["sampling"] == {"quickSampleEnabled": False, "sampledCount": 3}
        assert "counters" in stats["diagnostics"]
        assert stats["buildDurationMs"] == build.duration_ms

    def test_config_and_source_echoed(self, build, build_config):
        assert build.config == build_config.to_dict()
        assert build.meta.source == "test"

    def test_timestamps_and_build_id(self, build):
        assert build.started_at == "2023-11-14T22:13:20.000Z"
        assert build.completed_at.endswith("Z")
        assert build.build_id.endswith("-4")

    def test_dict_round_trip(self, build):
        restored = AtlasBuild.from_dict(build.to_dict())
        assert restored.to_dict() == build.to_dict()


class TestConstraintsThroughPipeline:

    def test_stubs_removed_when_cap_zero(self, snapshot_payload, build_config):
        reports = [PeerReport.from_dict(item) for item in snapshot_payload]
        build = build_atlas(reports, replace(build_config, max_stub_nodes=0), started_at_ms=STARTED).build
        assert all(n.kind == "primary" for n in build.nodes)
        assert build.stats["totalEdgesRaw"] == 3
        assert build.stats["totalEdgesTrimmed"] == 2

    def test_degree_cap(self, build_config):
        hub = make_report("10.0.0.1", [f"10.0.1.{i}" for i in range(20)])
        leaves = [make_report(f"10.0.1.{i}", []) for i in range(20)]
        build = build_atlas([hub] + leaves, replace(build_config, max_node_degree=5), started_at_ms=STARTED).build
        assert len(build.edges) == 5
        assert build.stats["totalEdgesRaw"] == 20


class TestDeterminism:

    def test_fixed_inputs_reproduce_layout(self, build_config):
        reports = [make_report(f"10.0.0.{i}", [f"10.0.0.{(i + 1) % 30}"]) for i in range(30)]
        first = build_atlas(reports, build_config, started_at_ms=STARTED, rng=random.Random(1)).build
        second = build_atlas(reports, build_config, started_at_ms=STARTED, rng=random.Random(1)).build
        assert [n.position for n in first.nodes] == [n.position for n in second.nodes]

    def test_empty_input(self, build_config):
        build = build_atlas([], build_config, started_at_ms=STARTED).build
        assert build.nodes == [] and build.edges == []
        assert build.meta.layout_strategy == "seeded"
        assert build.meta.hub_threshold == 0.0


def test_build_id_is_base36_timestamp():
    assert make_build_id(STARTED, 12) == np.base_repr(STARTED, 36).lower() + "-12"
    assert make_build_id(35, 0) == "z-0"


def test_iso_timestamp_millis():
    assert iso_timestamp(STARTED + 42) == "2023-11-14T22:13:20.042Z"
