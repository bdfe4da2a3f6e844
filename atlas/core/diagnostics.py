"""
Build Diagnostics

Explicit accumulator handed to every pipeline stage. Stages record counters
(skipped addresses, ambiguous lookups, trimmed edges, ...) and node/edge
snapshots here instead of emitting ad-hoc log lines, so a build stays a pure
function of its inputs and its observability data comes back with the result.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class StageSnapshot:
    stage: str
    nodes: int
    edges: int

    def to_dict(self) -> Dict[str, Any]:
        return {"stage": self.stage, "nodes": self.nodes, "edges": self.edges}


@dataclass
class BuildDiagnostics:
    counters: Counter = field(default_factory=Counter)
    stages: List[StageSnapshot] = field(default_factory=list)
    gauges: Dict[str, float] = field(default_factory=dict)

    def increment(self, name: str, amount: int = 1) -> None:
        self.counters[name] += amount

    def count(self, name: str) -> int:
        return self.counters.get(name, 0)

    def gauge(self, name: str, value: float) -> None:
        self.gauges[name] = value

    def record_stage(self, stage: str, nodes: int, edges: int) -> StageSnapshot:
        snapshot = StageSnapshot(stage, nodes, edges)
        self.stages.append(snapshot)
        return snapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counters": dict(sorted(self.counters.items())),
            "gauges": dict(sorted(self.gauges.items())),
            "stages": [s.to_dict() for s in self.stages],
        }
