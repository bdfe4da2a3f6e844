"""
Build Artefacts

Immutable snapshot types published by a build. ``to_dict`` produces the
camelCase JSON contract consumed by the HTTP layer and the frontend;
``from_dict`` restores a build from the on-disk cache.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class AtlasBounds:
    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0

    def contains(self, position: Position) -> bool:
        return self.min_x <= position.x <= self.max_x and self.min_y <= position.y <= self.max_y

    def to_dict(self) -> Dict[str, float]:
        return {"minX": self.min_x, "maxX": self.max_x, "minY": self.min_y, "maxY": self.max_y}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtlasBounds":
        return cls(
            min_x=float(data.get("minX", 0.0)),
            max_x=float(data.get("maxX", 0.0)),
            min_y=float(data.get("minY", 0.0)),
            max_y=float(data.get("maxY", 0.0)),
        )


@dataclass
class NodeMetricsView:
    degree: float
    degree_centrality: float
    connection_count: int
    incoming_peers: int
    outgoing_peers: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "degree": self.degree,
            "degreeCentrality": self.degree_centrality,
            "connectionCount": self.connection_count,
            "incomingPeers": self.incoming_peers,
            "outgoingPeers": self.outgoing_peers,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeMetricsView":
        return cls(
            degree=data.get("degree", 0),
            degree_centrality=data.get("degreeCentrality", 0.0),
            connection_count=data.get("connectionCount", 0),
            incoming_peers=data.get("incomingPeers", 0),
            outgoing_peers=data.get("outgoingPeers", 0),
        )


@dataclass
class AtlasNode:
    id: str
    label: str
    tier: str
    kind: str
    status: str
    is_arcane: bool
    is_hub: bool
    metrics: NodeMetricsView
    position: Position
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "tier": self.tier,
            "kind": self.kind,
            "status": self.status,
            "isArcane": self.is_arcane,
            "isHub": self.is_hub,
            "metrics": self.metrics.to_dict(),
            "position": self.position.to_dict(),
            "meta": dict(self.meta),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtlasNode":
        pos = data.get("position") or {}
        return cls(
            id=data["id"],
            label=data.get("label", data["id"]),
            tier=data.get("tier", "UNKNOWN"),
            kind=data.get("kind", "primary"),
            status=data.get("status", "UNVERIFIED"),
            is_arcane=bool(data.get("isArcane", False)),
            is_hub=bool(data.get("isHub", False)),
            metrics=NodeMetricsView.from_dict(data.get("metrics") or {}),
            position=Position(float(pos.get("x", 0.0)), float(pos.get("y", 0.0))),
            meta=dict(data.get("meta") or {}),
        )


@dataclass
class AtlasEdge:
    id: str
    source: str
    target: str
    weight: float
    kind: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "weight": self.weight,
            "kind": self.kind,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtlasEdge":
        return cls(
            id=data["id"],
            source=data["source"],
            target=data["target"],
            weight=float(data.get("weight", 1.0)),
            kind=data.get("kind", "primary-primary"),
        )


@dataclass
class AtlasMeta:
    axis: AtlasBounds
    hub_threshold: float
    layout_strategy: str
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "axis": self.axis.to_dict(),
            "hubThreshold": self.hub_threshold,
            "layoutStrategy": self.layout_strategy,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtlasMeta":
        return cls(
            axis=AtlasBounds.from_dict(data.get("axis") or {}),
            hub_threshold=float(data.get("hubThreshold", 0.0)),
            layout_strategy=data.get("layoutStrategy", "seeded"),
            source=data.get("source", ""),
        )


@dataclass
class AtlasBuild:
    """The sole published artefact of one build."""
    build_id: str
    started_at: str
    completed_at: str
    duration_ms: int
    nodes: List[AtlasNode]
    edges: List[AtlasEdge]
    bounds: AtlasBounds
    stats: Dict[str, Any]
    meta: AtlasMeta
    config: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buildId": self.build_id,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "durationMs": self.duration_ms,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "bounds": self.bounds.to_dict(),
            "stats": self.stats,
            "config": self.config,
            "meta": self.meta.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtlasBuild":
        return cls(
            build_id=data["buildId"],
            started_at=data.get("startedAt", ""),
            completed_at=data.get("completedAt", ""),
            duration_ms=int(data.get("durationMs", 0)),
            nodes=[AtlasNode.from_dict(n) for n in data.get("nodes", [])],
            edges=[AtlasEdge.from_dict(e) for e in data.get("edges", [])],
            bounds=AtlasBounds.from_dict(data.get("bounds") or {}),
            stats=dict(data.get("stats") or {}),
            meta=AtlasMeta.from_dict(data.get("meta") or {}),
            config=dict(data.get("config") or {}),
        )


@dataclass(frozen=True)
class AtlasState:
    """What readers see: the last completed build plus the refresh status."""
    building: bool
    data: Optional[AtlasBuild] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"building": self.building}
        if self.error is not None:
            result["error"] = self.error
        if self.data is not None:
            result["data"] = self.data.to_dict()
        return result
