"""
Core Value Objects and Entities
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class NodeTier(str, Enum):
    CUMULUS = "CUMULUS"
    NIMBUS = "NIMBUS"
    STRATUS = "STRATUS"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "NodeTier":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


class NodeStatus(str, Enum):
    ARCANE = "ARCANE"
    LEGACY = "LEGACY"
    UNVERIFIED = "UNVERIFIED"

    @classmethod
    def from_arcane(cls, arcane: Optional[bool]) -> "NodeStatus":
        if arcane is True:
            return cls.ARCANE
        if arcane is False:
            return cls.LEGACY
        return cls.UNVERIFIED


class NodeKind(str, Enum):
    PRIMARY = "primary"   # listed in the directory
    STUB = "stub"         # external peer seen only in a peer report


class EdgeKind(str, Enum):
    PRIMARY_PRIMARY = "primary-primary"
    PRIMARY_STUB = "primary-stub"


# ---------------------------------------------------------------------------
# Crawler input
# ---------------------------------------------------------------------------

_RECORD_FIELDS = (
    "collateral", "txhash", "outidx", "ip", "network", "tier",
    "payment_address", "pubkey", "added_height", "confirmed_height",
    "last_confirmed_height", "last_paid_height", "activesince", "lastpaid",
    "status",
)


@dataclass
class NodeRecord:
    """A participant as listed by the network's directory service."""
    ip: str
    collateral: Optional[str] = None
    tier: Optional[str] = None
    payment_address: Optional[str] = None
    txhash: Optional[str] = None
    outidx: Optional[str] = None
    network: Optional[str] = None
    pubkey: Optional[str] = None
    added_height: Optional[int] = None
    confirmed_height: Optional[int] = None
    last_confirmed_height: Optional[int] = None
    last_paid_height: Optional[int] = None
    activesince: Optional[int] = None
    lastpaid: Optional[int] = None
    status: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeRecord":
        known = {k: data.get(k) for k in _RECORD_FIELDS}
        known["ip"] = str(known.get("ip") or "")
        extra = {k: v for k, v in data.items() if k not in _RECORD_FIELDS}
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        result = {k: getattr(self, k) for k in _RECORD_FIELDS if getattr(self, k) is not None}
        result["ip"] = self.ip
        result.update(self.extra)
        return result


@dataclass(frozen=True)
class Bandwidth:
    download_speed: float = 0.0
    upload_speed: float = 0.0

    @property
    def total(self) -> float:
        return self.download_speed + self.upload_speed

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Bandwidth"]:
        if not data:
            return None
        return cls(
            download_speed=float(data.get("download_speed") or 0.0),
            upload_speed=float(data.get("upload_speed") or 0.0),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"download_speed": self.download_speed, "upload_speed": self.upload_speed}


@dataclass
class PeerReport:
    """Per-node crawl result: the node plus the peers it reported."""
    node: NodeRecord
    outgoing_peers: List[str] = field(default_factory=list)
    incoming_peers: List[str] = field(default_factory=list)
    arcane: Optional[bool] = None
    bandwidth: Optional[Bandwidth] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PeerReport":
        arcane = data.get("arcane")
        return cls(
            node=NodeRecord.from_dict(data.get("node") or {}),
            outgoing_peers=[str(p) for p in data.get("outgoingPeers", data.get("outgoing_peers", [])) or []],
            incoming_peers=[str(p) for p in data.get("incomingPeers", data.get("incoming_peers", [])) or []],
            arcane=None if arcane is None else bool(arcane),
            bandwidth=Bandwidth.from_dict(data.get("bandwidth")),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "node": self.node.to_dict(),
            "outgoingPeers": list(self.outgoing_peers),
            "incomingPeers": list(self.incoming_peers),
        }
        if self.arcane is not None:
            result["arcane"] = self.arcane
        if self.bandwidth is not None:
            result["bandwidth"] = self.bandwidth.to_dict()
        return result


# ---------------------------------------------------------------------------
# Internal graph entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InternalNode:
    """Graph vertex. Created during assembly, only ever removed afterwards."""
    id: str
    kind: NodeKind
    tier: NodeTier = NodeTier.UNKNOWN
    status: NodeStatus = NodeStatus.UNVERIFIED
    arcane: Optional[bool] = None
    record: Optional[NodeRecord] = field(default=None, compare=False)
    bandwidth: Optional[Bandwidth] = None

    @property
    def is_stub(self) -> bool:
        return self.kind == NodeKind.STUB

    @classmethod
    def primary(cls, node_id: str, report: PeerReport) -> "InternalNode":
        return cls(
            id=node_id,
            kind=NodeKind.PRIMARY,
            tier=NodeTier.parse(report.node.tier),
            status=NodeStatus.from_arcane(report.arcane),
            arcane=report.arcane,
            record=report.node,
            bandwidth=report.bandwidth,
        )

    @classmethod
    def stub(cls, node_id: str) -> "InternalNode":
        return cls(id=node_id, kind=NodeKind.STUB)


@dataclass(frozen=True)
class InternalEdge:
    """Undirected edge keyed by its sorted endpoint pair."""
    key: str
    source: str
    target: str
    weight: float = 1.0
    stub_edge: bool = False

    def other(self, node_id: str) -> str:
        return self.target if self.source == node_id else self.source

    @property
    def kind(self) -> EdgeKind:
        return EdgeKind.PRIMARY_STUB if self.stub_edge else EdgeKind.PRIMARY_PRIMARY
