"""
Application Settings

Environment configuration for the crawler, the build service and the API.
The build pipeline itself only ever sees a ``BuildConfig``.
"""

import os
import re
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

_TRUE = re.compile(r"^(1|true|yes)$", re.IGNORECASE)


def _env_number(name: str, fallback: float, minimum: Optional[float] = None) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        value = fallback
    else:
        try:
            value = float(raw)
        except ValueError:
            value = fallback
    if minimum is not None:
        value = max(minimum, value)
    return value


def _env_int(name: str, fallback: int, minimum: Optional[int] = 0) -> int:
    return int(_env_number(name, fallback, minimum))


def _env_bool(name: str, fallback: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    return bool(_TRUE.match(raw.strip()))


@dataclass
class BuildConfig:
    """Configuration surface of the graph/layout pipeline."""

    default_rpc_port: int = 16127
    rpc_protocol: str = "http"
    max_stub_nodes: int = 6000
    max_node_degree: int = 64       # 0 = unlimited
    max_edges: int = 90000          # 0 = unlimited
    include_external_peers: bool = True
    layout_node_cap: int = 4200
    layout_seed: str = "peer-atlas"
    quick_sample_nodes: int = 0
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def with_overrides(self, data: Optional[Dict[str, Any]]) -> "BuildConfig":
        """Copy with the known keys of *data* applied; unknown keys are rejected."""
        if not data:
            return self
        known = {f.name for f in fields(self)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown build config keys: {', '.join(unknown)}")
        return replace(self, **data)


def load_build_config(path: Path, base: Optional[BuildConfig] = None) -> BuildConfig:
    """Load build configuration overrides from a YAML file."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of build config keys")
    section = data.get("build", data)
    return (base or BuildConfig()).with_overrides(section)


@dataclass
class Settings:
    """Application settings from environment."""

    port: int = 4000
    api_base_url: str = "https://api.runonflux.io"
    directory_endpoint: str = "/daemon/listfluxnodes"
    rpc_protocol: str = "http"
    rpc_port: int = 16127
    rpc_timeout: float = 4.0
    max_workers: int = 50
    max_nodes: int = 9000
    quick_sample_nodes: int = 0
    max_peers_per_node: int = 48
    max_edges: int = 90000
    max_node_degree: int = 64
    max_stub_nodes: int = 6000
    include_external_peers: bool = True
    layout_node_cap: int = 4200
    update_interval: float = 30 * 60.0
    allow_insecure_ssl: bool = True
    enable_arcane_probe: bool = True
    layout_seed: str = "peer-atlas"
    cache_path: str = "output/atlas_cache.json"
    log_level: str = "INFO"

    @property
    def directory_url(self) -> str:
        return self.api_base_url.rstrip("/") + "/" + self.directory_endpoint.lstrip("/")

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        protocol = os.getenv("ATLAS_RPC_PROTOCOL", "http").strip().lower()
        return cls(
            port=_env_int("ATLAS_PORT", _env_int("PORT", 4000)),
            api_base_url=os.getenv("ATLAS_API_BASE_URL", "https://api.runonflux.io"),
            directory_endpoint=os.getenv("ATLAS_DIRECTORY_ENDPOINT", "/daemon/listfluxnodes"),
            rpc_protocol="https" if protocol == "https" else "http",
            rpc_port=_env_int("ATLAS_RPC_PORT", 16127, minimum=1),
            rpc_timeout=_env_number("ATLAS_RPC_TIMEOUT", 4.0, minimum=0.1),
            max_workers=_env_int("ATLAS_MAX_WORKERS", 50, minimum=1),
            max_nodes=_env_int("ATLAS_MAX_NODES", 9000, minimum=1),
            quick_sample_nodes=_env_int("ATLAS_QUICK_SAMPLE_NODES", 0),
            max_peers_per_node=_env_int("ATLAS_MAX_PEERS_PER_NODE", 48),
            max_edges=_env_int("ATLAS_MAX_EDGES", 90000),
            max_node_degree=_env_int("ATLAS_MAX_NODE_DEGREE", 64),
            max_stub_nodes=_env_int("ATLAS_MAX_STUB_NODES", 6000),
            include_external_peers=_env_bool("ATLAS_INCLUDE_EXTERNAL_PEERS", True),
            layout_node_cap=_env_int("ATLAS_LAYOUT_NODE_CAP", 4200),
            update_interval=_env_number("ATLAS_UPDATE_INTERVAL", 30 * 60.0, minimum=0),
            allow_insecure_ssl=_env_bool("ATLAS_ALLOW_INSECURE_SSL", True),
            enable_arcane_probe=_env_bool("ATLAS_ENABLE_ARCANE_PROBE", True),
            layout_seed=os.getenv("ATLAS_LAYOUT_SEED", "peer-atlas"),
            cache_path=os.getenv("ATLAS_CACHE_PATH", "output/atlas_cache.json"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def build_config(self) -> BuildConfig:
        return BuildConfig(
            default_rpc_port=self.rpc_port,
            rpc_protocol=self.rpc_protocol,
            max_stub_nodes=self.max_stub_nodes,
            max_node_degree=self.max_node_degree,
            max_edges=self.max_edges,
            include_external_peers=self.include_external_peers,
            layout_node_cap=self.layout_node_cap,
            layout_seed=self.layout_seed,
            quick_sample_nodes=self.quick_sample_nodes,
            source=self.directory_url,
        )
