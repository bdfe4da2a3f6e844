"""
Identity Resolver

Turns the literal address strings reported by the directory and by peers into
``(host, port)`` pairs and canonical node identities. No DNS lookups are
performed; hosts are compared case-preserving.

Accepted address forms:
    host                 bare IPv4 / hostname
    host:port            single colon separates the port
    [v6] / [v6]:port     bracketed IPv6, optional port
    a:b::c               unbracketed value with several colons = bare IPv6

Anything else (empty, embedded whitespace, unbalanced brackets, non-numeric
or out-of-range port) is malformed and resolves to an empty host, which
callers treat as "skip".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

INVALID_NODE_ID = ""

_BRACKETED = re.compile(r"^\[([^\[\]]+)\](?::(\d+))?$")
_PORT = re.compile(r"^\d{1,5}$")


@dataclass(frozen=True)
class HostPort:
    host: str
    port: Optional[int] = None

    @property
    def valid(self) -> bool:
        return bool(self.host)

    def with_default_port(self, default_port: int) -> "HostPort":
        return self if self.port is not None else HostPort(self.host, default_port)

    def __str__(self) -> str:
        return format_host_port(self.host, self.port)


_INVALID = HostPort(INVALID_NODE_ID)


def _parse_port(text: Optional[str]) -> Optional[int]:
    if text is None or not _PORT.match(text):
        return None
    port = int(text)
    return port if 0 < port <= 65535 else None


def split_host_port(value: Optional[str]) -> HostPort:
    """Parse an address into host and optional port; malformed input -> empty host."""
    if not value:
        return _INVALID
    text = value.strip()
    if not text or any(ch.isspace() for ch in text):
        return _INVALID

    if text.startswith("[") or text.endswith("]"):
        match = _BRACKETED.match(text)
        if not match:
            return _INVALID
        host, raw_port = match.group(1), match.group(2)
        if raw_port is None:
            return HostPort(host)
        port = _parse_port(raw_port)
        return HostPort(host, port) if port is not None else _INVALID

    colons = text.count(":")
    if colons == 0:
        return HostPort(text)
    if colons > 1:
        return HostPort(text)

    host, _, raw_port = text.partition(":")
    port = _parse_port(raw_port)
    if not host or port is None:
        return _INVALID
    return HostPort(host, port)


def normalize_host(value: Optional[str]) -> str:
    """Host part of an address with brackets stripped, or ``""`` when malformed."""
    return split_host_port(value).host


def format_host_port(host: str, port: Optional[int] = None) -> str:
    """Inverse of :func:`split_host_port`; brackets IPv6 hosts when a port follows."""
    if port is None:
        return host
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def make_node_id(address: Optional[str], identity_token: Optional[str] = None) -> str:
    """Durable identity token when present, otherwise the normalized host."""
    if identity_token and str(identity_token).strip():
        return str(identity_token).strip()
    return normalize_host(address)


def edge_key(a: str, b: str) -> str:
    left, right = sorted((a, b))
    return f"{left}|{right}"
