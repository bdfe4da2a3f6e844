"""
Directory Crawler

Fetches the directory listing and probes every listed node for its peers.

Per node, at ``rpc_protocol://host:port`` (port defaulting to the RPC port):
    /flux/connectedpeers        outgoing peers (required)
    /flux/incomingconnections   incoming peers (optional)
    /flux/isarcaneos            arcane flag (optional, can be disabled)
    /benchmark/getbenchmarks    bandwidth (optional)

A node that cannot be reached contributes an empty peer list; only a failure
of the directory listing itself is raised.

Usage:
    crawler = DirectoryCrawler(Settings.from_env())
    reports = await crawler.collect()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from atlas.config.settings import Settings
from atlas.core.models import Bandwidth, NodeRecord, PeerReport
from atlas.core.net import format_host_port, split_host_port

logger = logging.getLogger(__name__)

DIRECTORY_MIN_TIMEOUT = 15.0
OPTIONAL_PROBE_MAX_TIMEOUT = 8.0


class DirectoryFetchError(RuntimeError):
    """The directory listing could not be fetched."""


def sanitize_peer(value: Any, node_host: str) -> Optional[str]:
    """
    Reduce a peer entry (string or ``{"ip": ...}``) to ``host[:port]``.

    Returns None for empty or malformed entries and for peers on the
    reporting node's own host.
    """
    if not value:
        return None
    raw = value.get("ip") if isinstance(value, dict) else value
    if not raw:
        return None
    address = split_host_port(str(raw))
    if not address.valid or address.host == node_host:
        return None
    return format_host_port(address.host, address.port)


def _peer_list(payload: Any, node_host: str) -> List[str]:
    if not isinstance(payload, dict) or payload.get("status") != "success":
        return []
    peers = []
    for entry in payload.get("data") or []:
        cleaned = sanitize_peer(entry, node_host)
        if cleaned:
            peers.append(cleaned)
    return peers


class DirectoryCrawler:
    """HTTP peer source; satisfies ``IPeerSource``."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            verify=not self.settings.allow_insecure_ssl,
            transport=self._transport,
            follow_redirects=True,
        )

    async def collect(self) -> List[PeerReport]:
        records = await self.fetch_node_list()
        reports = await self.fetch_peer_data(records)
        reached = sum(1 for r in reports if r.outgoing_peers)
        logger.info("Crawled %d nodes, %d reported outgoing peers", len(reports), reached)
        return reports

    async def fetch_node_list(self) -> List[NodeRecord]:
        url = self.settings.directory_url
        logger.info("Fetching node list from %s", url)
        try:
            async with self._client(max(self.settings.rpc_timeout, DIRECTORY_MIN_TIMEOUT)) as client:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise DirectoryFetchError(f"Directory listing failed: {exc}") from exc

        if not isinstance(payload, dict) or payload.get("status") != "success":
            raise DirectoryFetchError("Directory listing returned non-success status")

        records = [NodeRecord.from_dict(item) for item in payload.get("data") or [] if isinstance(item, dict)]
        if 0 < self.settings.quick_sample_nodes < len(records):
            records = records[: self.settings.quick_sample_nodes]
        return records[: self.settings.max_nodes]

    async def fetch_peer_data(self, records: Sequence[NodeRecord]) -> List[PeerReport]:
        semaphore = asyncio.Semaphore(self.settings.max_workers)
        async with self._client(self.settings.rpc_timeout) as client:

            async def bounded(record: NodeRecord) -> PeerReport:
                async with semaphore:
                    return await self._probe_node(client, record)

            return list(await asyncio.gather(*(bounded(r) for r in records)))

    async def _probe_node(self, client: httpx.AsyncClient, record: NodeRecord) -> PeerReport:
        address = split_host_port(record.ip)
        if not address.valid:
            logger.warning("Skipping node with invalid address %r", record.ip)
            return PeerReport(node=record)

        host = address.host
        base_url = f"{self.settings.rpc_protocol}://{address.with_default_port(self.settings.rpc_port)}"
        optional_timeout = min(self.settings.rpc_timeout, OPTIONAL_PROBE_MAX_TIMEOUT)

        try:
            outgoing = _peer_list(await self._get_json(client, f"{base_url}/flux/connectedpeers"), host)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch peer data from %s: %s", host, exc)
            return PeerReport(node=record)

        if self.settings.max_peers_per_node > 0:
            outgoing = outgoing[: self.settings.max_peers_per_node]

        incoming: List[str] = []
        try:
            incoming = _peer_list(await self._get_json(client, f"{base_url}/flux/incomingconnections"), host)
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Incoming connections unavailable for %s: %s", host, exc)

        arcane: Optional[bool] = None
        if self.settings.enable_arcane_probe:
            try:
                payload = await self._get_json(client, f"{base_url}/flux/isarcaneos", optional_timeout)
                if isinstance(payload, dict) and payload.get("status") == "success":
                    arcane = bool(payload.get("data"))
            except (httpx.HTTPError, ValueError) as exc:
                logger.debug("Arcane probe failed for %s: %s", host, exc)

        bandwidth: Optional[Bandwidth] = None
        try:
            payload = await self._get_json(client, f"{base_url}/benchmark/getbenchmarks", optional_timeout)
            if isinstance(payload, dict) and payload.get("status") == "success":
                bandwidth = Bandwidth.from_dict(payload.get("data"))
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Benchmark fetch failed for %s: %s", host, exc)

        return PeerReport(
            node=record,
            outgoing_peers=outgoing,
            incoming_peers=incoming,
            arcane=arcane,
            bandwidth=bandwidth,
        )

    @staticmethod
    async def _get_json(client: httpx.AsyncClient, url: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        kwargs = {"timeout": timeout} if timeout is not None else {}
        response = await client.get(url, **kwargs)
        response.raise_for_status()
        return response.json()
