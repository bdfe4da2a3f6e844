"""
Offline peer source reading a previously captured crawl from JSON.

Accepted shapes: a list of peer reports, or ``{"reports": [...]}``.
"""

import logging
from typing import List, Optional

from atlas.core.models import PeerReport

from .file_store import LocalFileStore

logger = logging.getLogger(__name__)


class SnapshotPeerSource:
    """Satisfies ``IPeerSource`` from a JSON file."""

    def __init__(self, path: str, store: Optional[LocalFileStore] = None):
        self.path = path
        self.store = store or LocalFileStore()

    def load(self) -> List[PeerReport]:
        payload = self.store.read_json(self.path)
        if isinstance(payload, dict):
            payload = payload.get("reports")
        if not isinstance(payload, list):
            raise ValueError(f"{self.path}: expected a list of peer reports")
        reports = [PeerReport.from_dict(item) for item in payload]
        logger.info("Loaded %d peer reports from %s", len(reports), self.path)
        return reports

    async def collect(self) -> List[PeerReport]:
        return self.load()
