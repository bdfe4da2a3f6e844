"""
File Store Adapter

Local JSON persistence: the generic ``LocalFileStore`` and the single-slot
``BuildCache`` holding the last completed build.
"""

import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional

from atlas.core.artifacts import AtlasBuild

logger = logging.getLogger(__name__)


class LocalFileStore:
    """JSON file I/O on the local filesystem."""

    def read_json(self, path: str) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def write_json(self, path: str, data: Dict[str, Any]) -> str:
        """Write *data* to a temporary sibling, then atomically replace *path*."""
        directory = os.path.dirname(path)
        self.makedirs(directory)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory or ".")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return path

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def makedirs(self, path: str) -> None:
        if path:
            os.makedirs(path, exist_ok=True)


class BuildCache:
    """Persists the last completed AtlasBuild; satisfies ``IBuildCache``."""

    def __init__(self, path: str, store: Optional[LocalFileStore] = None):
        self.path = path
        self.store = store or LocalFileStore()

    def load(self) -> Optional[AtlasBuild]:
        if not self.path or not self.store.exists(self.path):
            return None
        try:
            return AtlasBuild.from_dict(self.store.read_json(self.path))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring unreadable build cache %s: %s", self.path, exc)
            return None

    def save(self, build: AtlasBuild) -> None:
        if not self.path:
            return
        self.store.write_json(self.path, build.to_dict())
        logger.debug("Wrote build %s to %s", build.build_id, self.path)
