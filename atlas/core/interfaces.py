"""
Port Interfaces

Protocols for the collaborators of the build service. The crawler and the
snapshot reader satisfy ``IPeerSource``; the JSON cache file satisfies
``IBuildCache``. Services depend on these rather than on concrete adapters.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from .artifacts import AtlasBuild
from .models import PeerReport


@runtime_checkable
class IPeerSource(Protocol):
    """Produces the fully fetched peer dataset for one build."""

    async def collect(self) -> List[PeerReport]:
        """Return one report per directory-listed node."""
        ...


@runtime_checkable
class IBuildCache(Protocol):
    """Single-slot persistence for the last completed build."""

    def load(self) -> Optional[AtlasBuild]:
        """Return the cached build, or None when nothing usable is stored."""
        ...

    def save(self, build: AtlasBuild) -> None:
        """Replace the cached build."""
        ...
