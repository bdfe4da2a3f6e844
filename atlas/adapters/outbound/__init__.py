"""
Outbound adapters: HTTP crawler, JSON file store and snapshot reader.
"""
from .directory_client import DirectoryCrawler, DirectoryFetchError, sanitize_peer
from .file_store import BuildCache, LocalFileStore
from .snapshot_source import SnapshotPeerSource

__all__ = [
    "DirectoryCrawler",
    "DirectoryFetchError",
    "sanitize_peer",
    "BuildCache",
    "LocalFileStore",
    "SnapshotPeerSource",
]
