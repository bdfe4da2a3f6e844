"""
Peer Atlas

Reconstructs a peer-to-peer network's connection topology from peer
self-reports and lays it out for visualization.
"""

__version__ = "1.0.0"
