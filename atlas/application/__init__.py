"""
Application layer: the pure build pipeline and the stateful build service.
"""
from .pipeline import BuildOutcome, build_atlas, iso_timestamp, make_build_id
from .services import AtlasService

__all__ = ["BuildOutcome", "build_atlas", "iso_timestamp", "make_build_id", "AtlasService"]
