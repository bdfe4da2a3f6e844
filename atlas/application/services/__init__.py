from .atlas_service import AtlasService

__all__ = ["AtlasService"]
