"""
FastAPI dependency injection for API routes.

Provides:
  - ``get_settings``: process settings, read once from the environment
  - ``create_atlas_service``: wires crawler, cache and build service
  - ``get_atlas_service``: the service instance attached to the app in the
    lifespan handler (overridden in tests)
"""

from functools import lru_cache

from fastapi import Request

from atlas.adapters.outbound import BuildCache, DirectoryCrawler
from atlas.application.services import AtlasService
from atlas.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def create_atlas_service(settings: Settings) -> AtlasService:
    cache = BuildCache(settings.cache_path) if settings.cache_path else None
    return AtlasService(settings, DirectoryCrawler(settings), cache)


def get_atlas_service(request: Request) -> AtlasService:
    return request.app.state.atlas_service
