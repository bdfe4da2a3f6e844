"""
Peer Atlas API

FastAPI application serving the current network atlas build.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from atlas import __version__

from api.dependencies import create_atlas_service, get_settings
from api.routers import health, state

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    service = create_atlas_service(settings)
    app.state.atlas_service = service
    logger.info("Starting atlas service (update interval %.0fs)", settings.update_interval)
    # first build runs in the background; /healthz answers 202 until it lands
    service.load_cached()
    service.request_refresh()
    service.schedule_periodic()
    yield
    await service.stop()


app = FastAPI(
    title="Peer Atlas API",
    description="Peer-to-peer network topology and layout",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(state.router)


def run() -> None:
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=get_settings().port)


if __name__ == "__main__":
    run()
