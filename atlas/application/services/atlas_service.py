import asyncio
import logging
import time
from typing import Optional, Set

from atlas.application.pipeline import build_atlas
from atlas.config.settings import Settings
from atlas.core.artifacts import AtlasBuild, AtlasState
from atlas.core.interfaces import IBuildCache, IPeerSource

logger = logging.getLogger(__name__)


class AtlasService:
    """
    Owns the current AtlasBuild and refreshes it.

    At most one refresh runs at a time. Readers always get either the previous
    completed build or the new one, never a partial graph; a failed refresh
    keeps the previous build and records the error next to it.
    """

    def __init__(
        self,
        settings: Settings,
        peer_source: IPeerSource,
        cache: Optional[IBuildCache] = None,
    ):
        self.settings = settings
        self.peer_source = peer_source
        self.cache = cache
        self.started_at = time.time()
        self._state = AtlasState(building=True)
        self._in_flight = False
        self._periodic_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    @property
    def refreshing(self) -> bool:
        return self._in_flight

    @property
    def uptime(self) -> float:
        return time.time() - self.started_at

    def get_state(self) -> AtlasState:
        return self._state

    def load_cached(self) -> Optional[AtlasBuild]:
        if self.cache is None:
            return None
        build = self.cache.load()
        if build is not None:
            logger.info("Loaded cached build %s (%d nodes)", build.build_id, len(build.nodes))
            self._state = AtlasState(building=self._state.building, data=build, error=self._state.error)
        return build

    async def refresh(self) -> bool:
        """Crawl and rebuild. Returns False if a refresh is already running."""
        if not self._begin():
            return False
        await self._run()
        return True

    def request_refresh(self) -> bool:
        """Start a refresh in the background; False if one is already running."""
        if not self._begin():
            return False
        task = asyncio.create_task(self._run())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return True

    def _begin(self) -> bool:
        if self._in_flight:
            logger.info("Refresh requested while a build is in progress; ignoring")
            return False
        self._in_flight = True
        self._state = AtlasState(building=True, data=self._state.data)
        return True

    async def _run(self) -> None:
        previous = self._state.data
        try:
            reports = await self.peer_source.collect()
            outcome = await asyncio.to_thread(build_atlas, reports, self.settings.build_config())
        except Exception as exc:
            logger.exception("Atlas refresh failed")
            self._state = AtlasState(building=False, data=previous, error=str(exc) or type(exc).__name__)
            return
        finally:
            self._in_flight = False

        build = outcome.build
        self._state = AtlasState(building=False, data=build)
        if self.cache is not None:
            try:
                self.cache.save(build)
            except OSError as exc:
                logger.warning("Could not write build cache: %s", exc)

    async def start(self) -> None:
        """Restore the cache, build once, then refresh on the configured interval."""
        self.load_cached()
        await self.refresh()
        self.schedule_periodic()

    def schedule_periodic(self) -> Optional[asyncio.Task]:
        """Refresh every ``update_interval`` seconds; 0 disables it."""
        if self.settings.update_interval <= 0 or self._periodic_task is not None:
            return self._periodic_task
        self._periodic_task = asyncio.create_task(self._periodic())
        return self._periodic_task

    async def stop(self) -> None:
        """Cancel the periodic schedule; an in-flight refresh runs to completion."""
        if self._periodic_task is not None:
            self._periodic_task.cancel()
            try:
                await self._periodic_task
            except asyncio.CancelledError:
                pass
            self._periodic_task = None
        if self._background:
            await asyncio.gather(*self._background)

    async def _periodic(self) -> None:
        while True:
            await asyncio.sleep(self.settings.update_interval)
            self.request_refresh()
