"""Polling watcher for submitted builds."""
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union
import asyncio
import inspect
import logging

from ..errors import FetchError
from ..models import AuthContext, Build
from ..protocols import IBuildService

logger = logging.getLogger(__name__)

BuildCallback = Callable[[Build], Union[None, Awaitable[None]]]

DEFAULT_POLL_INTERVAL = 5.0


class BuildWatcher:
    """
    Polls the build service until every watched build is terminal.

    One asyncio task acts as the polling timer. start() replaces any
    previous task, stop() cancels it.

    Usage:
        watcher = BuildWatcher(build_service)
        watcher.start(auth, [build], on_build_updated=print)
        ...
        watcher.stop()
    """

    def __init__(self, build_service: IBuildService, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self._service = build_service
        self._poll_interval = poll_interval
        self._task: Optional[asyncio.Task] = None
        self._builds: Dict[str, Build] = {}
        self._auth: Optional[AuthContext] = None
        self._on_build_updated: Optional[BuildCallback] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def builds(self) -> Dict[str, Build]:
        """Last known record of every watched build."""
        return dict(self._builds)

    def pending_builds(self) -> List[Build]:
        return [build for build in self._builds.values() if not build.is_terminal]

    def start(
        self,
        auth: AuthContext,
        builds: Iterable[Build],
        on_build_updated: BuildCallback,
    ) -> None:
        """Watch builds. First poll happens right away, not after one interval."""
        self.stop()

        self._auth = auth
        self._builds = {build.id: build for build in builds}
        self._on_build_updated = on_build_updated
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Watching builds: {', '.join(self._builds) or '-'}")

    def stop(self) -> None:
        """Cancel the polling task. Safe to call at any time."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def wait(self) -> Dict[str, Build]:
        """Wait until the watcher stops by itself, return final records."""
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self.builds

    async def _run(self) -> None:
        while True:
            await self.poll()
            if not self.pending_builds():
                logger.info("All watched builds are terminal, stopping watcher")
                return
            await asyncio.sleep(self._poll_interval)

    async def poll(self) -> None:
        """One tick: refresh every non-terminal build."""
        if self._auth is None:
            raise RuntimeError("BuildWatcher not started")
        for build in self.pending_builds():
            try:
                fresh = await self._service.fetch_status(self._auth.token, build.id)
            except FetchError as e:
                logger.warning(f"Could not refresh build {build.id}, retrying next tick: {e}")
                continue
            except Exception as e:
                logger.warning(f"Unexpected error refreshing build {build.id}, retrying next tick: {e!r}")
                continue

            if fresh == self._builds.get(build.id):
                continue

            self._builds[build.id] = fresh
            logger.info(f"Build {fresh.id} is now {fresh.status}")
            if self._on_build_updated is not None:
                try:
                    result = self._on_build_updated(fresh)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(f"Error in build update callback for {fresh.id}: {e}")
