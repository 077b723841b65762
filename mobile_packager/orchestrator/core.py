"""Core orchestrator - runs the export, compress, upload and build stages."""
from dataclasses import replace
from functools import partial
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional
import asyncio
import logging

from ..errors import AuthenticationError, StageFailure
from ..models import AuthContext, BlockingError, Build, ExportOptions, GameProject, PackagerConfig
from ..protocols import IArchiver, IBuildService, IExporter, IUploader, IValidator
from ..utils.events import EventEmitter
from .models import PipelineRun, PipelineStage
from .watcher import BuildWatcher

logger = logging.getLogger(__name__)

EXPORT_ERROR = "Error while exporting the game."
COMPRESS_ERROR = "Error while compressing the game."
UPLOAD_ERROR = "Error while uploading the game. Check your internet connection or try again later."
BUILD_ERROR = "Error while launching the build of the game."


class _RunAborted(Exception):
    """Current run failed or was superseded by a newer one."""


class PipelineOrchestrator:
    """
    Packages a game project through the remote build service.

    Stages run one after the other: export, compress, upload, build
    submission. Once the build is accepted it is handed to a BuildWatcher.
    Every transition replaces the PipelineRun snapshot and emits it on the
    "state" event; the first stage failure of a run is emitted on "error",
    later ones are dropped.

    Usage:
        async with PipelineOrchestrator(exporter, archiver, uploader,
                                        build_service, validator) as orchestrator:
            orchestrator.on_state_change(lambda run: print(run.stage))
            orchestrator.on_error(lambda failure: print(failure))
            if await orchestrator.start(project, auth):
                run = await orchestrator.wait()
    """

    def __init__(
        self,
        exporter: IExporter,
        archiver: IArchiver,
        uploader: IUploader,
        build_service: IBuildService,
        validator: IValidator,
        watcher: Optional[BuildWatcher] = None,
        config: Optional[PackagerConfig] = None,
        export_options: Optional[ExportOptions] = None,
    ):
        """
        Initialize orchestrator with its gateways.

        Args:
            exporter: Export stage gateway
            archiver: Compression stage gateway
            uploader: Upload stage gateway
            build_service: Remote build service
            validator: Pre-flight project check
            watcher: Build watcher (created from build_service if omitted)
            config: Packager configuration
            export_options: Options for the native export
        """
        self._config = config or PackagerConfig()
        self._exporter = exporter
        self._archiver = archiver
        self._uploader = uploader
        self._build_service = build_service
        self._validator = validator
        self._watcher = watcher or BuildWatcher(build_service, self._config.poll_interval)
        self._export_options = export_options or ExportOptions(export_for_cordova=True)

        self._events = EventEmitter()
        self._run = PipelineRun()
        self._runs_started = 0
        self._task: Optional[asyncio.Task] = None
        self._last_error: Optional[StageFailure] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    # Event subscription methods
    def on_state_change(self, callback: Callable[[PipelineRun], Any]):
        """Called with a new PipelineRun snapshot after every transition."""
        self._events.on("state", callback)

    def on_error(self, callback: Callable[[StageFailure], Any]):
        """Called once per failed run. Receives StageFailure."""
        self._events.on("error", callback)

    def on_validation_failed(self, callback: Callable[[List[BlockingError]], Any]):
        """Called when the project has blocking errors. Receives the error list."""
        self._events.on("validation_failed", callback)

    def on_build_updated(self, callback: Callable[[Build], Any]):
        """Called when the watched build changes. Receives Build."""
        self._events.on("build_updated", callback)

    @property
    def run(self) -> PipelineRun:
        return self._run

    @property
    def last_error(self) -> Optional[StageFailure]:
        return self._last_error

    @property
    def watcher(self) -> BuildWatcher:
        return self._watcher

    # Control methods
    async def start(self, project: Optional[GameProject], auth: AuthContext) -> bool:
        """
        Validate the project and start a new run in the background.

        Returns:
            True when the run was started, False when there was nothing to
            export or the project has blocking errors
        """
        if project is None:
            return False

        errors = self._validator.validate(project)
        if errors:
            logger.warning(f"Project {project.name!r} has {len(errors)} blocking error(s), not packaging")
            await self._events.emit("validation_failed", errors)
            return False

        self._watcher.stop()
        self._runs_started += 1
        self._last_error = None
        logger.info(f"Packaging {project.name!r} (run {self._runs_started})")
        await self._set_run(PipelineRun.begin(self._runs_started))

        self._task = asyncio.create_task(self._execute(self._run.run_id, project, auth))
        return True

    async def wait(self) -> PipelineRun:
        """Wait for the current run to submit its build or fail."""
        while self._task is not None:
            task = self._task
            await task
            # A listener may have started a new run meanwhile.
            if task is self._task:
                break
        return self._run

    async def launch(self, project: Optional[GameProject], auth: AuthContext) -> PipelineRun:
        """Start a run and wait for it."""
        if await self.start(project, auth):
            return await self.wait()
        return self._run

    async def close(self):
        """Stop watching builds."""
        self._watcher.stop()

    def download(self, artifact_key: str) -> Optional[str]:
        """URL of an artifact of the current build, if it has one."""
        build = self._run.build
        if build is None:
            return None
        return self._build_service.build_download_url(build, artifact_key)

    # Stages
    async def launch_export(self, run_id: int, project: GameProject) -> Path:
        return await self._exporter.export(
            project,
            self._export_options,
            output_dir=self._config.export_dir_for(run_id),
        )

    async def launch_compression(self, run_id: int, output_dir: Path) -> Path:
        return await self._archiver.archive(output_dir, self._config.archive_path_for(run_id))

    async def launch_upload(self, run_id: int, archive_path: Path) -> str:
        return await self._uploader.upload(
            archive_path,
            progress_callback=partial(self._on_upload_progress, run_id),
        )

    async def launch_build(self, auth: AuthContext, storage_key: str) -> Build:
        if not auth.authenticated:
            raise AuthenticationError("User is not authenticated")
        return await self._build_service.submit(auth.token, auth.user_id, storage_key)

    def start_build_watch(self, run_id: int, auth: AuthContext) -> None:
        build = self._run.build
        if build is None or not self._is_current(run_id):
            return

        self._watcher.start(
            auth,
            [build],
            on_build_updated=partial(self._on_build_updated, run_id),
        )

    async def _execute(self, run_id: int, project: GameProject, auth: AuthContext) -> None:
        try:
            output_dir = await self._guard(run_id, EXPORT_ERROR, self.launch_export(run_id, project))
            await self._advance(run_id, PipelineStage.COMPRESSING)

            archive_path = await self._guard(run_id, COMPRESS_ERROR, self.launch_compression(run_id, output_dir))
            await self._advance(run_id, PipelineStage.UPLOADING)

            storage_key = await self._guard(run_id, UPLOAD_ERROR, self.launch_upload(run_id, archive_path))
            await self._advance(run_id, PipelineStage.AWAITING_BUILD)

            build = await self._guard(run_id, BUILD_ERROR, self.launch_build(auth, storage_key))
            await self._advance(run_id, PipelineStage.BUILDING, build=build)
        except _RunAborted:
            return

        self.start_build_watch(run_id, auth)

    async def _guard(self, run_id: int, message: str, stage: Awaitable[Any]) -> Any:
        """Await a stage; report its failure and abort the run."""
        try:
            result = await stage
        except Exception as exc:
            await self.handle_error(message, exc, run_id=run_id)
            raise _RunAborted() from exc

        if not self._is_current(run_id):
            raise _RunAborted()
        return result

    async def handle_error(
        self,
        message: str,
        error: BaseException,
        run_id: Optional[int] = None,
    ) -> None:
        """Surface the first failure of a run. Later calls are no-ops."""
        if run_id is not None and not self._is_current(run_id):
            return
        if self._run.failed:
            logger.debug(f"Run {self._run.run_id} already failed, ignoring: {error}")
            return

        failure = StageFailure(message, self._run.stage, error)
        self._last_error = failure
        await self._set_run(replace(self._run, failed=True))
        logger.error(f"{failure}")
        await self._events.emit("error", failure)

    async def _advance(self, run_id: int, stage: PipelineStage, **changes) -> None:
        if not self._is_current(run_id) or self._run.failed:
            raise _RunAborted()
        logger.info(f"Stage: {stage.value}")
        await self._set_run(self._run.advance(stage, **changes))
        # State listeners may fail or restart the run.
        if not self._is_current(run_id) or self._run.failed:
            raise _RunAborted()

    async def _on_upload_progress(self, run_id: int, bytes_uploaded: int, total_bytes: int) -> None:
        if not self._is_current(run_id) or self._run.failed:
            return
        if self._run.stage is not PipelineStage.UPLOADING:
            return
        await self._set_run(
            replace(self._run, upload_progress=bytes_uploaded, upload_total=total_bytes)
        )

    async def _on_build_updated(self, run_id: int, build: Build) -> None:
        if not self._is_current(run_id):
            return
        await self._set_run(replace(self._run, build=build))
        await self._events.emit("build_updated", build)

    def _is_current(self, run_id: int) -> bool:
        return self._run.run_id == run_id

    async def _set_run(self, run: PipelineRun) -> None:
        self._run = run
        await self._events.emit("state", run)
