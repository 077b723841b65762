"""
Mobile packager - builds a game for Android through a remote build service.

The pipeline exports the project, compresses it, uploads the archive and
submits a build, then watches the build until it completes.

Usage:
    from mobile_packager import (
        PipelineOrchestrator, ExporterService, ArchiverService,
        HTTPUploadService, HTTPAPIClient, BuildService, ProjectValidator,
        GameProject, AuthContext, PackagerConfig,
    )

    config = PackagerConfig(api_url=..., upload_url=..., downloads_url=...)
    async with HTTPAPIClient(config.api_url) as api:
        build_service = BuildService(api, config)
        orchestrator = PipelineOrchestrator(
            ExporterService(config=config),
            ArchiverService(),
            HTTPUploadService(config.upload_url),
            build_service,
            ProjectValidator(),
            config=config,
        )
        run = await orchestrator.launch(GameProject.load(path), auth)
        builds = await orchestrator.watcher.wait()
"""
from .errors import (
    ArchiveError,
    AuthenticationError,
    ExportError,
    FetchError,
    PackagerError,
    StageFailure,
    SubmissionError,
    UploadError,
    UploadUnavailableError,
    ValidationError,
)
from .models import AuthContext, BlockingError, Build, BuildLimit, ExportOptions, GameProject, PackagerConfig
from .orchestrator import BuildWatcher, PipelineOrchestrator, PipelineRun, PipelineStage, can_launch_build
from .services import (
    ArchiverService,
    BuildService,
    DirectoryExporter,
    ExporterService,
    HTTPAPIClient,
    HTTPUploadService,
    ProjectValidator,
    UnavailableUploadService,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "PipelineOrchestrator",
    "PipelineRun",
    "PipelineStage",
    "BuildWatcher",
    "can_launch_build",
    # Models
    "AuthContext",
    "BlockingError",
    "Build",
    "BuildLimit",
    "ExportOptions",
    "GameProject",
    "PackagerConfig",
    # Services
    "ArchiverService",
    "BuildService",
    "DirectoryExporter",
    "ExporterService",
    "HTTPAPIClient",
    "HTTPUploadService",
    "ProjectValidator",
    "UnavailableUploadService",
    # Errors
    "ArchiveError",
    "AuthenticationError",
    "ExportError",
    "FetchError",
    "PackagerError",
    "StageFailure",
    "SubmissionError",
    "UploadError",
    "UploadUnavailableError",
    "ValidationError",
]
