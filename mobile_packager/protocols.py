"""
Protocols (Interfaces) for the packaging collaborators.

The orchestrator only depends on these contracts; concrete gateways live
in mobile_packager.services and can be swapped for fakes in tests.
"""
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol, runtime_checkable

from .models import BlockingError, Build, ExportOptions, GameProject


ProgressCallback = Callable[[int, int], Any]


@runtime_checkable
class INativeExporter(Protocol):
    """Interface for the engine-level project exporter."""

    def export_whole_project(
        self,
        project: GameProject,
        output_dir: Path,
        options: ExportOptions,
    ) -> None:
        """Write exported game files into output_dir."""
        ...


@runtime_checkable
class IExporter(Protocol):
    """Interface for the export stage."""

    async def export(
        self,
        project: GameProject,
        options: Optional[ExportOptions] = None,
        output_dir: Optional[Path] = None,
    ) -> Path:
        """Export project into output_dir (or a default one), return it."""
        ...


@runtime_checkable
class IArchiver(Protocol):
    """Interface for the compression stage."""

    async def archive(self, source_dir: Path, dest_file: Path) -> Path:
        """Compress source_dir into dest_file, return dest_file."""
        ...


@runtime_checkable
class IUploader(Protocol):
    """Interface for the upload stage."""

    @property
    def available(self) -> bool:
        """Whether an upload channel exists."""
        ...

    async def upload(
        self,
        path: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        """Upload file, return storage key."""
        ...


@runtime_checkable
class IBuildService(Protocol):
    """Interface for the remote build service."""

    async def submit(self, auth_token: str, user_id: str, storage_key: str) -> Build:
        """Request a build for an uploaded archive."""
        ...

    async def fetch_status(self, auth_token: str, build_id: str) -> Build:
        """Fetch current build record."""
        ...

    def build_download_url(self, build: Build, artifact_key: str) -> Optional[str]:
        """Public URL of a build artifact."""
        ...


@runtime_checkable
class IValidator(Protocol):
    """Interface for the pre-flight project check."""

    def validate(self, project: GameProject) -> List[BlockingError]:
        """Return blocking errors, empty when project can be packaged."""
        ...


__all__ = [
    "IArchiver",
    "IBuildService",
    "IExporter",
    "INativeExporter",
    "IUploader",
    "IValidator",
    "ProgressCallback",
]
