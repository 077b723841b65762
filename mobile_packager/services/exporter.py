"""
Exporter Service - Single Responsibility: export a project to static files.

Prepares the output directory and delegates the export itself to a native
exporter running off the event loop.
"""
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import escape, quoteattr
import asyncio
import logging
import shutil

from ..errors import ExportError
from ..models import ExportOptions, GameProject, PackagerConfig, PROJECT_FILE
from ..protocols import INativeExporter

logger = logging.getLogger(__name__)


class DirectoryExporter:
    """
    Native exporter for projects stored as plain directories.

    Copies the project tree and writes a Cordova config.xml when requested.
    """

    def export_whole_project(
        self,
        project: GameProject,
        output_dir: Path,
        options: ExportOptions,
    ) -> None:
        root = Path(project.root_dir)
        if not root.is_dir():
            raise FileNotFoundError(f"Project directory not found: {root}")

        for source in root.iterdir():
            if source.name == PROJECT_FILE:
                continue
            target = output_dir / source.name
            if source.is_dir():
                shutil.copytree(source, target)
            else:
                shutil.copy2(source, target)

        if options.export_for_cordova:
            (output_dir / "config.xml").write_text(
                self.render_cordova_config(project), encoding="utf-8"
            )

    @staticmethod
    def render_cordova_config(project: GameProject) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            f'<widget id={quoteattr(project.package_name)} version={quoteattr(project.version)}'
            ' xmlns="http://www.w3.org/ns/widgets">\n'
            f"  <name>{escape(project.name)}</name>\n"
            '  <content src="index.html" />\n'
            '  <access origin="*" />\n'
            "</widget>\n"
        )


class ExporterService:
    """Service running the export stage."""

    def __init__(
        self,
        native_exporter: Optional[INativeExporter] = None,
        config: Optional[PackagerConfig] = None,
    ):
        """
        Initialize exporter service.

        Args:
            native_exporter: Engine exporter (defaults to DirectoryExporter)
            config: Packager configuration
        """
        self._native = native_exporter or DirectoryExporter()
        self._config = config or PackagerConfig()

    def prepare_output_dir(self, output_dir: Optional[Path] = None) -> Path:
        """Create the export directory and clear its contents."""
        output_dir = Path(output_dir) if output_dir else self._config.export_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        for child in output_dir.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        return output_dir

    async def export(
        self,
        project: GameProject,
        options: Optional[ExportOptions] = None,
        output_dir: Optional[Path] = None,
    ) -> Path:
        """Export project, return output directory."""
        options = options or ExportOptions()
        try:
            output_dir = await asyncio.to_thread(self.prepare_output_dir, output_dir)
            logger.debug(f"Exporting {project.name} to {output_dir}")
            await asyncio.to_thread(self._native.export_whole_project, project, output_dir, options)
        except Exception as exc:
            raise ExportError(f"Unable to export the game: {exc}") from exc

        logger.info(f"Exported {project.name} to {output_dir}")
        return output_dir
