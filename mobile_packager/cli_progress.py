"""Console rendering and progress helpers for the packager CLI."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .errors import StageFailure
from .models import BlockingError, Build
from .orchestrator.models import PipelineRun, PipelineStage

console = Console()

STAGE_LABELS = {
    PipelineStage.EXPORTING: "Exporting the game",
    PipelineStage.COMPRESSING: "Compressing",
    PipelineStage.UPLOADING: "Uploading",
    PipelineStage.AWAITING_BUILD: "Launching the build",
    PipelineStage.BUILDING: "Building",
}


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]mobile-package[/bold green]",
        subtitle="[dim]Android build[/dim]",
        border_style="blue",
    )
    console.print(panel)


def describe_upload(run: PipelineRun) -> str:
    """One-line upload summary, e.g. '1.50 MB / 3.00 MB (50.0%)'."""
    return (
        f"{_human_size(run.upload_progress)} / {_human_size(run.upload_total)} "
        f"({run.upload_percent:.1f}%)"
    )


def render_validation_errors(errors: List[BlockingError]) -> None:
    console.print("[bold red]The project can't be packaged:[/bold red]")
    for error in errors:
        console.print(f"  [red]-[/red] {error}")


def render_downloads(build: Build, urls: Dict[str, Optional[str]]) -> None:
    """Print artifact links of a finished build."""
    table = Table(title=f"Build {build.id}", show_header=True, header_style="bold cyan")
    table.add_column("Artifact")
    table.add_column("URL")
    for key, url in urls.items():
        table.add_row(key, url or "-")
    console.print(table)


class PipelineProgressDisplay:
    """
    Live renderer for a packaging run.

    Stage changes are printed as lines, the upload is shown as a transfer bar.
    """

    def __init__(self):
        self._last_stage: Optional[PipelineStage] = None
        self._last_run: Optional[PipelineRun] = None
        self._last_status: Optional[str] = None
        self._progress: Optional[Progress] = None
        self._upload_task: Optional[TaskID] = None

    def on_state_change(self, run: PipelineRun) -> None:
        if run.stage != self._last_stage:
            self._finish_upload_bar()
            if self._last_stage is PipelineStage.UPLOADING and self._last_run is not None:
                console.print(f"  Uploaded {describe_upload(self._last_run)}")
            self._last_stage = run.stage
            label = STAGE_LABELS.get(run.stage)
            if label:
                console.print(f"[bold blue]>[/bold blue] {label}...")
            if run.stage is PipelineStage.UPLOADING:
                self._start_upload_bar()

        if run.stage is PipelineStage.UPLOADING and self._upload_task is not None and run.upload_total:
            self._progress.update(
                self._upload_task,
                completed=run.upload_progress,
                total=run.upload_total,
            )

        if run.failed:
            self._finish_upload_bar()
        self._last_run = run

    def on_build_updated(self, build: Build) -> None:
        if build.status == self._last_status:
            return
        self._last_status = build.status
        color = {"complete": "green", "error": "red"}.get(build.status, "yellow")
        console.print(f"  Build {build.id}: [{color}]{build.status}[/{color}]")

    def on_error(self, failure: StageFailure) -> None:
        self._finish_upload_bar()
        console.print(f"[bold red]{failure.message}[/bold red]")
        if failure.cause is not None:
            console.print(f"[dim]  during {failure.stage.value}: {failure.cause}[/dim]")

    def close(self) -> None:
        self._finish_upload_bar()

    def _start_upload_bar(self) -> None:
        self._progress = Progress(
            TextColumn("  [cyan]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=console,
            transient=False,
        )
        self._progress.start()
        self._upload_task = self._progress.add_task("archive", total=None)

    def _finish_upload_bar(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._upload_task = None
