"""Orchestrator package - coordinates the packaging pipeline."""
from .admission import can_launch_build
from .core import PipelineOrchestrator
from .models import PipelineRun, PipelineStage
from .watcher import BuildWatcher

__all__ = ["PipelineOrchestrator", "PipelineRun", "PipelineStage", "BuildWatcher", "can_launch_build"]
