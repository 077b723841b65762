"""Error taxonomy for packaging runs."""
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import BlockingError
    from .orchestrator.models import PipelineStage


class PackagerError(Exception):
    """Base class for packaging errors."""


class ValidationError(PackagerError):
    """Project has blocking errors; the run never starts."""

    def __init__(self, errors: List["BlockingError"]):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors) or "Invalid project")


class ExportError(PackagerError):
    """Native export failed."""


class ArchiveError(PackagerError):
    """Compression of the exported game failed."""


class UploadError(PackagerError):
    """Transfer of the archive failed."""


class UploadUnavailableError(UploadError):
    """No upload channel exists in the current runtime."""

    def __init__(self, message: str = "No support for upload"):
        super().__init__(message)


class SubmissionError(PackagerError):
    """Build service refused or failed the build request."""


class AuthenticationError(PackagerError):
    """No authenticated session."""


class FetchError(PackagerError):
    """Transient failure fetching a build status."""


class StageFailure(PackagerError):
    """The single failure surfaced for a pipeline run."""

    def __init__(
        self,
        message: str,
        stage: "PipelineStage",
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.stage = stage
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} (stage: {self.stage.value}, cause: {self.cause})"
        return f"{self.message} (stage: {self.stage.value})"
