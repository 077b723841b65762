"""
Models for mobile packager.

Immutable dataclasses shared by gateways, orchestrator and CLI.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, List, Mapping
import json
import tempfile


PROJECT_FILE = "project.json"
TERMINAL_STATUSES = frozenset({"complete", "error"})


@dataclass(frozen=True)
class GameProject:
    """Game project to be packaged."""
    name: str
    package_name: str
    version: str
    root_dir: Path
    scenes: List[str] = field(default_factory=list)

    @classmethod
    def load(cls, path: Path) -> "GameProject":
        """Load project from a directory holding project.json."""
        root = Path(path)
        data = json.loads((root / PROJECT_FILE).read_text(encoding="utf-8"))
        return cls(
            name=data.get("name", ""),
            package_name=data.get("packageName", ""),
            version=str(data.get("version", "")),
            root_dir=root,
            scenes=list(data.get("scenes") or []),
        )


@dataclass(frozen=True)
class BuildLimit:
    """Usage limit for a build type."""
    max: int = 0
    current: int = 0
    limit_reached: bool = False


@dataclass(frozen=True)
class AuthContext:
    """Authenticated session used for build submission and polling."""
    token: Optional[str] = None
    user_id: Optional[str] = None
    limits: Mapping[str, BuildLimit] = field(default_factory=dict)

    @property
    def authenticated(self) -> bool:
        return bool(self.token and self.user_id)

    def get_limit(self, name: str) -> Optional[BuildLimit]:
        return self.limits.get(name)


@dataclass(frozen=True)
class Build:
    """Remote build job record. Owned by the build service."""
    id: str
    status: str = "pending"
    type: Optional[str] = None
    user_id: Optional[str] = None
    artifacts: Mapping[str, str] = field(default_factory=dict)
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def succeeded(self) -> bool:
        return self.status == "complete"

    def artifact(self, key: str) -> Optional[str]:
        return self.artifacts.get(key)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Build":
        """Build record from service JSON. Fields ending in 'Key' are artifacts."""
        artifacts = {
            name: value
            for name, value in data.items()
            if name.endswith("Key") and value
        }
        return cls(
            id=str(data["id"]),
            status=data.get("status", "pending"),
            type=data.get("type"),
            user_id=data.get("userId"),
            artifacts=artifacts,
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass(frozen=True)
class BlockingError:
    """Project error that prevents packaging."""
    message: str
    field: Optional[str] = None

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


@dataclass(frozen=True)
class ExportOptions:
    """Options passed to the native exporter."""
    export_for_cordova: bool = True


@dataclass(frozen=True)
class PackagerConfig:
    """Immutable configuration for packaging runs."""
    api_url: str = ""
    upload_url: Optional[str] = None  # None: no upload channel
    downloads_url: str = ""
    poll_interval: float = 5.0
    export_dir_name: str = "OnlineCordovaExport"
    archive_name: str = "game-archive.zip"
    work_dir: Optional[Path] = None
    build_type: str = "cordova-build"
    request_timeout: int = 60

    def get_work_dir(self) -> Path:
        """Directory for export output and archives."""
        return Path(self.work_dir) if self.work_dir else Path(tempfile.gettempdir())

    @property
    def export_dir(self) -> Path:
        return self.get_work_dir() / self.export_dir_name

    @property
    def archive_path(self) -> Path:
        return self.get_work_dir() / self.archive_name

    def run_dir(self, run_id: int) -> Path:
        """Private directory of one packaging run."""
        return self.get_work_dir() / f"run-{run_id}"

    def export_dir_for(self, run_id: int) -> Path:
        return self.run_dir(run_id) / self.export_dir_name

    def archive_path_for(self, run_id: int) -> Path:
        return self.run_dir(run_id) / self.archive_name
