"""Pre-flight project checks."""
import re
from typing import Callable, Iterable, List, Optional

from ..models import BlockingError, GameProject

PACKAGE_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*(\.[a-zA-Z][a-zA-Z0-9_]*)+$")
VERSION_RE = re.compile(r"^\d+(\.\d+){0,3}$")

Rule = Callable[[GameProject], Optional[BlockingError]]


def check_name(project: GameProject) -> Optional[BlockingError]:
    if not project.name.strip():
        return BlockingError("The game must have a name.", "name")
    return None


def check_package_name(project: GameProject) -> Optional[BlockingError]:
    if not PACKAGE_NAME_RE.match(project.package_name):
        return BlockingError(
            f"Invalid package name '{project.package_name}', expected something like com.example.mygame.",
            "packageName",
        )
    return None


def check_version(project: GameProject) -> Optional[BlockingError]:
    if not VERSION_RE.match(project.version):
        return BlockingError(
            f"Invalid version '{project.version}', expected numbers separated by dots (1.0.0).",
            "version",
        )
    return None


def check_scenes(project: GameProject) -> Optional[BlockingError]:
    if not project.scenes:
        return BlockingError("The game has no scene to export.", "scenes")
    return None


DEFAULT_RULES = (check_name, check_package_name, check_version, check_scenes)


class ProjectValidator:
    """Runs every rule and collects blocking errors."""

    def __init__(self, rules: Iterable[Rule] = DEFAULT_RULES):
        self._rules = list(rules)

    def validate(self, project: GameProject) -> List[BlockingError]:
        errors = []
        for rule in self._rules:
            error = rule(project)
            if error is not None:
                errors.append(error)
        return errors
