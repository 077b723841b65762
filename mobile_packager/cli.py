"""Command line interface for mobile packager."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from rich.logging import RichHandler

from . import __version__
from .cli_progress import (
    PipelineProgressDisplay,
    render_configuration_summary,
    render_downloads,
    render_validation_errors,
)
from .errors import ValidationError
from .models import AuthContext, BlockingError, GameProject, PackagerConfig
from .orchestrator import PipelineOrchestrator
from .services import (
    ArchiverService,
    BuildService,
    ExporterService,
    HTTPAPIClient,
    HTTPUploadService,
    ProjectValidator,
    UnavailableUploadService,
)

ENV_PREFIX = "MOBILE_PACKAGER_"


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _env(name: str) -> Optional[str]:
    value = os.getenv(ENV_PREFIX + name)
    return value or None


def _build_config(args: argparse.Namespace) -> PackagerConfig:
    """Merge flags over MOBILE_PACKAGER_* environment variables."""
    api_url = args.api_url or _env("API_URL")
    if not api_url:
        raise CLIError(f"build API URL missing (use --api-url or {ENV_PREFIX}API_URL)")

    poll_value = args.poll_interval if args.poll_interval is not None else _env("POLL_INTERVAL")
    try:
        poll_interval = float(poll_value) if poll_value is not None else 5.0
    except ValueError as exc:
        raise CLIError(f"invalid poll interval: {poll_value}") from exc
    if poll_interval <= 0:
        raise CLIError(f"poll interval must be positive: {poll_interval}")

    return PackagerConfig(
        api_url=api_url,
        upload_url=args.upload_url or _env("UPLOAD_URL"),
        downloads_url=args.downloads_url or _env("DOWNLOADS_URL") or api_url,
        poll_interval=poll_interval,
        work_dir=args.work_dir,
    )


def _build_auth(args: argparse.Namespace) -> AuthContext:
    return AuthContext(
        token=args.token or _env("TOKEN"),
        user_id=args.user_id or _env("USER_ID"),
    )


def _load_project(path: Path) -> GameProject:
    try:
        return GameProject.load(path)
    except FileNotFoundError as exc:
        raise CLIError(f"no project file in {path}: {exc.filename}") from exc
    except (OSError, ValueError) as exc:
        raise CLIError(f"could not read project in {path}: {exc}") from exc


async def _run_package(
    project: GameProject,
    config: PackagerConfig,
    auth: AuthContext,
    wait_for_build: bool,
) -> int:
    if not auth.authenticated:
        raise CLIError(f"not authenticated (use --token/--user-id or {ENV_PREFIX}TOKEN/{ENV_PREFIX}USER_ID)")

    if config.upload_url:
        uploader = HTTPUploadService(config.upload_url, config.request_timeout)
    else:
        uploader = UnavailableUploadService()
    display = PipelineProgressDisplay()
    validation_errors: List[BlockingError] = []

    async with HTTPAPIClient(config.api_url, timeout=config.request_timeout) as api:
        build_service = BuildService(api, config)
        async with PipelineOrchestrator(
            ExporterService(config=config),
            ArchiverService(),
            uploader,
            build_service,
            ProjectValidator(),
            config=config,
        ) as orchestrator:
            orchestrator.on_state_change(display.on_state_change)
            orchestrator.on_error(display.on_error)
            orchestrator.on_build_updated(display.on_build_updated)
            orchestrator.on_validation_failed(validation_errors.extend)

            try:
                if not await orchestrator.start(project, auth):
                    raise ValidationError(validation_errors)
                run = await orchestrator.wait()
            except ValidationError as exc:
                render_validation_errors(exc.errors)
                return 1
            finally:
                display.close()

            if run.failed or run.build is None:
                return 1

            if not wait_for_build:
                print(f"Build {run.build.id} submitted.")
                return 0

            builds = await orchestrator.watcher.wait()
            build = builds.get(run.build.id, run.build)
            urls = {key: orchestrator.download(key) for key in build.artifacts}
            render_downloads(build, urls)
            return 0 if build.succeeded else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mobile-package",
        description="Package a game for Android using the online build service.",
    )
    parser.add_argument("project", nargs="?", type=Path, help="Project directory (holding project.json)")
    parser.add_argument("--api-url", default=None, help=f"Build API URL (default from {ENV_PREFIX}API_URL)")
    parser.add_argument(
        "--upload-url",
        default=None,
        help=f"Storage upload URL (default from {ENV_PREFIX}UPLOAD_URL; upload unavailable if unset)",
    )
    parser.add_argument(
        "--downloads-url",
        default=None,
        help=f"Public base URL of build artifacts (default from {ENV_PREFIX}DOWNLOADS_URL)",
    )
    parser.add_argument("--token", default=None, help=f"Authorization token (default from {ENV_PREFIX}TOKEN)")
    parser.add_argument("--user-id", default=None, help=f"User id (default from {ENV_PREFIX}USER_ID)")
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between build status checks (default 5)",
    )
    parser.add_argument(
        "--work-dir",
        type=Path,
        default=None,
        help="Directory for export output and archive (default: system temp dir)",
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Exit once the build is submitted instead of waiting for it",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"mobile-package {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.project is None:
        parser.print_help()
        return 0

    project_dir = Path(args.project).expanduser()
    if not project_dir.is_dir():
        print(f"ERROR: project directory does not exist: {project_dir}", file=sys.stderr)
        return 1

    try:
        config = _build_config(args)
        auth = _build_auth(args)
        project = _load_project(project_dir)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Project": f"{project.name} ({project.package_name} {project.version})",
            "Build API": config.api_url,
            "Upload": config.upload_url or "(unavailable)",
            "Downloads": config.downloads_url,
            "User": auth.user_id or "(not authenticated)",
            "Work Dir": str(config.get_work_dir()),
            "Poll Interval": f"{config.poll_interval:g}s",
            "Wait For Build": "no" if args.no_wait else "yes",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_package(
                project=project,
                config=config,
                auth=auth,
                wait_for_build=not args.no_wait,
            )
        )
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
