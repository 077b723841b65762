"""Tests for mobile packager CLI helpers."""
import argparse
import json
import logging
import os
from functools import partial

import httpx
import pytest

from mobile_packager import cli
from mobile_packager.cli import (
    CLIError,
    _build_auth,
    _build_config,
    _build_parser,
    _load_env_file,
    _load_project,
    _setup_logging,
    run_cli,
)
from mobile_packager.services import HTTPAPIClient, HTTPUploadService

ENV_NAMES = [
    "MOBILE_PACKAGER_API_URL",
    "MOBILE_PACKAGER_UPLOAD_URL",
    "MOBILE_PACKAGER_DOWNLOADS_URL",
    "MOBILE_PACKAGER_TOKEN",
    "MOBILE_PACKAGER_USER_ID",
    "MOBILE_PACKAGER_POLL_INTERVAL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    yield
    logging.disable(logging.NOTSET)


def _args(*argv) -> argparse.Namespace:
    return _build_parser().parse_args(list(argv))


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# build service",
                "MOBILE_PACKAGER_API_URL=https://api.test",
                "MOBILE_PACKAGER_TOKEN='secret'",
                "export MOBILE_PACKAGER_USER_ID=u1",
            ]
        ),
        encoding="utf-8",
    )

    _load_env_file(env_path)

    assert os.environ["MOBILE_PACKAGER_API_URL"] == "https://api.test"
    assert os.environ["MOBILE_PACKAGER_TOKEN"] == "secret"
    assert os.environ["MOBILE_PACKAGER_USER_ID"] == "u1"


def test_load_env_file_keeps_existing_values(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("MOBILE_PACKAGER_TOKEN=from-file\n", encoding="utf-8")
    monkeypatch.setenv("MOBILE_PACKAGER_TOKEN", "from-shell")

    _load_env_file(env_path)

    assert os.environ["MOBILE_PACKAGER_TOKEN"] == "from-shell"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError, match="not found"):
        _load_env_file(tmp_path / "missing.env")


def test_build_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("MOBILE_PACKAGER_API_URL", "https://api.test")
    monkeypatch.setenv("MOBILE_PACKAGER_UPLOAD_URL", "https://storage.test")
    monkeypatch.setenv("MOBILE_PACKAGER_POLL_INTERVAL", "2.5")

    config = _build_config(_args("game", "--work-dir", str(tmp_path)))

    assert config.api_url == "https://api.test"
    assert config.upload_url == "https://storage.test"
    assert config.downloads_url == "https://api.test"
    assert config.poll_interval == 2.5
    assert config.work_dir == tmp_path


def test_flags_override_env(monkeypatch):
    monkeypatch.setenv("MOBILE_PACKAGER_API_URL", "https://env.test")
    monkeypatch.setenv("MOBILE_PACKAGER_TOKEN", "env-token")

    args = _args("game", "--api-url", "https://flag.test", "--token", "flag-token", "--user-id", "u1")
    config = _build_config(args)
    auth = _build_auth(args)

    assert config.api_url == "https://flag.test"
    assert config.upload_url is None
    assert auth.token == "flag-token"
    assert auth.authenticated is True


def test_build_config_requires_api_url():
    with pytest.raises(CLIError, match="API URL"):
        _build_config(_args("game"))


def test_build_config_rejects_bad_interval(monkeypatch):
    monkeypatch.setenv("MOBILE_PACKAGER_API_URL", "https://api.test")
    monkeypatch.setenv("MOBILE_PACKAGER_POLL_INTERVAL", "soon")

    with pytest.raises(CLIError, match="poll interval"):
        _build_config(_args("game"))


def test_load_project_errors(tmp_path):
    with pytest.raises(CLIError, match="no project file"):
        _load_project(tmp_path)

    (tmp_path / "project.json").write_text("{broken", encoding="utf-8")
    with pytest.raises(CLIError, match="could not read project"):
        _load_project(tmp_path)


def test_setup_logging_modes():
    assert _setup_logging(debug=False, silent=False, log_level=None) == "silent"
    assert _setup_logging(debug=True, silent=False, log_level=None) == "DEBUG"
    assert _setup_logging(debug=False, silent=False, log_level="warning") == "WARNING"
    assert logging.getLogger().level == logging.WARNING


def test_run_cli_without_project_prints_help(capsys):
    assert run_cli(["--silent"]) == 0
    assert "mobile-package" in capsys.readouterr().out


def test_run_cli_missing_project_dir(tmp_path, capsys):
    assert run_cli(["--silent", str(tmp_path / "missing")]) == 1
    assert "does not exist" in capsys.readouterr().err


def test_run_cli_reports_validation_errors(tmp_path, capsys):
    project_dir = tmp_path / "game"
    project_dir.mkdir()
    (project_dir / "project.json").write_text(
        json.dumps({"name": "Game", "packageName": "game", "version": "1.0", "scenes": ["Main"]}),
        encoding="utf-8",
    )

    code = run_cli([
        "--silent",
        str(project_dir),
        "--api-url", "http://127.0.0.1:9",
        "--token", "token-1",
        "--user-id", "u1",
        "--work-dir", str(tmp_path / "work"),
    ])

    assert code == 1
    assert "Invalid package name" in capsys.readouterr().out
    assert not (tmp_path / "work").exists()


def test_run_cli_requires_authentication(tmp_path, capsys):
    project_dir = tmp_path / "game"
    project_dir.mkdir()
    (project_dir / "project.json").write_text(
        json.dumps({"name": "Game", "packageName": "com.example.game", "version": "1.0", "scenes": ["Main"]}),
        encoding="utf-8",
    )

    code = run_cli(["--silent", str(project_dir), "--api-url", "http://127.0.0.1:9"])

    assert code == 1
    assert "not authenticated" in capsys.readouterr().err


def _write_project(tmp_path):
    project_dir = tmp_path / "game"
    project_dir.mkdir()
    (project_dir / "index.html").write_text("<html></html>", encoding="utf-8")
    (project_dir / "project.json").write_text(
        json.dumps({"name": "Game", "packageName": "com.example.game", "version": "1.0", "scenes": ["Main"]}),
        encoding="utf-8",
    )
    return project_dir


def _package_args(tmp_path, project_dir, *extra):
    return [
        "--silent",
        str(project_dir),
        "--api-url", "https://api.test",
        "--upload-url", "https://storage.test",
        "--downloads-url", "https://dl.test",
        "--token", "token-1",
        "--user-id", "u1",
        "--poll-interval", "0.01",
        "--work-dir", str(tmp_path / "work"),
        *extra,
    ]


def _build_api(final_status="complete", upload_status=200):
    """Fake storage and build service, records every request."""
    requests = []

    def handler(request):
        requests.append((request.method, request.url.path))
        if request.method == "PUT":
            return httpx.Response(upload_status)
        if request.method == "POST" and request.url.path == "/build":
            return httpx.Response(200, json={"id": "b1", "status": "pending"})
        if request.method == "GET" and request.url.path == "/build/b1":
            body = {"id": "b1", "status": final_status}
            if final_status == "complete":
                body["apkKey"] = "b1/game.apk"
            return httpx.Response(200, json=body)
        return httpx.Response(404)

    return handler, requests


@pytest.fixture
def fake_api(monkeypatch):
    def install(**kwargs):
        handler, requests = _build_api(**kwargs)
        transport = httpx.MockTransport(handler)
        monkeypatch.setattr(cli, "HTTPAPIClient", partial(HTTPAPIClient, transport=transport, retry_delay=0))
        monkeypatch.setattr(cli, "HTTPUploadService", partial(HTTPUploadService, transport=transport))
        return requests

    return install


def test_run_cli_packages_and_prints_downloads(tmp_path, capsys, fake_api):
    requests = fake_api()
    project_dir = _write_project(tmp_path)

    code = run_cli(_package_args(tmp_path, project_dir))

    out = capsys.readouterr().out
    assert code == 0
    assert "https://dl.test/b1/game.apk" in out
    assert [method for method, _ in requests] == ["PUT", "POST", "GET"]
    assert requests[1][1] == "/build"
    assert (tmp_path / "work" / "run-1" / "game-archive.zip").exists()


def test_run_cli_no_wait_exits_after_submission(tmp_path, capsys, fake_api):
    requests = fake_api()
    project_dir = _write_project(tmp_path)

    code = run_cli(_package_args(tmp_path, project_dir, "--no-wait"))

    assert code == 0
    assert "Build b1 submitted." in capsys.readouterr().out
    assert ("GET", "/build/b1") not in requests


def test_run_cli_stage_failure_exits_with_error(tmp_path, capsys, fake_api):
    requests = fake_api(upload_status=500)
    project_dir = _write_project(tmp_path)

    code = run_cli(_package_args(tmp_path, project_dir))

    assert code == 1
    assert "Error while uploading the game." in capsys.readouterr().out
    assert [method for method, _ in requests] == ["PUT"]


def test_run_cli_failed_build_exits_with_error(tmp_path, capsys, fake_api):
    requests = fake_api(final_status="error")
    project_dir = _write_project(tmp_path)

    code = run_cli(_package_args(tmp_path, project_dir))

    assert code == 1
    assert "Build b1: error" in capsys.readouterr().out
    assert ("GET", "/build/b1") in requests
