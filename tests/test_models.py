"""Tests for mobile packager models."""
import json

import pytest

from mobile_packager.errors import StageFailure, UploadUnavailableError, ValidationError
from mobile_packager.models import (
    AuthContext,
    BlockingError,
    Build,
    BuildLimit,
    GameProject,
    PackagerConfig,
)
from mobile_packager.orchestrator.models import PipelineRun, PipelineStage


class TestBuild:
    def test_from_api_collects_artifact_keys(self):
        build = Build.from_api({
            "id": "b1",
            "status": "complete",
            "type": "cordova-build",
            "userId": "u1",
            "apkKey": "builds/b1/game.apk",
            "logsKey": "builds/b1/logs.txt",
            "uploadKey": None,
            "createdAt": 1500000000,
        })

        assert build.id == "b1"
        assert build.user_id == "u1"
        assert build.artifacts == {
            "apkKey": "builds/b1/game.apk",
            "logsKey": "builds/b1/logs.txt",
        }
        assert build.artifact("apkKey") == "builds/b1/game.apk"
        assert build.artifact("missingKey") is None

    def test_terminal_statuses(self):
        assert Build("b1", "pending").is_terminal is False
        assert Build("b1", "complete").is_terminal is True
        assert Build("b1", "error").is_terminal is True
        assert Build("b1", "error").succeeded is False

    def test_equality_detects_status_change(self):
        assert Build("b1", "pending") == Build("b1", "pending")
        assert Build("b1", "pending") != Build("b1", "complete")


class TestGameProject:
    def test_load(self, tmp_path):
        (tmp_path / "project.json").write_text(json.dumps({
            "name": "Space Shooter",
            "packageName": "com.example.shooter",
            "version": "1.2.0",
            "scenes": ["Menu", "Level 1"],
        }))

        project = GameProject.load(tmp_path)

        assert project.name == "Space Shooter"
        assert project.package_name == "com.example.shooter"
        assert project.version == "1.2.0"
        assert project.root_dir == tmp_path
        assert project.scenes == ["Menu", "Level 1"]

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            GameProject.load(tmp_path)


class TestAuthContext:
    def test_authenticated_needs_token_and_user(self):
        assert AuthContext().authenticated is False
        assert AuthContext(token="t").authenticated is False
        assert AuthContext(token="t", user_id="u").authenticated is True

    def test_get_limit(self):
        auth = AuthContext(limits={"cordova-build": BuildLimit(max=10, current=10, limit_reached=True)})
        assert auth.get_limit("cordova-build").limit_reached is True
        assert auth.get_limit("other") is None


def test_config_paths(tmp_path):
    config = PackagerConfig(work_dir=tmp_path)
    assert config.export_dir == tmp_path / "OnlineCordovaExport"
    assert config.archive_path == tmp_path / "game-archive.zip"


def test_config_defaults_to_temp_dir():
    config = PackagerConfig()
    assert config.get_work_dir().is_dir()
    assert config.poll_interval == 5.0


class TestPipelineRun:
    def test_begin(self):
        run = PipelineRun.begin(3)
        assert run.run_id == 3
        assert run.stage is PipelineStage.EXPORTING
        assert run.build is None
        assert (run.upload_progress, run.upload_total, run.failed) == (0, 0, False)

    def test_advance_moves_one_stage_forward(self):
        run = PipelineRun.begin(1).advance(PipelineStage.COMPRESSING)
        assert run.stage is PipelineStage.COMPRESSING

    def test_advance_rejects_skips_and_regressions(self):
        run = PipelineRun.begin(1)
        with pytest.raises(ValueError):
            run.advance(PipelineStage.UPLOADING)
        with pytest.raises(ValueError):
            run.advance(PipelineStage.IDLE)

    def test_in_flight(self):
        assert PipelineRun().in_flight is False
        assert PipelineRun.begin(1).in_flight is True
        assert PipelineRun(stage=PipelineStage.UPLOADING, failed=True).in_flight is False
        assert PipelineRun(stage=PipelineStage.BUILDING).in_flight is False

    def test_upload_percent(self):
        assert PipelineRun().upload_percent == 0.0
        assert PipelineRun(upload_progress=55, upload_total=100).upload_percent == 55.0


class TestErrors:
    def test_stage_failure_carries_context(self):
        cause = UploadUnavailableError()
        failure = StageFailure("Upload failed.", PipelineStage.UPLOADING, cause)

        assert failure.stage is PipelineStage.UPLOADING
        assert failure.cause is cause
        assert "uploading" in str(failure)
        assert "No support for upload" in str(failure)

    def test_validation_error_lists_errors(self):
        error = ValidationError([BlockingError("bad", "version"), BlockingError("empty")])
        assert len(error.errors) == 2
        assert str(error) == "version: bad; empty"
