"""Caller-facing gate deciding whether a new build may be launched."""
from ..models import AuthContext
from .models import PipelineRun

BUILD_LIMIT_NAME = "cordova-build"


def can_launch_build(run: PipelineRun, auth: AuthContext, limit_name: str = BUILD_LIMIT_NAME) -> bool:
    if run.in_flight:
        return False

    limit = auth.get_limit(limit_name)
    if limit and limit.limit_reached:
        return False

    return True
