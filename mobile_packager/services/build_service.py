"""
Build Service - Single Responsibility: talk to the remote build API.

Submits builds for uploaded archives and fetches their status.
"""
import logging
from typing import Dict, Optional

import httpx

from ..errors import FetchError, SubmissionError
from ..models import Build, PackagerConfig
from .api_client import HTTPAPIClient

logger = logging.getLogger(__name__)


class BuildService:
    """
    Gateway to the remote build service.

    Usage:
        async with HTTPAPIClient(config.api_url) as api:
            service = BuildService(api, config)
            build = await service.submit(token, user_id, storage_key)
    """

    def __init__(self, api_client: HTTPAPIClient, config: Optional[PackagerConfig] = None):
        self._api = api_client
        self._config = config or PackagerConfig()

    @staticmethod
    def _auth_headers(auth_token: str) -> Dict[str, str]:
        return {"Authorization": auth_token}

    async def submit(self, auth_token: str, user_id: str, storage_key: str) -> Build:
        """
        Request a build of an uploaded archive.

        Args:
            auth_token: Authorization header value
            user_id: Owner of the build
            storage_key: Key returned by the upload stage

        Returns:
            Build record created by the service
        """
        try:
            response = await self._api.post(
                "/build",
                params={
                    "userId": user_id,
                    "key": storage_key,
                    "type": self._config.build_type,
                },
                headers=self._auth_headers(auth_token),
            )
            build = Build.from_api(response.json())
        except (RuntimeError, httpx.HTTPError, ValueError, KeyError) as exc:
            raise SubmissionError(f"Build submission failed: {exc}") from exc

        logger.info(f"Build {build.id} submitted for {storage_key} (status: {build.status})")
        return build

    async def fetch_status(self, auth_token: str, build_id: str) -> Build:
        """Fetch current build record."""
        try:
            response = await self._api.get(
                f"/build/{build_id}",
                headers=self._auth_headers(auth_token),
            )
            return Build.from_api(response.json())
        except (RuntimeError, httpx.HTTPError, ValueError, KeyError) as exc:
            raise FetchError(f"Could not fetch build {build_id}: {exc}") from exc

    def build_download_url(self, build: Build, artifact_key: str) -> Optional[str]:
        """Public URL of an artifact, None when the build has no such artifact."""
        key = build.artifact(artifact_key)
        if not key:
            return None
        base = self._config.downloads_url.rstrip("/")
        return f"{base}/{key}"
