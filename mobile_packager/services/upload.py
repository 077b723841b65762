"""
Upload Service - Single Responsibility: transfer the archive to storage.

Streams the file over HTTP and reports byte progress after every chunk.
"""
from pathlib import Path
from typing import AsyncIterator, Optional
import asyncio
import inspect
import logging
import uuid

import httpx

from ..errors import UploadError, UploadUnavailableError
from ..protocols import ProgressCallback
from ..utils.hashing import blake3_file

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


async def _notify(progress_callback: Optional[ProgressCallback], sent: int, total: int) -> None:
    if progress_callback is None:
        return
    result = progress_callback(sent, total)
    if inspect.isawaitable(result):
        await result


class HTTPUploadService:
    """
    Upload archives to an HTTP storage endpoint (PUT {upload_url}/{key}).

    Without an upload URL the service has no upload channel and every
    upload fails with UploadUnavailableError.
    """

    def __init__(
        self,
        upload_url: Optional[str],
        timeout: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._upload_url = upload_url.rstrip("/") if upload_url else None
        self._timeout = timeout
        self._transport = transport

    @property
    def available(self) -> bool:
        return self._upload_url is not None

    @staticmethod
    def make_key(path: Path) -> str:
        """Storage key: random prefix plus file name."""
        return f"{uuid.uuid4().hex}/{Path(path).name}"

    async def _stream(
        self,
        path: Path,
        total: int,
        progress_callback: Optional[ProgressCallback],
    ) -> AsyncIterator[bytes]:
        sent = 0
        with open(path, "rb") as f:
            while True:
                chunk = await asyncio.to_thread(f.read, CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
                sent += len(chunk)
                await _notify(progress_callback, sent, total)

    async def upload(
        self,
        path: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Upload file to storage.

        Args:
            path: File to upload
            progress_callback: Called with (bytes_sent, bytes_total)

        Returns:
            Storage key of the uploaded file
        """
        if not self.available:
            raise UploadUnavailableError()

        path = Path(path)
        try:
            total = path.stat().st_size
            digest = await blake3_file(path)
        except OSError as exc:
            raise UploadError(f"Cannot read {path}: {exc}") from exc

        key = self.make_key(path)
        url = f"{self._upload_url}/{key}"
        logger.info(f"Uploading {path.name} ({total} bytes) to {url}")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.put(
                    url,
                    content=self._stream(path, total, progress_callback),
                    headers={
                        "Content-Length": str(total),
                        "Content-Type": "application/zip",
                        "X-Content-Blake3": digest,
                    },
                )
        except (httpx.HTTPError, OSError) as exc:
            raise UploadError(f"Upload of {path.name} failed: {exc}") from exc

        if response.status_code >= 400:
            raise UploadError(
                f"Upload of {path.name} rejected with status {response.status_code}: {response.text}"
            )

        logger.info(f"Upload complete: {key} (blake3 {digest[:12]})")
        return key


class UnavailableUploadService:
    """Upload gateway for runtimes with no upload channel."""

    available = False

    async def upload(
        self,
        path: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        raise UploadUnavailableError()
