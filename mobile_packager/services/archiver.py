"""Archiver Service - compresses an exported game into a zip file."""
from pathlib import Path
import asyncio
import logging
import zipfile

from ..errors import ArchiveError

logger = logging.getLogger(__name__)


class ArchiverService:
    """Zip a directory, entries stored relative to it."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self._compression = compression

    def archive_sync(self, source_dir: Path, dest_file: Path) -> Path:
        source_dir = Path(source_dir)
        dest_file = Path(dest_file)
        if not source_dir.is_dir():
            raise ArchiveError(f"Nothing to compress, not a directory: {source_dir}")

        dest_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            with zipfile.ZipFile(dest_file, "w", compression=self._compression) as archive:
                for path in sorted(source_dir.rglob("*")):
                    if path.is_file():
                        archive.write(path, path.relative_to(source_dir).as_posix())
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            raise ArchiveError(f"Could not create {dest_file}: {exc}") from exc

        return dest_file

    async def archive(self, source_dir: Path, dest_file: Path) -> Path:
        """Compress source_dir into dest_file, return dest_file."""
        result = await asyncio.to_thread(self.archive_sync, source_dir, dest_file)
        logger.info(f"Archive created: {result} ({result.stat().st_size} bytes)")
        return result
