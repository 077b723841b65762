"""File fingerprints for uploaded archives."""
import asyncio
from pathlib import Path

from blake3 import blake3

CHUNK_SIZE = 65536  # 64KB


async def blake3_file(path: Path) -> str:
    """Calculate BLAKE3 hash of file asynchronously (non-blocking)."""
    def _hash_file():
        hasher = blake3()
        with open(path, 'rb') as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
        return hasher.hexdigest()

    # Run in thread pool to avoid blocking the event loop
    return await asyncio.to_thread(_hash_file)
