"""Local persistent cache holding the last serialized lexicon image.

The cache is a single named blob on local disk. Writes go to a temporary
sibling first and are moved into place with ``os.replace`` so readers only
ever observe a complete previous or complete new image.
"""

from pathlib import Path
from uuid import uuid4

import aiofiles
import aiofiles.os
import structlog


async def write_atomic(path: Path, blob: bytes) -> None:
    """Write ``blob`` to ``path`` via a temporary file and an atomic rename."""
    await aiofiles.os.makedirs(path.parent, exist_ok=True)
    temp_path = path.with_name(f".{path.name}.{uuid4().hex}.tmp")
    try:
        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(blob)
        await aiofiles.os.replace(temp_path, path)
    except OSError:
        if await aiofiles.os.path.exists(temp_path):
            await aiofiles.os.remove(temp_path)
        raise


class LocalCache:
    """Durable key-value storage for one opaque byte blob.

    Knows nothing about SQLite; header validation is the caller's job.
    """

    DEFAULT_NAME = "hebrew_lexicon_db"
    DEFAULT_KEY = "sqlite_binary"

    def __init__(
        self,
        directory: Path,
        name: str | None = None,
        key: str | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._path = Path(directory) / (name or self.DEFAULT_NAME) / (key or self.DEFAULT_KEY)
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    async def get(self) -> bytes | None:
        """Return the stored blob, or None if nothing has been stored."""
        try:
            async with aiofiles.open(self._path, "rb") as f:
                blob = await f.read()
        except FileNotFoundError:
            return None
        self._logger.debug("cache_read", path=str(self._path), size_bytes=len(blob))
        return blob

    async def put(self, blob: bytes) -> None:
        """Replace the stored blob.

        Raises:
            OSError: If the blob could not be written.
        """
        await write_atomic(self._path, blob)
        self._logger.debug("cache_written", path=str(self._path), size_bytes=len(blob))

    async def clear(self) -> None:
        """Remove the stored blob if present."""
        try:
            await aiofiles.os.remove(self._path)
        except FileNotFoundError:
            return
        self._logger.info("cache_cleared", path=str(self._path))
