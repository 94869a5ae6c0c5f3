"""Read-only access to static resources such as prebuilt database images."""

from pathlib import Path

import aiofiles
import structlog


class StaticAssets:
    """Resolves relative resource paths against a fixed root directory."""

    def __init__(
        self,
        root: Path,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, relative_path: str) -> Path | None:
        """Map a resource path to a file under the root, rejecting escapes."""
        candidate = (self._root / relative_path.lstrip("/")).resolve()
        if not candidate.is_relative_to(self._root):
            return None
        return candidate

    async def read(self, relative_path: str) -> bytes | None:
        """Return the resource's bytes, or None if it does not exist."""
        path = self.resolve(relative_path)
        if path is None:
            self._logger.warning("static_asset_outside_root", path=relative_path)
            return None

        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except (FileNotFoundError, IsADirectoryError):
            self._logger.debug("static_asset_missing", path=relative_path)
            return None
