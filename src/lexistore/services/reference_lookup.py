"""Root-to-number cross reference loaded from a read-only SQLite image."""

import asyncio

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from lexistore.models.tables import strongs_table
from lexistore.services.sqlite_image import CorruptImageError, SqliteImage
from lexistore.services.static_assets import StaticAssets


class ReferenceLookup:
    """Answers lemma lookups against the reference dataset.

    Loading is best effort. Until a valid image is loaded every lookup
    returns an empty list.
    """

    DEFAULT_PATH = "strongs.sqlite"

    def __init__(
        self,
        assets: StaticAssets,
        path: str | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._assets = assets
        self._path = path or self.DEFAULT_PATH
        self._logger = logger or structlog.get_logger(__name__)
        self._image: SqliteImage | None = None

    @property
    def is_loaded(self) -> bool:
        return self._image is not None

    async def load(self) -> bool:
        """Load the reference image once.

        Returns:
            True if the dataset is available after the call.
        """
        if self._image is not None:
            return True

        blob = await self._assets.read(self._path)
        if blob is None:
            self._logger.info("reference_dataset_missing", path=self._path)
            return False

        try:
            self._image = SqliteImage.from_bytes(blob)
        except CorruptImageError as e:
            self._logger.warning("reference_dataset_invalid", path=self._path, error=str(e))
            return False

        self._logger.info("reference_dataset_loaded", path=self._path, size_bytes=len(blob))
        return True

    async def numbers_for(self, lemma: str) -> list[str]:
        """Return every cross-reference number recorded for an exact lemma."""
        if self._image is None or not lemma:
            return []
        return await asyncio.to_thread(self._query, lemma)

    def _query(self, lemma: str) -> list[str]:
        statement = select(strongs_table.c.number).where(strongs_table.c.lemma == lemma)
        try:
            with self._image.engine.connect() as conn:
                numbers = conn.execute(statement).scalars().all()
        except SQLAlchemyError as e:
            self._logger.debug("reference_lookup_failed", lemma=lemma, error=str(e))
            return []
        return [str(number) for number in numbers if number]

    def close(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None
