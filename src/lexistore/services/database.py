"""Database service: the single owner of the live lexicon database.

On ``init()`` the service decides which source populates the in-memory
database, trying each in strict priority order:

    server -> local cache -> prebuilt file -> fresh

A cached blob that fails validation is cleared and recorded as
``invalid-cache`` before moving on. Whatever is opened gets the additive
column migrations applied.

After every mutation the whole database is serialized, written to the local
cache and, when the disk server answered the startup probe, pushed to it.
Propagation failures are logged and never undo the in-memory change.
"""

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import SQLAlchemyError

from lexistore.models.entry import Entry, EntryValidation
from lexistore.models.enums import EntryStatus, LoadSource
from lexistore.services.disk_sync import DiskSyncClient
from lexistore.services.enrichment import enrich_entry, lookup_lemma
from lexistore.services.entry_store import EntryStore
from lexistore.services.local_cache import LocalCache
from lexistore.services.reference_lookup import ReferenceLookup
from lexistore.services.sqlite_image import CorruptImageError, SqliteImage, is_sqlite_image
from lexistore.services.static_assets import StaticAssets

ImageSink = Callable[[bytes], Awaitable[None]]


class DatabaseInitError(RuntimeError):
    """No source could be opened and a fresh database could not be created."""


class EntryWriteError(RuntimeError):
    """A write was rolled back; nothing from the batch was kept."""


def _epoch_millis() -> int:
    return int(time.time() * 1000)


@dataclass
class _OpenedStore:
    store: EntryStore
    source: LoadSource
    migrated: bool


class DatabaseService:
    """Orchestrates source selection, entry operations and persistence.

    All collaborators are injected. Mutating calls are expected to be
    awaited one at a time; each returns only after its persistence side
    effects have completed.
    """

    DEFAULT_PREBUILT_PATHS = ("lexicon.sqlite", "prebuilt/lexicon.sqlite")

    def __init__(
        self,
        cache: LocalCache,
        sync_client: DiskSyncClient,
        assets: StaticAssets,
        reference: ReferenceLookup,
        prebuilt_paths: Sequence[str] | None = None,
        fresh_image_sink: ImageSink | None = None,
        clock: Callable[[], int] | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._cache = cache
        self._sync = sync_client
        self._assets = assets
        self._reference = reference
        self._prebuilt_paths = tuple(prebuilt_paths or self.DEFAULT_PREBUILT_PATHS)
        self._fresh_image_sink = fresh_image_sink
        self._clock = clock or _epoch_millis
        self._logger = logger or structlog.get_logger(__name__)

        self._store: EntryStore | None = None
        self._load_source: LoadSource | None = None
        self._server_available = False
        self._is_ready = False
        self._last_stamp = 0

    async def __aenter__(self) -> "DatabaseService":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    @property
    def load_source(self) -> LoadSource | None:
        return self._load_source

    @property
    def server_available(self) -> bool:
        return self._server_available

    async def init(self) -> LoadSource:
        """Populate the live database from the best available source.

        Returns:
            The source that populated the store.

        Raises:
            DatabaseInitError: If even a fresh database could not be created.
        """
        if self._is_ready and self._load_source is not None:
            return self._load_source

        self._load_source = None
        self._server_available = await self._sync.check_availability()

        try:
            opened = await self._open_first_source()
            stored_stamp = await opened.store.latest_stamp()
        except (CorruptImageError, SQLAlchemyError) as e:
            self._logger.error("database_init_failed", error=str(e))
            raise DatabaseInitError(f"could not create a database: {e}") from e

        self._store = opened.store
        self._load_source = opened.source
        # New batches must sort above rows stamped by any earlier session.
        self._last_stamp = max(self._last_stamp, int(stored_stamp))
        self._logger.info(
            "database_loaded",
            source=opened.source.value,
            server_available=self._server_available,
            migrated=opened.migrated,
        )

        if opened.source is LoadSource.FRESH:
            await self._publish_fresh()
        elif opened.source is LoadSource.PREBUILT_FILE or opened.migrated:
            await self._persist()

        await self._reference.load()

        self._is_ready = True
        return opened.source

    async def _open_first_source(self) -> _OpenedStore:
        if self._server_available:
            opened = await self._load_from_server()
            if opened is not None:
                return opened

        opened = await self._load_from_cache()
        if opened is not None:
            return opened

        opened = await self._load_prebuilt()
        if opened is not None:
            return opened

        return await self._create_fresh()

    async def _load_from_server(self) -> _OpenedStore | None:
        blob = await self._sync.fetch_image()
        if blob is None:
            return None
        return await self._open_image(blob, LoadSource.SERVER)

    async def _load_from_cache(self) -> _OpenedStore | None:
        try:
            blob = await self._cache.get()
        except OSError as e:
            self._logger.warning("cache_read_failed", error=str(e))
            return None
        if blob is None:
            return None

        opened = None
        if is_sqlite_image(blob):
            opened = await self._open_image(blob, LoadSource.LOCAL_CACHE)
        if opened is None:
            await self._discard_cache(len(blob))
        return opened

    async def _discard_cache(self, size_bytes: int) -> None:
        self._load_source = LoadSource.INVALID_CACHE
        self._logger.warning("cache_invalid_cleared", size_bytes=size_bytes)
        try:
            await self._cache.clear()
        except OSError as e:
            self._logger.warning("cache_clear_failed", error=str(e))

    async def _load_prebuilt(self) -> _OpenedStore | None:
        for path in self._prebuilt_paths:
            blob = await self._assets.read(path)
            if blob is None:
                continue
            if not is_sqlite_image(blob):
                self._logger.warning("prebuilt_image_invalid", path=path)
                continue
            opened = await self._open_image(blob, LoadSource.PREBUILT_FILE)
            if opened is not None:
                self._logger.info("prebuilt_image_loaded", path=path)
                return opened
        return None

    async def _create_fresh(self) -> _OpenedStore:
        store = EntryStore(SqliteImage.empty(), logger=self._logger)
        await store.create_schema()
        added = await store.apply_migrations()
        return _OpenedStore(store=store, source=LoadSource.FRESH, migrated=bool(added))

    async def _open_image(self, blob: bytes, source: LoadSource) -> _OpenedStore | None:
        try:
            image = SqliteImage.from_bytes(blob)
        except CorruptImageError as e:
            self._logger.warning("image_rejected", source=source.value, error=str(e))
            return None

        store = EntryStore(image, logger=self._logger)
        try:
            await store.create_schema()
            added = await store.apply_migrations()
        except CorruptImageError as e:
            store.close()
            self._logger.warning("image_rejected", source=source.value, error=str(e))
            return None
        return _OpenedStore(store=store, source=source, migrated=bool(added))

    async def _publish_fresh(self) -> None:
        blob = await self._persist()
        if self._server_available or self._fresh_image_sink is None:
            return
        try:
            await self._fresh_image_sink(blob)
        except OSError as e:
            self._logger.debug("fresh_database_offer_failed", error=str(e))
            return
        self._logger.info("fresh_database_offered", size_bytes=len(blob))

    async def _persist(self) -> bytes:
        """Serialize the store, write the cache, then push if the server is up."""
        blob = self._require_store().serialize()
        try:
            await self._cache.put(blob)
        except OSError as e:
            self._logger.warning("cache_write_failed", error=str(e))
        if self._server_available:
            await self._sync.push_image(blob)
        return blob

    def _require_store(self) -> EntryStore:
        if self._store is None:
            raise RuntimeError("DatabaseService not initialized. Call init() first.")
        return self._store

    def _next_stamp(self) -> int:
        stamp = max(self._clock(), self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp

    async def add_entries(self, entries: Sequence[Entry]) -> list[Entry]:
        """Upsert a batch of entries atomically, then persist.

        ``is_root`` is derived from the headword and missing strongs numbers
        are resolved from the reference dataset. All rows share one
        ``date_added`` stamp.

        Returns:
            The entries as stored.

        Raises:
            EntryWriteError: If any row failed; the batch is rolled back and
                nothing is persisted.
        """
        store = self._require_store()
        if not entries:
            return []

        enriched: list[Entry] = []
        for entry in entries:
            numbers: list[str] = []
            if not entry.strongs_numbers:
                numbers = await self._reference.numbers_for(lookup_lemma(entry))
            enriched.append(enrich_entry(entry, numbers))

        stamp = self._next_stamp()
        try:
            await store.upsert_entries(enriched, stamp)
        except SQLAlchemyError as e:
            self._logger.error("entries_write_rolled_back", count=len(enriched), error=str(e))
            raise EntryWriteError(f"batch of {len(enriched)} entries rolled back: {e}") from e

        await self._persist()
        self._logger.info("entries_added", count=len(enriched), date_added=stamp)
        return [entry.model_copy(update={"date_added": stamp}) for entry in enriched]

    async def delete_entries(self, ids: Sequence[str]) -> int:
        """Delete entries by id and persist. An empty list does nothing.

        Returns:
            Number of rows removed.
        """
        store = self._require_store()
        if not ids:
            return 0

        try:
            deleted = await store.delete_entries(ids)
        except SQLAlchemyError as e:
            self._logger.error("entries_delete_failed", count=len(ids), error=str(e))
            raise EntryWriteError(f"delete of {len(ids)} entries failed: {e}") from e

        await self._persist()
        self._logger.info("entries_deleted", requested=len(ids), deleted=deleted)
        return deleted

    async def apply_validation(self, results: Sequence[EntryValidation]) -> int:
        """Record validation outcomes for existing entries and persist.

        Returns:
            Number of entries updated.
        """
        store = self._require_store()
        if not results:
            return 0

        try:
            updated = await store.apply_validation(results)
        except SQLAlchemyError as e:
            self._logger.error("validation_write_rolled_back", count=len(results), error=str(e))
            raise EntryWriteError(f"validation of {len(results)} entries rolled back: {e}") from e

        await self._persist()
        self._logger.info("validation_applied", submitted=len(results), updated=updated)
        return updated

    async def get_all_entries(self) -> list[Entry]:
        return await self._require_store().list_entries()

    async def get_entries_by_letter(self, letter: str) -> list[Entry]:
        return await self._require_store().list_by_letter(letter)

    async def get_entries_by_status(self, status: EntryStatus) -> list[Entry]:
        return await self._require_store().list_by_status(status)

    async def count_entries(self) -> int:
        return await self._require_store().count()

    async def get_strong_numbers_for(self, lemma: str) -> list[str]:
        """Look up cross-reference numbers; empty if the dataset is unavailable."""
        return await self._reference.numbers_for(lemma)

    def export_image(self) -> bytes:
        return self._require_store().serialize()

    async def reset_database(self) -> None:
        """Clear the local cache and drop the live database.

        The disk server's file is left untouched, so a following ``init()``
        reopens the server copy when it is reachable.
        """
        await self._cache.clear()
        if self._store is not None:
            self._store.close()
        self._store = None
        self._load_source = None
        self._is_ready = False
        self._logger.info("database_reset")

    async def close(self) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None
        self._reference.close()
        await self._sync.aclose()
        self._is_ready = False
