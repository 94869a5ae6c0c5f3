"""Entry store: schema management and queries over the lexicon image.

SQLite work is synchronous and in-memory, so each operation runs as one
blocking unit in ``asyncio.to_thread()`` to keep the async interface
consistent with the network-facing services.
"""

import asyncio
from collections.abc import Sequence

import structlog
from pydantic import ValidationError
from sqlalchemy import Connection, bindparam, delete, func, insert, inspect, or_, select, text, update
from sqlalchemy.exc import DatabaseError

from lexistore.models.entry import Entry, EntryValidation
from lexistore.models.enums import EntryStatus
from lexistore.models.tables import COLUMN_MIGRATIONS, entries_metadata, entries_table
from lexistore.services.sqlite_image import CorruptImageError, SqliteImage


class EntryStore:
    """Owns the ``entries`` table inside one ``SqliteImage``.

    The image is injected so the same store can wrap a freshly created
    database or one opened from any serialized source.
    """

    def __init__(
        self,
        image: SqliteImage,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._image = image
        self._engine = image.engine
        self._logger = logger or structlog.get_logger(__name__)

    async def create_schema(self) -> None:
        """Create the entries table and its prefix-search indexes if absent.

        Raises:
            CorruptImageError: If the underlying image cannot be read as a database.
        """
        await asyncio.to_thread(self._create_schema)

    async def ensure_column(self, name: str, definition: str) -> bool:
        """Add a column to ``entries`` unless it already exists.

        Args:
            name: Column name as stored in the image.
            definition: DDL type/constraint fragment, e.g. ``"TEXT DEFAULT ''"``.

        Returns:
            True if the column was added, False if it was already present.
        """
        return await asyncio.to_thread(self._ensure_column, name, definition)

    async def apply_migrations(self) -> list[str]:
        """Apply every additive column migration in version order.

        Returns:
            Names of the columns that were added; empty when the image was current.
        """
        added: list[str] = []
        for migration in sorted(COLUMN_MIGRATIONS, key=lambda m: m.version):
            if await self.ensure_column(migration.name, migration.definition):
                added.append(migration.name)
        if added:
            self._logger.info("entry_columns_added", columns=added)
        return added

    async def upsert_entries(self, entries: Sequence[Entry], date_added: int) -> int:
        """Insert or fully replace entries in a single transaction.

        Every row is stamped with ``date_added``. Later entries in the batch
        win over earlier ones sharing an id. Any failure rolls back the whole
        batch and propagates the SQLAlchemy error.

        Returns:
            Number of rows written.
        """
        if not entries:
            return 0
        records = [{**entry.to_record(), "dateAdded": date_added} for entry in entries]
        await asyncio.to_thread(self._upsert, records)
        self._logger.debug("entries_upserted", count=len(records))
        return len(records)

    async def delete_entries(self, ids: Sequence[str]) -> int:
        """Delete every row whose id is listed, in one statement.

        Returns:
            Number of rows removed.
        """
        if not ids:
            return 0
        deleted = await asyncio.to_thread(self._delete, list(ids))
        self._logger.debug("entries_deleted", requested=len(ids), deleted=deleted)
        return deleted

    async def apply_validation(self, results: Sequence[EntryValidation]) -> int:
        """Write validation status for existing rows in one transaction.

        Returns:
            Number of rows updated; ids not present in the table are skipped.
        """
        if not results:
            return 0
        params = [
            {
                "target_id": result.id,
                "new_status": result.status.value,
                "new_issue": result.validation_issue,
            }
            for result in results
        ]
        return await asyncio.to_thread(self._apply_validation, params)

    async def list_entries(self) -> list[Entry]:
        """Return every entry, newest first."""
        statement = select(entries_table).order_by(entries_table.c.dateAdded.desc())
        return await asyncio.to_thread(self._fetch, statement)

    async def list_by_letter(self, letter: str) -> list[Entry]:
        """Return entries whose pointed or consonantal headword starts with ``letter``."""
        statement = (
            select(entries_table)
            .where(
                or_(
                    entries_table.c.hebrewWord.startswith(letter, autoescape=True),
                    entries_table.c.hebrewConsonantal.startswith(letter, autoescape=True),
                )
            )
            .order_by(entries_table.c.hebrewWord.asc())
        )
        return await asyncio.to_thread(self._fetch, statement)

    async def list_by_status(self, status: EntryStatus) -> list[Entry]:
        statement = (
            select(entries_table)
            .where(entries_table.c.status == status.value)
            .order_by(entries_table.c.dateAdded.desc())
        )
        return await asyncio.to_thread(self._fetch, statement)

    async def count(self) -> int:
        statement = select(func.count()).select_from(entries_table)
        return await asyncio.to_thread(self._scalar, statement)

    async def latest_stamp(self) -> int:
        """Return the highest stored ``dateAdded``, or 0 for an empty table."""
        statement = select(func.coalesce(func.max(entries_table.c.dateAdded), 0))
        return await asyncio.to_thread(self._scalar, statement)

    def serialize(self) -> bytes:
        return self._image.serialize()

    def close(self) -> None:
        self._image.close()

    def _create_schema(self) -> None:
        try:
            with self._engine.begin() as conn:
                entries_metadata.create_all(conn, checkfirst=True)
                for index in entries_table.indexes:
                    index.create(conn, checkfirst=True)
        except DatabaseError as e:
            raise CorruptImageError(f"schema creation failed: {e.orig}") from e

    def _ensure_column(self, name: str, definition: str) -> bool:
        try:
            with self._engine.begin() as conn:
                if name in self._column_names(conn):
                    return False
                conn.execute(text(f'ALTER TABLE entries ADD COLUMN "{name}" {definition}'))
                return True
        except DatabaseError as e:
            raise CorruptImageError(f"migration of column {name} failed: {e.orig}") from e

    def _column_names(self, conn: Connection) -> set[str]:
        return {column["name"] for column in inspect(conn).get_columns(entries_table.name)}

    def _upsert(self, records: list[dict]) -> None:
        with self._engine.begin() as conn:
            conn.execute(insert(entries_table).prefix_with("OR REPLACE"), records)

    def _delete(self, ids: list[str]) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(delete(entries_table).where(entries_table.c.id.in_(ids)))
            return result.rowcount

    def _apply_validation(self, params: list[dict]) -> int:
        statement = (
            update(entries_table)
            .where(entries_table.c.id == bindparam("target_id"))
            .values(status=bindparam("new_status"), validationIssue=bindparam("new_issue"))
        )
        with self._engine.begin() as conn:
            result = conn.execute(statement, params)
            return result.rowcount

    def _fetch(self, statement) -> list[Entry]:
        with self._engine.connect() as conn:
            rows = conn.execute(statement).mappings().all()

        entries: list[Entry] = []
        for row in rows:
            try:
                entries.append(Entry.from_stored_row(row))
            except ValidationError as e:
                self._logger.warning("entry_row_unreadable", entry_id=row.get("id"), error=str(e))
        return entries

    def _scalar(self, statement) -> int:
        with self._engine.connect() as conn:
            return conn.execute(statement).scalar_one()
