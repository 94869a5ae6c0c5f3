"""In-memory SQLite databases that can be exported to and opened from bytes.

Every persisted copy of the lexicon (server file, local cache, prebuilt file,
reference dataset) is a complete SQLite file image. ``SqliteImage`` owns one
in-memory ``sqlite3`` connection and exposes it to SQLAlchemy through a
``StaticPool`` so the same connection backs every statement and can be
serialized as a whole.
"""

import sqlite3

from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

SQLITE_HEADER = b"SQLite format 3\x00"


class CorruptImageError(ValueError):
    """Raised when bytes cannot be opened as a usable SQLite database."""


def is_sqlite_image(blob: bytes | bytearray | memoryview | None) -> bool:
    """Check the fixed magic header of the SQLite file format."""
    if not blob:
        return False
    return bytes(blob[: len(SQLITE_HEADER)]) == SQLITE_HEADER


class SqliteImage:
    """A single owned in-memory SQLite connection.

    Connections are created with ``check_same_thread=False`` because callers
    drive them from ``asyncio.to_thread`` workers. Callers must not issue
    statements concurrently.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._engine = create_engine(
            "sqlite://",
            creator=lambda: connection,
            poolclass=StaticPool,
        )

    @classmethod
    def empty(cls) -> "SqliteImage":
        return cls(sqlite3.connect(":memory:", check_same_thread=False))

    @classmethod
    def from_bytes(cls, blob: bytes) -> "SqliteImage":
        """Open a serialized image.

        Raises:
            CorruptImageError: If the header check fails or SQLite rejects the image.
        """
        if not is_sqlite_image(blob):
            raise CorruptImageError("image does not start with the SQLite header")

        connection = sqlite3.connect(":memory:", check_same_thread=False)
        try:
            connection.deserialize(bytes(blob))
        except sqlite3.DatabaseError as e:
            connection.close()
            raise CorruptImageError(str(e)) from e
        return cls(connection)

    @property
    def engine(self) -> Engine:
        return self._engine

    def serialize(self) -> bytes:
        return self._connection.serialize()

    def close(self) -> None:
        self._engine.dispose()
        self._connection.close()
