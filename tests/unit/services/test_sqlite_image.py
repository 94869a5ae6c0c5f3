"""Unit tests for SqliteImage and the header gate."""

import pytest
from sqlalchemy import text

from lexistore.services.sqlite_image import SQLITE_HEADER, CorruptImageError, SqliteImage, is_sqlite_image


class TestIsSqliteImage:
    def test_accepts_serialized_database(self, build_strongs_image) -> None:
        assert is_sqlite_image(build_strongs_image([("מלך", "H4428")]))

    @pytest.mark.parametrize("blob", [None, b"", SQLITE_HEADER[:-1], b"PK\x03\x04" + b"\x00" * 64])
    def test_rejects_missing_or_foreign_header(self, blob) -> None:
        assert not is_sqlite_image(blob)

    def test_rejects_random_bytes(self, garbage_blob: bytes) -> None:
        assert not is_sqlite_image(garbage_blob)


class TestSqliteImage:
    def test_from_bytes_rejects_invalid_header(self, garbage_blob: bytes) -> None:
        with pytest.raises(CorruptImageError):
            SqliteImage.from_bytes(garbage_blob)

    def test_round_trip_preserves_tables_and_rows(self) -> None:
        image = SqliteImage.empty()
        with image.engine.begin() as conn:
            conn.execute(text("CREATE TABLE words (lemma TEXT, number TEXT)"))
            conn.execute(text("INSERT INTO words VALUES ('אב', 'H1')"))

        reopened = SqliteImage.from_bytes(image.serialize())
        image.close()

        with reopened.engine.connect() as conn:
            rows = conn.execute(text("SELECT lemma, number FROM words")).all()
        reopened.close()

        assert [tuple(row) for row in rows] == [("אב", "H1")]

    def test_reopened_image_is_writable(self, build_strongs_image) -> None:
        image = SqliteImage.from_bytes(build_strongs_image([("אב", "H1")]))

        with image.engine.begin() as conn:
            conn.execute(text("INSERT INTO strongs VALUES ('בית', 'H1004')"))
        with image.engine.connect() as conn:
            count = conn.execute(text("SELECT count(*) FROM strongs")).scalar_one()
        image.close()

        assert count == 2
