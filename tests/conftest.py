"""Shared fixtures for building SQLite images in tests."""

import sqlite3
from collections.abc import Callable, Iterable

import pytest

LEGACY_SCHEMA = """
CREATE TABLE entries (
    id TEXT PRIMARY KEY,
    hebrewWord TEXT,
    hebrewConsonantal TEXT,
    transliteration TEXT,
    partOfSpeech TEXT,
    definition TEXT,
    root TEXT,
    sourcePage TEXT,
    sourceUrl TEXT,
    dateAdded INTEGER
)
"""


def _serialize(statements: Iterable[tuple[str, tuple]]) -> bytes:
    connection = sqlite3.connect(":memory:")
    try:
        for sql, params in statements:
            connection.execute(sql, params)
        connection.commit()
        return connection.serialize()
    finally:
        connection.close()


@pytest.fixture
def build_legacy_image() -> Callable[[list[tuple[str, str, int]]], bytes]:
    """Build an image using the original schema, before any column migrations.

    Rows are ``(id, hebrewWord, dateAdded)`` tuples.
    """

    def build(rows: list[tuple[str, str, int]]) -> bytes:
        statements: list[tuple[str, tuple]] = [(LEGACY_SCHEMA, ())]
        for entry_id, word, date_added in rows:
            statements.append(
                (
                    "INSERT INTO entries (id, hebrewWord, partOfSpeech, definition, dateAdded)"
                    " VALUES (?, ?, 'noun', 'legacy', ?)",
                    (entry_id, word, date_added),
                )
            )
        return _serialize(statements)

    return build


@pytest.fixture
def build_strongs_image() -> Callable[[list[tuple[str, str]]], bytes]:
    """Build a reference image from ``(lemma, number)`` pairs."""

    def build(pairs: list[tuple[str, str]]) -> bytes:
        statements: list[tuple[str, tuple]] = [("CREATE TABLE strongs (lemma TEXT, number TEXT)", ())]
        statements.extend(("INSERT INTO strongs VALUES (?, ?)", pair) for pair in pairs)
        return _serialize(statements)

    return build


@pytest.fixture
def garbage_blob() -> bytes:
    return bytes(range(256)) * 4


@pytest.fixture
def headed_garbage_blob() -> bytes:
    """Bytes that pass the header check but are not a database."""
    return b"SQLite format 3\x00" + b"\xff" * 4096
